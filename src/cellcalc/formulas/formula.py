"""Immutable, validated cell formula."""

from __future__ import annotations

from typing import Any

from cellcalc.formulas.errors import FormulaError
from cellcalc.formulas.evaluator import Lookup, evaluate_tokens
from cellcalc.formulas.tokenizer import Token, TokenKind, tokenize


class Formula:
    """An arithmetic formula over numbers and cell variables.

    Construction is the only validation point: if ``Formula(text)``
    returns, the formula is well-formed.  The canonical form has no
    whitespace, upper-case variables and normalized numbers, and defines
    equality and hashing::

        >>> str(Formula("ga22*a1 + 4E3- 22.0 / Ga22"))
        'GA22*A1+4000-22/GA22'

    Raises:
        FormulaFormatError: If *text* violates the formula syntax.
    """

    __slots__ = ("_tokens", "_canonical", "_variables")

    def __init__(self, text: str) -> None:
        tokens = tokenize(text)
        object.__setattr__(self, "_tokens", tokens)
        object.__setattr__(self, "_canonical", "".join(t.text for t in tokens))
        object.__setattr__(
            self,
            "_variables",
            frozenset(t.text for t in tokens if t.kind is TokenKind.variable),
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def canonical(self) -> str:
        """The canonical string form."""
        return self._canonical

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._tokens

    def variables(self) -> frozenset[str]:
        """Canonical names of all variables referenced, without duplicates."""
        return self._variables

    def evaluate(self, lookup: Lookup) -> float | FormulaError:
        """Evaluate the formula, resolving variables through *lookup*.

        Args:
            lookup: Maps a canonical variable name to its numeric value,
                or returns None if the variable has no usable value.

        Returns:
            The numeric result, or a FormulaError if a variable is
            undefined or a division by zero occurs.
        """
        return evaluate_tokens(self._tokens, lookup)

    def equals(self, other: object) -> bool:
        """True iff *other* is a Formula with the same canonical form."""
        return isinstance(other, Formula) and other._canonical == self._canonical

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self._canonical)

    def __str__(self) -> str:
        return self._canonical

    def __repr__(self) -> str:
        return f"Formula({self._canonical!r})"

"""Two-stack infix evaluator for validated formula tokens.

Multiplication and division are resolved as soon as their right operand
is known, so only ``+``/``-`` and ``(`` ever wait on the operator stack
for more than one operand.  Evaluation failures are returned as
:class:`FormulaError` values rather than raised.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from cellcalc.formulas.errors import DIVISION_BY_ZERO, UNDEFINED_VARIABLE, FormulaError
from cellcalc.formulas.tokenizer import Token, TokenKind

# Maps a canonical variable name to its value, or None if it cannot be resolved.
Lookup = Callable[[str], Optional[float]]


class _DivisionByZero(Exception):
    pass


def _apply(left: float, op: str, right: float) -> float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise _DivisionByZero()
    return left / right


def _resolve_top(values: list[float], ops: list[str], pending: tuple[str, ...]) -> None:
    """Apply the top operator to the top two operands if it is in *pending*."""
    if ops and ops[-1] in pending:
        right = values.pop()
        left = values.pop()
        values.append(_apply(left, ops.pop(), right))


def evaluate_tokens(tokens: Iterable[Token], lookup: Lookup) -> float | FormulaError:
    """Evaluate a validated token sequence.

    Args:
        tokens: Canonical tokens as produced by ``tokenize()``.
        lookup: Resolves a variable name to a number, or returns None.

    Returns:
        The computed value, or a FormulaError for an undefined variable or
        a division by zero.
    """
    values: list[float] = []
    ops: list[str] = []

    try:
        for tok in tokens:
            kind = tok.kind
            if kind is TokenKind.number or kind is TokenKind.variable:
                if kind is TokenKind.number:
                    value = tok.value
                else:
                    looked_up = lookup(tok.text)
                    if looked_up is None:
                        return FormulaError(UNDEFINED_VARIABLE)
                    value = float(looked_up)
                if ops and ops[-1] in ("*", "/"):
                    values.append(_apply(values.pop(), ops.pop(), value))
                else:
                    values.append(value)
            elif kind is TokenKind.operator:
                if tok.text in ("+", "-"):
                    _resolve_top(values, ops, ("+", "-"))
                ops.append(tok.text)
            elif kind is TokenKind.lparen:
                ops.append("(")
            else:
                _resolve_top(values, ops, ("+", "-"))
                ops.pop()  # the matching "("
                _resolve_top(values, ops, ("*", "/"))

        if not ops:
            return values.pop()
        right = values.pop()
        left = values.pop()
        return _apply(left, ops.pop(), right)
    except _DivisionByZero:
        return FormulaError(DIVISION_BY_ZERO)

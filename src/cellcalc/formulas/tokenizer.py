"""Lark-based tokenizer and syntax rules for cell formulas.

Token alphabet:
- Numbers: ``12``, ``3.``, ``.5``, ``2.5e-3`` (must be finite as a float)
- Variables: one or more letters followed by one or more digits (``A1``, ``xy22``)
- Operators: ``+ - * /``
- Parentheses

Whitespace is discarded.  Validation happens in a single left-to-right
pass while tokens are pulled from the lexer, so the first violated rule
determines the reported error.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from cellcalc.formulas.errors import FormulaFormatError

GRAMMAR = r"""
start: _item*

_item: NUMBER | VARIABLE | OPERATOR | LPAR | RPAR

LPAR: "("
RPAR: ")"
OPERATOR: /[+\-*\/]/
VARIABLE: /[a-zA-Z]+[0-9]+/
NUMBER: /(\d+\.\d*|\d*\.\d+|\d+)([eE][+-]?\d+)?/

WS: /\s+/
%ignore WS
"""

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic")

VARIABLE_RE = re.compile(r"[a-zA-Z]+[0-9]+")

# Run of characters reported when the lexer stops on an invalid token
_BAD_RUN_RE = re.compile(r"[^\s()+\-*/]+")


class TokenKind(str, Enum):
    number = "number"
    variable = "variable"
    operator = "operator"
    lparen = "lparen"
    rparen = "rparen"


_LARK_KINDS = {
    "NUMBER": TokenKind.number,
    "VARIABLE": TokenKind.variable,
    "OPERATOR": TokenKind.operator,
    "LPAR": TokenKind.lparen,
    "RPAR": TokenKind.rparen,
}

# Tokens that end an operand: after these only an operator or ")" may follow.
_OPERAND_END = frozenset({TokenKind.number, TokenKind.variable, TokenKind.rparen})


@dataclass(frozen=True)
class Token:
    """A single canonical formula token.

    ``text`` is already canonical: variables are upper-cased and numbers
    are rendered through :func:`format_number`.
    """

    kind: TokenKind
    text: str
    position: int = 0

    @property
    def value(self) -> float:
        """Numeric value of a number token."""
        return float(self.text)


def is_variable(name: str) -> bool:
    """Return True if *name* matches the variable grammar."""
    return VARIABLE_RE.fullmatch(name) is not None


def format_number(value: float) -> str:
    """Render a float in canonical form.

    Integral values below 1e15 drop the fractional part (``4000.0`` ->
    ``"4000"``); everything else uses the shortest round-trip repr.
    """
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _lex(text: str) -> Iterator[Token]:
    """Yield canonical tokens; raise on the first invalid run or non-finite number."""
    try:
        for tok in _lexer.lex(text):
            kind = _LARK_KINDS[tok.type]
            raw = str(tok)
            if kind is TokenKind.number:
                number = float(raw)
                if not math.isfinite(number):
                    raise FormulaFormatError(
                        f"Number literal '{raw}' is out of range.",
                        position=tok.start_pos,
                    )
                raw = format_number(number)
            elif kind is TokenKind.variable:
                raw = raw.upper()
            yield Token(kind, raw, tok.start_pos or 0)
    except UnexpectedCharacters as exc:
        pos = exc.pos_in_stream
        m = _BAD_RUN_RE.match(text, pos)
        bad = m.group(0) if m else exc.char
        raise FormulaFormatError(
            f"Invalid token '{bad}'. Tokens must be numbers, variables, "
            "operators, or parentheses.",
            position=pos,
        ) from exc


def tokenize(text: str) -> tuple[Token, ...]:
    """Tokenize and validate a formula string.

    Args:
        text: Formula text without a leading ``=``, e.g. ``"a1 * (2 + b2)"``.

    Returns:
        The validated canonical token sequence.

    Raises:
        FormulaFormatError: If any syntax rule is violated.
    """
    tokens: list[Token] = []
    depth = 0
    prev: Token | None = None

    for tok in _lex(text):
        if tok.kind is TokenKind.lparen:
            depth += 1
        elif tok.kind is TokenKind.rparen:
            depth -= 1
            if depth < 0:
                raise FormulaFormatError(
                    "Unbalanced parentheses: too many closing parentheses.",
                    position=tok.position,
                )

        if prev is None:
            if tok.kind in (TokenKind.operator, TokenKind.rparen):
                raise FormulaFormatError(
                    "The first token must be a number, variable, or opening parenthesis.",
                    position=tok.position,
                )
        elif not _may_follow(prev, tok):
            raise FormulaFormatError(
                f"Invalid token sequence: '{prev.text}' cannot be followed by '{tok.text}'.",
                position=tok.position,
            )

        tokens.append(tok)
        prev = tok

    if prev is None:
        raise FormulaFormatError("The formula must contain at least one valid token.")
    if prev.kind not in _OPERAND_END:
        raise FormulaFormatError(
            "The last token must be a number, variable, or closing parenthesis.",
            position=prev.position,
        )
    if depth != 0:
        raise FormulaFormatError("Unbalanced parentheses: too many opening parentheses.")

    return tuple(tokens)


def _may_follow(prev: Token, tok: Token) -> bool:
    if prev.kind in _OPERAND_END:
        return tok.kind in (TokenKind.operator, TokenKind.rparen)
    # after an operator or "("
    return tok.kind in (TokenKind.number, TokenKind.variable, TokenKind.lparen)

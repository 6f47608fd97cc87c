"""Arithmetic cell formula parsing and evaluation.

Public API::

    from cellcalc.formulas import Formula, FormulaError, FormulaFormatError
"""

from cellcalc.formulas.errors import (
    DIVISION_BY_ZERO,
    UNDEFINED_VARIABLE,
    FormulaError,
    FormulaFormatError,
)
from cellcalc.formulas.evaluator import Lookup, evaluate_tokens
from cellcalc.formulas.formula import Formula
from cellcalc.formulas.tokenizer import (
    Token,
    TokenKind,
    format_number,
    is_variable,
    tokenize,
)

__all__ = [
    "DIVISION_BY_ZERO",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "Lookup",
    "Token",
    "TokenKind",
    "UNDEFINED_VARIABLE",
    "evaluate_tokens",
    "format_number",
    "is_variable",
    "tokenize",
]

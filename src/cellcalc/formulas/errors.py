"""Error types for formula parsing and evaluation."""

from __future__ import annotations

from dataclasses import dataclass


class FormulaFormatError(ValueError):
    """Syntax error in a formula expression.

    Attributes:
        reason: Human-readable description.
        position: Character position where the error was detected.
    """

    def __init__(self, reason: str, position: int | None = None) -> None:
        self.reason = reason
        self.position = position
        full = f"Formula format error: {reason}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


@dataclass(frozen=True)
class FormulaError:
    """Result of a formula that could not be evaluated.

    This is a value, not an exception: it is stored as a cell value and
    propagates to every formula that reads it.
    """

    reason: str

    def __str__(self) -> str:
        return f"#ERROR: {self.reason}"


UNDEFINED_VARIABLE = "Undefined variable"
DIVISION_BY_ZERO = "Division by 0"

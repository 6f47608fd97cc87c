"""Exceptions raised by spreadsheet operations."""

from __future__ import annotations


class SpreadsheetError(Exception):
    """Base class for spreadsheet failures."""


class InvalidNameError(SpreadsheetError):
    """A cell name does not match the letters-then-digits grammar.

    Attributes:
        name: The rejected name.
    """

    def __init__(self, name: object) -> None:
        self.name = name
        super().__init__(f"Invalid cell name: {name!r}")


class CircularDependencyError(SpreadsheetError):
    """Raised when a change would make a cell depend on itself.

    Attributes:
        cycle_path: Cell names along the cycle, starting and ending with
            the cell that was being changed.
    """

    def __init__(self, cycle_path: list[str]) -> None:
        self.cycle_path = cycle_path
        super().__init__(f"Circular cell reference: {' -> '.join(cycle_path)}")


class ReadWriteError(SpreadsheetError):
    """Loading or saving a spreadsheet snapshot failed."""

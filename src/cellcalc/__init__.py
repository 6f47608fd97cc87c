"""cellcalc -- incremental formula evaluation over named cells."""

from cellcalc.dependency_graph import DependencyGraph
from cellcalc.errors import (
    CircularDependencyError,
    InvalidNameError,
    ReadWriteError,
    SpreadsheetError,
)
from cellcalc.formulas import Formula, FormulaError, FormulaFormatError
from cellcalc.spreadsheet import Spreadsheet

__version__ = "0.1.0"

__all__ = [
    "CircularDependencyError",
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "InvalidNameError",
    "ReadWriteError",
    "Spreadsheet",
    "SpreadsheetError",
    "__version__",
]

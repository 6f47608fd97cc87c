"""Cell store and incremental recalculation engine.

A spreadsheet holds an unbounded set of named cells.  Each cell has
*contents* (a number, text, or :class:`Formula`) and a *value* (a
number, text, or :class:`FormulaError`).  Cells that were never set, or
were set to the empty string, are not stored and read back as ``""``.

Editing a cell:

1. validates and canonicalizes the name,
2. classifies the new content (number, ``=formula``, or text),
3. rewires the cell's dependees in the dependency graph,
4. computes the recalculation order by depth-first search over
   dependents, rolling the graph back if the edited cell is reached
   again (circular dependency),
5. commits the cell and re-evaluates every formula in that order.

Usage::

    sheet = Spreadsheet()
    sheet.set_contents_of_cell("A1", "5")
    sheet.set_contents_of_cell("B1", "=A1*2")
    sheet.get_cell_value("B1")  # 10.0

The engine is single-threaded; callers sharing one instance across
threads must serialize all calls.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Union

from cellcalc.config import load_config
from cellcalc.dependency_graph import DependencyGraph
from cellcalc.errors import (
    CircularDependencyError,
    InvalidNameError,
    ReadWriteError,
    SpreadsheetError,
)
from cellcalc.formulas import Formula, FormulaError, FormulaFormatError, format_number, is_variable
from cellcalc.logging.events import (
    CIRCULAR_DEPENDENCY,
    FORMULA_FORMAT,
    INVALID_NAME,
    SNAPSHOT_READ_FAILED,
    SNAPSHOT_WRITE_FAILED,
    EventLevel,
    EventType,
    emit,
    make_cell_event,
    make_snapshot_event,
)
from cellcalc.snapshot import decode_snapshot, encode_snapshot, read_snapshot, write_snapshot

logger = logging.getLogger(__name__)

CellContents = Union[float, str, Formula]
CellValue = Union[float, str, FormulaError]


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


@dataclass
class Cell:
    """A non-empty cell.

    ``value`` equals ``contents`` for numbers and text; for formulas it
    holds the result of the most recent evaluation.
    """

    contents: CellContents
    value: CellValue
    string_form: str

    @classmethod
    def from_contents(cls, contents: CellContents) -> Cell:
        if isinstance(contents, Formula):
            # evaluated by the recalculation pass that follows every commit
            return cls(contents, FormulaError("Not evaluated"), f"={contents}")
        if isinstance(contents, float):
            return cls(contents, contents, format_number(contents))
        return cls(contents, contents, contents)


def parse_number(content: str) -> Optional[float]:
    """Return *content* as a float, or None if it is not a number.

    Python digit-group underscores (``1_000``) are not accepted.
    """
    if "_" in content:
        return None
    try:
        return float(content)
    except ValueError:
        return None


def parse_content(content: str) -> CellContents:
    """Classify raw cell input as number, formula, or text.

    Raises:
        FormulaFormatError: If *content* starts with ``=`` and the rest is
            not a valid formula.
    """
    number = parse_number(content)
    if number is not None:
        return number
    if content.startswith("="):
        return Formula(content[1:])
    return content


# ---------------------------------------------------------------------------
# Spreadsheet
# ---------------------------------------------------------------------------


class Spreadsheet:
    """A self-consistent set of cells with automatic recalculation.

    Parameters
    ----------
    source : str | os.PathLike | None
        Optional snapshot file to load.  Every stored cell is replayed
        through :meth:`set_contents_of_cell`; any failure is raised as
        :class:`ReadWriteError`.
    """

    def __init__(self, source: Union[str, os.PathLike, None] = None) -> None:
        self._cells: dict[str, Cell] = {}
        self._graph = DependencyGraph()
        self._changed = False

        if source is not None:
            self._load(source)

    @classmethod
    def from_snapshot(cls, document: Any) -> Spreadsheet:
        """Build a spreadsheet from an already-decoded snapshot document.

        Raises:
            ReadWriteError: If the document is malformed or any cell fails
                to load.
        """
        sheet = cls()
        try:
            sheet._replay(decode_snapshot(document))
        except (ValueError, SpreadsheetError) as exc:
            raise ReadWriteError(f"Error loading spreadsheet: {exc}") from exc
        return sheet

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def changed(self) -> bool:
        """True if the sheet was modified since it was created, loaded or saved."""
        return self._changed

    def get_names_of_all_nonempty_cells(self) -> set[str]:
        return set(self._cells)

    def get_cell_contents(self, name: str) -> CellContents:
        """Return the contents of a cell: a float, a string or a Formula.

        Raises:
            InvalidNameError: If *name* is not a valid cell name.
        """
        cell = self._cells.get(_normalize(name))
        return cell.contents if cell is not None else ""

    def get_cell_value(self, name: str) -> CellValue:
        """Return the value of a cell: a float, a string or a FormulaError.

        Raises:
            InvalidNameError: If *name* is not a valid cell name.
        """
        cell = self._cells.get(_normalize(name))
        return cell.value if cell is not None else ""

    def get_direct_dependents(self, name: str) -> set[str]:
        """Names of the cells whose formulas reference *name* directly."""
        return self._graph.get_dependents(_normalize(name))

    def formula_errors(self) -> dict[str, FormulaError]:
        """Return every cell whose current value is a FormulaError."""
        return {
            name: cell.value
            for name, cell in self._cells.items()
            if isinstance(cell.value, FormulaError)
        }

    def __getitem__(self, name: str) -> CellValue:
        return self.get_cell_value(name)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str) or not is_variable(name):
            return False
        return name.upper() in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._cells))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_contents_of_cell(self, name: str, content: str) -> list[str]:
        """Set a cell from raw input and recalculate everything downstream.

        *content* is a number if it parses as one, a formula if it starts
        with ``=``, and text otherwise.  Setting ``""`` empties the cell.

        Returns:
            The edited cell's name followed by every cell that depends on
            it directly or indirectly, in an order that is safe for
            recalculation.

        Raises:
            InvalidNameError: If *name* is not a valid cell name.
            FormulaFormatError: If a ``=`` formula is malformed.
            CircularDependencyError: If the formula would make the cell
                depend on itself.  The sheet is left unchanged.
        """
        try:
            name = _normalize(name)
        except InvalidNameError:
            emit(make_cell_event(
                EventType.cell_rejected, EventLevel.warning, "Invalid cell name",
                cell=str(name), content=content, error_code=INVALID_NAME,
            ))
            raise

        try:
            contents = parse_content(content)
        except FormulaFormatError as exc:
            emit(make_cell_event(
                EventType.cell_rejected, EventLevel.warning, exc.reason,
                cell=name, content=content, error_code=FORMULA_FORMAT,
            ))
            raise

        new_dependees: Iterable[str] = ()
        if isinstance(contents, Formula):
            new_dependees = contents.variables()

        old_dependees = self._graph.get_dependees(name)
        self._graph.replace_dependees(name, new_dependees)
        try:
            order = self._recalculation_order(name)
        except CircularDependencyError as exc:
            self._graph.replace_dependees(name, old_dependees)
            emit(make_cell_event(
                EventType.cell_rejected, EventLevel.warning, str(exc),
                cell=name, content=content, error_code=CIRCULAR_DEPENDENCY,
                extra={"cycle_path": exc.cycle_path},
            ))
            raise

        if isinstance(contents, str) and not contents:
            self._cells.pop(name, None)
        else:
            self._cells[name] = Cell.from_contents(contents)

        self._recalculate(order)
        self._changed = True
        return order

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Return the snapshot document for the current non-empty cells."""
        return encode_snapshot({name: cell.string_form for name, cell in self._cells.items()})

    def save(
        self,
        destination: Union[str, os.PathLike],
        indent: Optional[int] = None,
        *,
        config_dir: Union[str, os.PathLike, None] = None,
    ) -> None:
        """Write the sheet to *destination* as a JSON snapshot.

        Args:
            destination: File path; an existing file is overwritten.
            indent: JSON indentation; 0 writes compact JSON.  Defaults to
                ``snapshot_indent`` from ``cellcalc.yaml`` in *config_dir*.
            config_dir: Directory holding ``cellcalc.yaml``.  When None the
                built-in defaults apply.

        Raises:
            ReadWriteError: If the file cannot be written.
            ValueError: If ``cellcalc.yaml`` is not a mapping.
        """
        if indent is None:
            indent = load_config(config_dir)["snapshot_indent"]
        try:
            write_snapshot(destination, self.snapshot(), indent=indent)
        except (OSError, ValueError) as exc:
            emit(make_snapshot_event(
                EventType.snapshot_failed, EventLevel.error, str(exc),
                path=str(destination), error_code=SNAPSHOT_WRITE_FAILED,
            ))
            raise ReadWriteError(f"Error saving spreadsheet: {exc}") from exc

        self._changed = False
        emit(make_snapshot_event(
            EventType.snapshot_saved, EventLevel.info, "Spreadsheet saved",
            path=str(destination), cell_count=len(self._cells),
        ))

    def _load(self, source: Union[str, os.PathLike]) -> None:
        try:
            self._replay(read_snapshot(source))
        except (OSError, ValueError, SpreadsheetError) as exc:
            emit(make_snapshot_event(
                EventType.snapshot_failed, EventLevel.error, str(exc),
                path=str(source), error_code=SNAPSHOT_READ_FAILED,
            ))
            raise ReadWriteError(f"Error loading spreadsheet: {exc}") from exc

        emit(make_snapshot_event(
            EventType.snapshot_loaded, EventLevel.info, "Spreadsheet loaded",
            path=str(source), cell_count=len(self._cells),
        ))

    def _replay(self, pairs: list[tuple[str, str]]) -> None:
        for name, string_form in pairs:
            self.set_contents_of_cell(name, string_form)
        self._changed = False

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def _recalculation_order(self, start: str) -> list[str]:
        """Return *start* and all its transitive dependents in topological order.

        Iterative depth-first search over dependents; a node is emitted
        after all of its dependents are finished, and the result is
        reversed.  Reaching *start* again means a cycle.

        Raises:
            CircularDependencyError: If *start* is its own transitive dependent.
        """
        finished: list[str] = []
        visited = {start}
        # frames of (node, remaining dependents); the stack is the current path
        stack: list[tuple[str, Iterator[str]]] = [
            (start, iter(sorted(self._graph.get_dependents(start))))
        ]

        while stack:
            node, pending = stack[-1]
            for dependent in pending:
                if dependent == start:
                    raise CircularDependencyError([n for n, _ in stack] + [start])
                if dependent not in visited:
                    visited.add(dependent)
                    stack.append(
                        (dependent, iter(sorted(self._graph.get_dependents(dependent))))
                    )
                    break
            else:
                stack.pop()
                finished.append(node)

        finished.reverse()
        return finished

    def _recalculate(self, order: list[str]) -> None:
        """Re-evaluate every formula cell in *order*."""
        evaluated = 0
        for name in order:
            cell = self._cells.get(name)
            if cell is None:
                continue
            if isinstance(cell.contents, Formula):
                cell.value = cell.contents.evaluate(self._lookup)
                evaluated += 1
            else:
                cell.value = cell.contents
        logger.debug("Recalculated %d formula cell(s) from %s", evaluated, order[0])

    def _lookup(self, name: str) -> Optional[float]:
        """Numeric value of a cell, or None if it is empty, text or an error."""
        cell = self._cells.get(name)
        if cell is None or not isinstance(cell.value, float):
            return None
        return cell.value

    def __repr__(self) -> str:
        return f"Spreadsheet(cells={len(self._cells)}, changed={self._changed})"


def _normalize(name: str) -> str:
    """Validate a cell name and return its canonical (upper-case) form.

    Raises:
        InvalidNameError: If *name* is not letters followed by digits.
    """
    if not isinstance(name, str) or not is_variable(name):
        raise InvalidNameError(name)
    return name.upper()

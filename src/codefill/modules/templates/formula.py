from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import Protocol

from openpyxl.utils.cell import get_column_letter

from codefill.modules.templates.models import CellKind
from codefill.modules.templates.schemas import CellValue, Sheet


class FormulaCellWriteError(ValueError):
    pass


@dataclass(frozen=True)
class CellWrite:
    sheet: str
    row: int
    col: int
    value: CellValue


def cell_address(row: int, col: int) -> str:
    """A1-style address for zero-based ``row``/``col``."""
    return f"{get_column_letter(col + 1)}{row + 1}"


class FormulaEngine(Protocol):
    def init(self, sheets: Sequence[Sheet]) -> None: ...

    def classify(self, sheet: str, row: int, col: int) -> CellKind: ...

    def is_formula(self, sheet: str, row: int, col: int) -> bool: ...

    def apply_batch(self, writes: Iterable[CellWrite]) -> int: ...

    def get_value(self, sheet: str, row: int, col: int) -> CellValue: ...

    def batch(self) -> AbstractContextManager[None]: ...

    def dispose(self) -> None: ...


class BatchingEngine:
    """Recalculation bookkeeping shared by engine implementations.

    Writes outside a ``batch()`` region recalculate immediately; writes inside
    one are folded into a single recalculation when the outermost region exits.
    """

    def __init__(self) -> None:
        self._suspended = 0
        self._dirty = False
        self.recalculations = 0

    def _reset_batching(self) -> None:
        self._suspended = 0
        self._dirty = False
        self.recalculations = 0

    def _recalculate(self) -> None:
        self.recalculations += 1

    def _mark_dirty(self) -> None:
        if self._suspended:
            self._dirty = True
        else:
            self._recalculate()

    @contextmanager
    def batch(self) -> Iterator[None]:
        self._suspended += 1
        try:
            yield
        finally:
            self._suspended -= 1
            if not self._suspended and self._dirty:
                self._dirty = False
                self._recalculate()


class SheetFormulaEngine(BatchingEngine):
    """In-process engine over ``Sheet`` data.

    It does not evaluate formulas. It classifies cells, guards formula cells
    against overwrites and counts recalculation passes so batching can be
    observed. A cell is a formula when ``Sheet.formulas`` has its address or
    its text starts with ``=``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._cells: dict[str, list[list[CellValue]]] = {}
        self._formulas: dict[str, dict[str, str]] = {}
        self._initialised = False

    def init(self, sheets: Sequence[Sheet]) -> None:
        self._cells = {s.name: [list(row) for row in s.cells] for s in sheets}
        self._formulas = {s.name: dict(s.formulas or {}) for s in sheets}
        self._initialised = True
        self._reset_batching()

    def _grid(self, sheet: str) -> list[list[CellValue]]:
        if not self._initialised:
            raise RuntimeError("Formula engine used before init()")
        try:
            return self._cells[sheet]
        except KeyError as e:
            raise ValueError(f"Unknown sheet: {sheet}") from e

    def _raw(self, sheet: str, row: int, col: int) -> CellValue:
        grid = self._grid(sheet)
        if row < 0 or row >= len(grid) or col < 0 or col >= len(grid[row]):
            return None
        return grid[row][col]

    def classify(self, sheet: str, row: int, col: int) -> CellKind:
        if cell_address(row, col) in self._formulas.get(sheet, {}):
            return CellKind.FORMULA
        value = self._raw(sheet, row, col)
        if isinstance(value, str) and value.startswith("="):
            return CellKind.FORMULA
        if value is None or value == "":
            return CellKind.EMPTY
        return CellKind.INPUT

    def is_formula(self, sheet: str, row: int, col: int) -> bool:
        return self.classify(sheet, row, col) == CellKind.FORMULA

    def get_value(self, sheet: str, row: int, col: int) -> CellValue:
        formula = self._formulas.get(sheet, {}).get(cell_address(row, col))
        if formula is not None:
            return formula
        return self._raw(sheet, row, col)

    def apply_batch(self, writes: Iterable[CellWrite]) -> int:
        writes = list(writes)
        for w in writes:
            grid = self._grid(w.sheet)
            if w.row < 0 or w.row >= len(grid) or w.col < 0 or w.col >= len(grid[w.row]):
                raise ValueError(f"{w.sheet}!{cell_address(w.row, w.col)} is outside the sheet")
            if self.is_formula(w.sheet, w.row, w.col):
                raise FormulaCellWriteError(
                    f"{w.sheet}!{cell_address(w.row, w.col)} holds a formula"
                )
        for w in writes:
            self._cells[w.sheet][w.row][w.col] = w.value
        if writes:
            self._mark_dirty()
        return len(writes)

    def dispose(self) -> None:
        self._cells = {}
        self._formulas = {}
        self._initialised = False

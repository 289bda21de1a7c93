"""openpyxl bridge between XLSX/XLSM bytes and ``Sheet`` data."""

from __future__ import annotations

import io
import time
import zipfile
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time as dt_time
from decimal import Decimal

from openpyxl import load_workbook
from openpyxl.utils.cell import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.formula import ArrayFormula

from codefill.core.logging import get_logger, log_event, log_exception, monotonic_ms
from codefill.modules.codification.schemas import CodifiedItem
from codefill.modules.templates.formula import (
    BatchingEngine,
    CellWrite,
    FormulaCellWriteError,
    cell_address,
)
from codefill.modules.templates.models import CellKind
from codefill.modules.templates.schemas import CellValue, PopulationResult, Sheet
from codefill.modules.templates.service import populate_template

logger = get_logger(__name__)


class WorkbookLoadError(ValueError):
    pass


def _open(body: bytes, *, keep_vba: bool = False) -> Workbook:
    if not body:
        raise WorkbookLoadError("Empty workbook upload")
    try:
        return load_workbook(io.BytesIO(body), keep_vba=keep_vba)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as e:
        log_exception(logger, "workbook.load.error", byte_size=len(body), keep_vba=keep_vba)
        raise WorkbookLoadError(f"Unreadable workbook: {e}") from e


def _cell_value(value: object) -> CellValue:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    return str(value)


def _formula_text(value: object) -> str | None:
    if isinstance(value, ArrayFormula):
        return value.text
    if isinstance(value, str) and value.startswith("="):
        return value
    return None


def _extract_sheets(wb: Workbook) -> list[Sheet]:
    sheets: list[Sheet] = []
    for ws in wb.worksheets:
        cells: list[list[CellValue]] = []
        formulas: dict[str, str] = {}
        for r, row in enumerate(
            ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column, values_only=True)
        ):
            out: list[CellValue] = []
            for c, value in enumerate(row):
                formula = _formula_text(value)
                if formula is not None:
                    formulas[cell_address(r, c)] = formula
                    out.append(None)
                else:
                    out.append(_cell_value(value))
            cells.append(out)

        widths: list[float | None] = []
        for c in range(1, ws.max_column + 1):
            dim = ws.column_dimensions.get(get_column_letter(c))
            widths.append(dim.width if dim is not None else None)

        sheets.append(
            Sheet(name=ws.title, cells=cells, formulas=formulas or None, column_widths=widths)
        )
    return sheets


def load_sheets(body: bytes) -> list[Sheet]:
    return _extract_sheets(_open(body))


class WorkbookFormulaEngine(BatchingEngine):
    """Formula engine writing straight into an openpyxl workbook.

    openpyxl does not evaluate formulas, so a recalculation flags the workbook
    for a full calculation the next time a spreadsheet application opens it.
    """

    def __init__(self, wb: Workbook) -> None:
        super().__init__()
        self._wb: Workbook | None = wb

    def _sheet(self, sheet: str):
        if self._wb is None:
            raise RuntimeError("Formula engine used after dispose()")
        if sheet not in self._wb.sheetnames:
            raise ValueError(f"Unknown sheet: {sheet}")
        return self._wb[sheet]

    def init(self, sheets: Sequence[Sheet]) -> None:
        for sheet in sheets:
            self._sheet(sheet.name)
        self._reset_batching()

    def _raw(self, sheet: str, row: int, col: int) -> object:
        ws = self._sheet(sheet)
        if row < 0 or col < 0 or row >= ws.max_row or col >= ws.max_column:
            return None
        return ws.cell(row=row + 1, column=col + 1).value

    def classify(self, sheet: str, row: int, col: int) -> CellKind:
        value = self._raw(sheet, row, col)
        if _formula_text(value) is not None:
            return CellKind.FORMULA
        if value is None or value == "":
            return CellKind.EMPTY
        return CellKind.INPUT

    def is_formula(self, sheet: str, row: int, col: int) -> bool:
        return self.classify(sheet, row, col) == CellKind.FORMULA

    def get_value(self, sheet: str, row: int, col: int) -> CellValue:
        value = self._raw(sheet, row, col)
        formula = _formula_text(value)
        return formula if formula is not None else _cell_value(value)

    def apply_batch(self, writes: Iterable[CellWrite]) -> int:
        writes = list(writes)
        for w in writes:
            ws = self._sheet(w.sheet)
            if w.row < 0 or w.col < 0 or w.row >= ws.max_row or w.col >= ws.max_column:
                raise ValueError(f"{w.sheet}!{cell_address(w.row, w.col)} is outside the sheet")
            if self.is_formula(w.sheet, w.row, w.col):
                raise FormulaCellWriteError(
                    f"{w.sheet}!{cell_address(w.row, w.col)} holds a formula"
                )
        for w in writes:
            value = None if w.value == "" else w.value
            self._wb[w.sheet].cell(row=w.row + 1, column=w.col + 1).value = value
        if writes:
            self._mark_dirty()
        return len(writes)

    def _recalculate(self) -> None:
        super()._recalculate()
        if self._wb is not None:
            self._wb.calculation.fullCalcOnLoad = True

    def dispose(self) -> None:
        self._wb = None


def _changed_cells(before: Sequence[Sheet], after: Sequence[Sheet]) -> list[CellWrite]:
    writes: list[CellWrite] = []
    for old, new in zip(before, after):
        for r, (old_row, new_row) in enumerate(zip(old.cells, new.cells)):
            for c, (old_value, new_value) in enumerate(zip(old_row, new_row)):
                if old_value != new_value or type(old_value) is not type(new_value):
                    writes.append(CellWrite(sheet=old.name, row=r, col=c, value=new_value))
    return writes


def populate_workbook(
    body: bytes,
    items: Sequence[CodifiedItem],
    *,
    filename: str = "template.xlsx",
    clear_unfilled: bool = False,
) -> tuple[bytes, PopulationResult]:
    """Populate a workbook's placeholders and return the saved bytes.

    Only cells whose value changed are written, and formula cells are never
    touched, so formulas, styles and macros (for ``.xlsm``) survive.
    """
    start = time.monotonic()
    keep_vba = filename.lower().endswith(".xlsm")
    wb = _open(body, keep_vba=keep_vba)
    sheets = _extract_sheets(wb)

    result = populate_template(sheets, items, clear_unfilled=clear_unfilled)

    writes = _changed_cells(sheets, result.sheets)
    engine = WorkbookFormulaEngine(wb)
    engine.init(sheets)
    try:
        with engine.batch():
            engine.apply_batch(writes)
    finally:
        engine.dispose()

    out = io.BytesIO()
    wb.save(out)
    data = out.getvalue()

    log_event(
        logger,
        "workbook.populate.finish",
        filename=filename,
        keep_vba=keep_vba,
        sheet_count=len(sheets),
        cells_written=len(writes),
        matched=result.stats.matched,
        unmatched=result.stats.unmatched,
        fallbacks_inserted=result.stats.fallbacks_inserted,
        overflow_count=result.stats.overflow_count,
        byte_size=len(data),
        duration_ms=monotonic_ms(start),
    )
    return data, result

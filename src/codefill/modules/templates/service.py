"""Two-pass template population from codified items.

Pass 1 writes specific ``<code>`` placeholders and records, per sheet, which
items were consumed. Pass 2 allocates category fallback rows first-in
first-out from per-category pools. Default sets skip items already consumed
on the same sheet; numbered sets always receive the whole pool.

The populator never mutates its inputs and never adds or removes rows. It
does not log: instrumentation is returned as ``PopulationResult.events`` and
optionally pushed to a ``PopulationObserver``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from codefill.modules.codification.categories import normalize_category
from codefill.modules.codification.models import DataType
from codefill.modules.codification.schemas import CodifiedItem
from codefill.modules.templates.models import DEFAULT_SET_KEY, PopulationEventKind
from codefill.modules.templates.scanner import find_tokens, scan
from codefill.modules.templates.schemas import (
    CategoryFallbackRow,
    CategoryOverflow,
    CellValue,
    FallbackUsage,
    MatchedPlaceholder,
    PopulationEvent,
    PopulationResult,
    PopulationStats,
    Sheet,
)

_WHOLE_PLACEHOLDER_RE = re.compile(r"^<[^<>]+>$")
_NUMBER_NOISE_RE = re.compile(r"[,\s£$€%]")


class PopulationObserver:
    """Callback hooks for hosts that want live progress; all no-ops by default."""

    def on_match(self, placeholder: str, item: CodifiedItem) -> None:
        pass

    def on_unmatched(self, placeholder: str) -> None:
        pass

    def on_fallback_filled(
        self, row: CategoryFallbackRow, item: CodifiedItem, category: str
    ) -> None:
        pass

    def on_overflow(self, overflow: CategoryOverflow) -> None:
        pass


def _coerce_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, Decimal):
        return float(value)
    text = _NUMBER_NOISE_RE.sub("", str(value))
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    if parsed == parsed.to_integral_value():
        return int(parsed)
    return float(parsed)


def format_value_for_template(value: Any, data_type: DataType | str) -> CellValue:
    """Convert an item value to what a template cell should hold.

    Percentages above 1 are read as whole-number percentages ("5" meaning 5%)
    and divided by 100. Intentional values over 100% are therefore scaled
    down too; upstream data does not distinguish the two conventions.
    """
    if value is None:
        return ""
    try:
        data_type = DataType(data_type)
    except ValueError:
        return str(value)

    if data_type in (DataType.CURRENCY, DataType.NUMBER):
        number = _coerce_number(value)
        return 0 if number is None else number

    if data_type == DataType.PERCENTAGE:
        number = _coerce_number(value)
        if number is None:
            return 0
        return number / 100 if number > 1 else number

    return str(value)


def _as_text(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _substitute(current: CellValue, placeholder: str, replacement: CellValue) -> CellValue:
    """Replace one placeholder occurrence, keeping surrounding text."""
    text = _as_text(current)
    if text == placeholder:
        return replacement
    return text.replace(placeholder, _as_text(replacement), 1)


def _clone_sheets(sheets: Sequence[Sheet]) -> list[Sheet]:
    return [
        Sheet(
            name=sheet.name,
            cells=[list(row) for row in sheet.cells],
            formulas=dict(sheet.formulas) if sheet.formulas is not None else None,
            styles=dict(sheet.styles) if sheet.styles is not None else None,
            column_widths=(
                list(sheet.column_widths) if sheet.column_widths is not None else None
            ),
        )
        for sheet in sheets
    ]


def build_code_lookup(items: Sequence[CodifiedItem]) -> dict[str, CodifiedItem]:
    """Map item codes, with and without angle brackets, to fillable items.

    When two items share a code the later one wins.
    """
    lookup: dict[str, CodifiedItem] = {}
    for item in items:
        if not item.is_fillable or not item.item_code:
            continue
        lookup[item.item_code] = item
        lookup[item.item_code.removeprefix("<").removesuffix(">")] = item
    return lookup


def resolve_placeholder(
    placeholder: str, lookup: dict[str, CodifiedItem]
) -> CodifiedItem | None:
    inner = placeholder
    if placeholder.startswith("<") and placeholder.endswith(">"):
        inner = placeholder[1:-1]
    for candidate in (placeholder, inner):
        item = lookup.get(candidate)
        if item is not None:
            return item
        lowered = candidate.lower()
        for code, code_item in lookup.items():
            if code.lower() == lowered:
                return code_item
    return None


def build_category_pools(items: Sequence[CodifiedItem]) -> dict[str, list[CodifiedItem]]:
    pools: dict[str, list[CodifiedItem]] = {}
    for item in items:
        if not item.is_fillable or item.is_computed_total:
            continue
        pools.setdefault(normalize_category(item.category), []).append(item)
    return pools


def clear_unfilled_placeholders(sheets: Sequence[Sheet]) -> int:
    """Blank out every remaining placeholder in place; returns cells changed."""
    cleared = 0
    for sheet in sheets:
        for row in sheet.cells:
            for col, cell in enumerate(row):
                if not isinstance(cell, str) or not find_tokens(cell):
                    continue
                if _WHOLE_PLACEHOLDER_RE.match(cell):
                    row[col] = ""
                    cleared += 1
                    continue
                cleaned = cell
                for token in find_tokens(cell):
                    cleaned = cleaned.replace(token, "", 1)
                cleaned = cleaned.strip()
                if cleaned != cell:
                    row[col] = cleaned
                    cleared += 1
    return cleared


class _Recorder:
    def __init__(self, observer: PopulationObserver | None) -> None:
        self.observer = observer
        self.events: list[PopulationEvent] = []

    def match(self, placeholder: str, item: CodifiedItem) -> None:
        self.events.append(
            PopulationEvent(
                kind=PopulationEventKind.MATCH,
                data={
                    "placeholder": placeholder,
                    "item_id": item.id,
                    "item_code": item.item_code,
                },
            )
        )
        if self.observer:
            self.observer.on_match(placeholder, item)

    def unmatched(self, placeholder: str) -> None:
        self.events.append(
            PopulationEvent(kind=PopulationEventKind.UNMATCHED, data={"placeholder": placeholder})
        )
        if self.observer:
            self.observer.on_unmatched(placeholder)

    def fallback(self, row: CategoryFallbackRow, item: CodifiedItem, category: str) -> None:
        self.events.append(
            PopulationEvent(
                kind=PopulationEventKind.FALLBACK_FILLED,
                data={
                    "sheet": row.sheet_name,
                    "row": row.row,
                    "category": category,
                    "set_key": row.set_key,
                    "item_id": item.id,
                },
            )
        )
        if self.observer:
            self.observer.on_fallback_filled(row, item, category)

    def overflow(self, overflow: CategoryOverflow) -> None:
        self.events.append(
            PopulationEvent(
                kind=PopulationEventKind.OVERFLOW,
                data={
                    "category": overflow.category,
                    "sheet": overflow.sheet_name,
                    "set_key": overflow.set_key,
                    "slots_available": overflow.slots_available,
                    "items_inserted": overflow.items_inserted,
                    "overflowed": len(overflow.items),
                },
            )
        )
        if self.observer:
            self.observer.on_overflow(overflow)


def populate_template(
    sheets: Sequence[Sheet],
    items: Sequence[CodifiedItem],
    *,
    observer: PopulationObserver | None = None,
    clear_unfilled: bool = False,
) -> PopulationResult:
    populated = _clone_sheets(sheets)
    scanned = scan(populated)
    recorder = _Recorder(observer)

    # Pass 1: specific codes.
    code_lookup = build_code_lookup(items)
    matched: dict[str, MatchedPlaceholder] = {}
    unmatched: list[str] = []
    resolved: dict[str, CodifiedItem | None] = {}

    for occurrence in scanned.specific:
        placeholder = occurrence.placeholder
        if placeholder in resolved:
            continue
        item = resolve_placeholder(placeholder, code_lookup)
        resolved[placeholder] = item
        if item is None:
            unmatched.append(placeholder)
            recorder.unmatched(placeholder)
            continue
        matched[placeholder] = MatchedPlaceholder(
            value=item.value,
            item_code=item.item_code or placeholder,
            original_name=item.original_name,
            item_id=item.id,
        )
        recorder.match(placeholder, item)

    consumed_by_sheet: dict[int, set[str]] = {}
    for occurrence in scanned.specific:
        item = resolved[occurrence.placeholder]
        if item is None:
            continue
        row = populated[occurrence.sheet_index].cells[occurrence.row]
        row[occurrence.col] = _substitute(
            row[occurrence.col],
            occurrence.placeholder,
            format_value_for_template(item.value, item.data_type),
        )
        consumed_by_sheet.setdefault(occurrence.sheet_index, set()).add(item.id)

    # Pass 2: category fallbacks, grouped per sheet, category and set.
    pools = build_category_pools(items)
    groups: dict[tuple[int, str, str], list[CategoryFallbackRow]] = {}
    for fallback_row in scanned.fallback_rows:
        key = (fallback_row.sheet_index, fallback_row.category, fallback_row.set_key)
        groups.setdefault(key, []).append(fallback_row)

    fallbacks_used: list[FallbackUsage] = []
    overflow_items: list[CategoryOverflow] = []
    fallbacks_inserted = 0

    for (sheet_index, category, set_key), rows in groups.items():
        sheet = populated[sheet_index]
        pool = pools.get(category, [])
        if set_key == DEFAULT_SET_KEY:
            consumed = consumed_by_sheet.get(sheet_index, set())
            available = [item for item in pool if item.id not in consumed]
        else:
            available = list(pool)

        inserted: list[CodifiedItem] = []
        for fallback_row, item in zip(rows, available):
            cells = sheet.cells[fallback_row.row]
            if fallback_row.name_col is not None and fallback_row.name_placeholder:
                cells[fallback_row.name_col] = _substitute(
                    cells[fallback_row.name_col], fallback_row.name_placeholder, item.original_name
                )
            if fallback_row.value_col is not None and fallback_row.value_placeholder:
                cells[fallback_row.value_col] = _substitute(
                    cells[fallback_row.value_col],
                    fallback_row.value_placeholder,
                    format_value_for_template(item.value, item.data_type),
                )
            inserted.append(item)
            recorder.fallback(fallback_row, item, category)

        fallbacks_inserted += len(inserted)
        if inserted:
            fallbacks_used.append(
                FallbackUsage(
                    sheet_index=sheet_index,
                    sheet_name=sheet.name,
                    category=category,
                    set_key=set_key,
                    items=inserted,
                )
            )

        leftover = available[len(rows):]
        if leftover or not pool:
            overflow = CategoryOverflow(
                category=category,
                sheet_name=sheet.name,
                set_key=set_key,
                slots_available=len(rows),
                items_inserted=len(inserted),
                items=leftover,
            )
            overflow_items.append(overflow)
            recorder.overflow(overflow)

    cleared = clear_unfilled_placeholders(populated) if clear_unfilled else 0

    stats = PopulationStats(
        total_placeholders=len(resolved) + len(scanned.fallback_rows),
        matched=len(matched),
        unmatched=len(unmatched),
        fallbacks_inserted=fallbacks_inserted,
        overflow_count=sum(len(o.items) for o in overflow_items),
        placeholders_cleared=cleared,
    )
    return PopulationResult(
        sheets=populated,
        matched_placeholders=matched,
        unmatched_placeholders=unmatched,
        fallbacks_used=fallbacks_used,
        overflow_items=overflow_items,
        stats=stats,
        events=recorder.events,
    )

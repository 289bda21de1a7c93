"""Placeholder discovery and classification over template sheets.

Three token shapes are recognised, checked in this order:

* ``<all.CATEGORY.name.N>`` / ``<all.CATEGORY.value.N>``: slot in numbered
  copy ``N`` of a category's items
* ``<all.CATEGORY.name>`` / ``<all.CATEGORY.value>``: slot in the default
  category set, deduplicated per sheet against specific codes
* anything else in angle brackets: a specific item code

Fallback rows carry the normalized category, so a row is one slot however
its two halves spell the category.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from codefill.modules.codification.categories import normalize_category
from codefill.modules.templates.models import DEFAULT_SET_KEY, PlaceholderKind
from codefill.modules.templates.schemas import (
    CategoryFallbackRow,
    ClassifiedToken,
    PlaceholderOccurrence,
    ScanResult,
    Sheet,
)

TOKEN_RE = re.compile(r"<[^<>]+>")
NUMBERED_SET_RE = re.compile(r"<all\.([a-z.]+)\.(name|value)\.(\d+)>")
DEFAULT_SET_RE = re.compile(r"<all\.([a-z.]+)\.(name|value)>(?!\.\d)")


def find_tokens(text: str) -> list[str]:
    """All non-overlapping ``<...>`` tokens in ``text``, left to right."""
    if not text or "<" not in text:
        return []
    return TOKEN_RE.findall(text)


def classify_token(token: str) -> ClassifiedToken:
    numbered = NUMBERED_SET_RE.fullmatch(token)
    if numbered:
        return ClassifiedToken(
            kind=PlaceholderKind.NUMBERED_FALLBACK,
            placeholder=token,
            category=numbered.group(1),
            field=numbered.group(2),
            set_key=str(int(numbered.group(3))),
        )
    default = DEFAULT_SET_RE.fullmatch(token)
    if default:
        return ClassifiedToken(
            kind=PlaceholderKind.DEFAULT_FALLBACK,
            placeholder=token,
            category=default.group(1),
            field=default.group(2),
            set_key=DEFAULT_SET_KEY,
        )
    return ClassifiedToken(kind=PlaceholderKind.SPECIFIC, placeholder=token)


def _set_order(set_key: str) -> int:
    return -1 if set_key == DEFAULT_SET_KEY else int(set_key)


def scan(sheets: Sequence[Sheet]) -> ScanResult:
    specific: list[PlaceholderOccurrence] = []
    rows: dict[tuple[int, int, str, str], CategoryFallbackRow] = {}

    for sheet_index, sheet in enumerate(sheets):
        for row_index, row in enumerate(sheet.cells):
            for col_index, cell in enumerate(row):
                if not isinstance(cell, str):
                    continue
                for token in find_tokens(cell):
                    classified = classify_token(token)
                    if classified.kind == PlaceholderKind.SPECIFIC:
                        specific.append(
                            PlaceholderOccurrence(
                                sheet_index=sheet_index,
                                sheet_name=sheet.name,
                                row=row_index,
                                col=col_index,
                                placeholder=token,
                                cell_text=cell,
                            )
                        )
                        continue

                    # Both halves of a row share one slot even when spelled differently.
                    category = normalize_category(classified.category)
                    key = (sheet_index, row_index, category, classified.set_key)
                    fallback = rows.get(key)
                    if fallback is None:
                        fallback = CategoryFallbackRow(
                            sheet_index=sheet_index,
                            sheet_name=sheet.name,
                            row=row_index,
                            category=category,
                            set_key=classified.set_key,
                        )
                        rows[key] = fallback
                    if classified.field == "name":
                        fallback.name_col = col_index
                        fallback.name_placeholder = token
                    else:
                        fallback.value_col = col_index
                        fallback.value_placeholder = token

    # sorted() is stable, so rows sharing (sheet, row, set) keep discovery order.
    fallback_rows = sorted(
        rows.values(), key=lambda r: (r.sheet_index, r.row, _set_order(r.set_key))
    )
    return ScanResult(specific=specific, fallback_rows=fallback_rows)

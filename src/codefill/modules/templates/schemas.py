from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field

from codefill.modules.codification.schemas import CodifiedItem
from codefill.modules.templates.models import PlaceholderKind, PopulationEventKind

CellValue = Union[str, int, float, bool, None]


class Sheet(BaseModel):
    name: str
    cells: list[list[CellValue]] = Field(default_factory=list)
    formulas: dict[str, str] | None = None
    styles: dict[str, Any] | None = None
    column_widths: list[float | None] | None = None


class PlaceholderOccurrence(BaseModel):
    sheet_index: int
    sheet_name: str
    row: int
    col: int
    placeholder: str
    cell_text: str


class ClassifiedToken(BaseModel):
    kind: PlaceholderKind
    placeholder: str
    category: str | None = None
    field: Literal["name", "value"] | None = None
    set_key: str | None = None


class CategoryFallbackRow(BaseModel):
    sheet_index: int
    sheet_name: str
    row: int
    category: str
    set_key: str = "default"
    name_col: int | None = None
    name_placeholder: str | None = None
    value_col: int | None = None
    value_placeholder: str | None = None

    @property
    def is_numbered(self) -> bool:
        return self.set_key != "default"


class ScanResult(BaseModel):
    specific: list[PlaceholderOccurrence] = Field(default_factory=list)
    fallback_rows: list[CategoryFallbackRow] = Field(default_factory=list)


class MatchedPlaceholder(BaseModel):
    value: Any = None
    item_code: str
    original_name: str
    item_id: str


class FallbackUsage(BaseModel):
    sheet_index: int
    sheet_name: str
    category: str
    set_key: str
    items: list[CodifiedItem] = Field(default_factory=list)


class CategoryOverflow(BaseModel):
    category: str
    sheet_name: str
    set_key: str
    slots_available: int
    items_inserted: int
    items: list[CodifiedItem] = Field(default_factory=list)


class PopulationStats(BaseModel):
    total_placeholders: int = 0
    matched: int = 0
    unmatched: int = 0
    fallbacks_inserted: int = 0
    overflow_count: int = 0
    placeholders_cleared: int = 0


class PopulationEvent(BaseModel):
    kind: PopulationEventKind
    data: dict[str, Any] = Field(default_factory=dict)


class PopulationResult(BaseModel):
    sheets: list[Sheet]
    matched_placeholders: dict[str, MatchedPlaceholder] = Field(default_factory=dict)
    unmatched_placeholders: list[str] = Field(default_factory=list)
    fallbacks_used: list[FallbackUsage] = Field(default_factory=list)
    overflow_items: list[CategoryOverflow] = Field(default_factory=list)
    stats: PopulationStats = Field(default_factory=PopulationStats)
    events: list[PopulationEvent] = Field(default_factory=list)


class ScanRequest(BaseModel):
    sheets: list[Sheet]


class PopulateRequest(BaseModel):
    sheets: list[Sheet]
    items: list[CodifiedItem]
    clear_unfilled: bool | None = None

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from codefill.modules.codification.models import FILLABLE_STATUSES, DataType, MappingStatus


class RawItem(BaseModel):
    label: str
    value: Any = None
    currency: str | None = None
    category: str | None = None


class AliasEntry(BaseModel):
    normalized_alias: str
    canonical_code: str
    canonical_code_id: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: str = "system_seed"


class AliasMatch(BaseModel):
    canonical_code: str
    canonical_code_id: str
    confidence: float
    source: str


class CodifiedItem(BaseModel):
    id: str
    original_name: str
    item_code: str | None = None
    suggested_code: str | None = None
    suggested_code_id: str | None = None
    value: Any = None
    data_type: DataType = DataType.NUMBER
    category: str = "Uncategorized"
    mapping_status: MappingStatus = MappingStatus.PENDING_REVIEW
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_computed_total: bool = False

    @property
    def is_fillable(self) -> bool:
        return self.mapping_status in FILLABLE_STATUSES


class FastPassStats(BaseModel):
    matched: int = 0
    pending_review: int = 0
    total: int = 0


class FastPassResult(BaseModel):
    items: list[CodifiedItem]
    stats: FastPassStats


class StatusSummary(BaseModel):
    matched: int = 0
    suggested: int = 0
    pending_review: int = 0
    confirmed: int = 0
    unmatched: int = 0
    total: int = 0
    ready_for_population: bool = True


class FastPassRequest(BaseModel):
    items: list[RawItem]
    aliases: list[AliasEntry] = Field(default_factory=list)
    fuzzy: bool = True


class ExtractItemsRequest(BaseModel):
    data: dict[str, Any]


class ConfirmItemRequest(BaseModel):
    item: CodifiedItem
    code: str | None = None
    code_id: str | None = None


class SkipItemRequest(BaseModel):
    item: CodifiedItem


class ConfirmAllRequest(BaseModel):
    items: list[CodifiedItem]

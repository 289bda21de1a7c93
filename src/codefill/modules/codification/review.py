"""Human review transitions for codified items.

Fast Pass only ever produces ``matched`` or ``pending_review``. The remaining
states come from a reviewer acting on suggestions. Every function returns new
item objects and leaves its arguments untouched.
"""

from __future__ import annotations

from collections.abc import Iterable

from codefill.modules.codification.models import MappingStatus
from codefill.modules.codification.schemas import CodifiedItem, StatusSummary

NEEDS_REVIEW_STATUSES = frozenset({MappingStatus.PENDING_REVIEW, MappingStatus.SUGGESTED})
SETTLED_STATUSES = frozenset(
    {MappingStatus.MATCHED, MappingStatus.CONFIRMED, MappingStatus.UNMATCHED}
)


def apply_suggestion(
    item: CodifiedItem, *, code: str, code_id: str | None = None, confidence: float
) -> CodifiedItem:
    if item.mapping_status in (MappingStatus.CONFIRMED, MappingStatus.MATCHED):
        return item
    if not code:
        raise ValueError("Suggestion requires a code")
    return item.model_copy(
        update={
            "suggested_code": code,
            "suggested_code_id": code_id,
            "mapping_status": MappingStatus.SUGGESTED,
            "confidence": min(max(confidence, 0.0), 1.0),
        }
    )


def confirm_item(
    item: CodifiedItem, *, code: str | None = None, code_id: str | None = None
) -> CodifiedItem:
    final_code = code or item.suggested_code or item.item_code
    if not final_code:
        raise ValueError(f"Item {item.id} has no code to confirm")
    return item.model_copy(
        update={
            "item_code": final_code,
            "suggested_code_id": code_id or item.suggested_code_id,
            "mapping_status": MappingStatus.CONFIRMED,
            "confidence": 1.0,
        }
    )


def skip_item(item: CodifiedItem) -> CodifiedItem:
    return item.model_copy(
        update={
            "item_code": None,
            "mapping_status": MappingStatus.UNMATCHED,
            "confidence": 0.0,
        }
    )


def confirm_all_suggested(items: Iterable[CodifiedItem]) -> list[CodifiedItem]:
    out: list[CodifiedItem] = []
    for item in items:
        if item.mapping_status == MappingStatus.SUGGESTED and item.suggested_code:
            out.append(confirm_item(item))
        else:
            out.append(item)
    return out


def items_needing_review(items: Iterable[CodifiedItem]) -> list[CodifiedItem]:
    return [i for i in items if i.mapping_status in NEEDS_REVIEW_STATUSES]


def is_ready_for_population(items: Iterable[CodifiedItem]) -> bool:
    return all(i.mapping_status in SETTLED_STATUSES for i in items)


def summarize_statuses(items: Iterable[CodifiedItem]) -> StatusSummary:
    items = list(items)
    counts = {status: 0 for status in MappingStatus}
    for item in items:
        counts[item.mapping_status] += 1
    return StatusSummary(
        matched=counts[MappingStatus.MATCHED],
        suggested=counts[MappingStatus.SUGGESTED],
        pending_review=counts[MappingStatus.PENDING_REVIEW],
        confirmed=counts[MappingStatus.CONFIRMED],
        unmatched=counts[MappingStatus.UNMATCHED],
        total=len(items),
        ready_for_population=is_ready_for_population(items),
    )

from __future__ import annotations

import time

from fastapi import APIRouter, HTTPException, status

from codefill.core.config import settings
from codefill.core.logging import get_logger, log_event, monotonic_ms
from codefill.modules.codification.matching import build_lookup
from codefill.modules.codification.review import (
    confirm_all_suggested,
    confirm_item,
    skip_item,
    summarize_statuses,
)
from codefill.modules.codification.schemas import (
    CodifiedItem,
    ConfirmAllRequest,
    ConfirmItemRequest,
    ExtractItemsRequest,
    FastPassRequest,
    FastPassResult,
    RawItem,
    SkipItemRequest,
    StatusSummary,
)
from codefill.modules.codification.service import extract_items_from_data, run_fast_pass

router = APIRouter(prefix="/codification", tags=["codification"])
logger = get_logger(__name__)


@router.post("/fast-pass", response_model=FastPassResult)
def fast_pass(payload: FastPassRequest) -> FastPassResult:
    start = time.monotonic()
    lookup = build_lookup(payload.aliases)
    result = run_fast_pass(
        payload.items,
        lookup,
        fuzzy_threshold=settings.fuzzy_threshold if payload.fuzzy else None,
        default_category=settings.default_category,
    )
    log_event(
        logger,
        "fast_pass.finish",
        item_count=result.stats.total,
        alias_count=len(lookup),
        fuzzy=payload.fuzzy,
        matched=result.stats.matched,
        pending_review=result.stats.pending_review,
        duration_ms=monotonic_ms(start),
    )
    return result


@router.post("/extract-items", response_model=list[RawItem])
def extract_items(payload: ExtractItemsRequest) -> list[RawItem]:
    return extract_items_from_data(payload.data, default_currency=settings.default_currency)


@router.post("/review/confirm", response_model=CodifiedItem)
def confirm(payload: ConfirmItemRequest) -> CodifiedItem:
    try:
        item = confirm_item(payload.item, code=payload.code, code_id=payload.code_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    log_event(logger, "review.item.confirmed", item_id=item.id, item_code=item.item_code)
    return item


@router.post("/review/skip", response_model=CodifiedItem)
def skip(payload: SkipItemRequest) -> CodifiedItem:
    item = skip_item(payload.item)
    log_event(logger, "review.item.skipped", item_id=item.id)
    return item


@router.post("/review/confirm-all", response_model=list[CodifiedItem])
def confirm_all(payload: ConfirmAllRequest) -> list[CodifiedItem]:
    return confirm_all_suggested(payload.items)


@router.post("/review/summary", response_model=StatusSummary)
def review_summary(payload: ConfirmAllRequest) -> StatusSummary:
    return summarize_statuses(payload.items)

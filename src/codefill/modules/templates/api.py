from __future__ import annotations

import time
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import TypeAdapter, ValidationError

from codefill.core.config import settings
from codefill.core.logging import get_logger, log_event, monotonic_ms
from codefill.modules.codification.schemas import CodifiedItem
from codefill.modules.templates.scanner import scan
from codefill.modules.templates.schemas import (
    PopulateRequest,
    PopulationResult,
    ScanRequest,
    ScanResult,
)
from codefill.modules.templates.service import populate_template
from codefill.modules.templates.workbook import populate_workbook

router = APIRouter(prefix="/templates", tags=["templates"])
logger = get_logger(__name__)

_items_adapter = TypeAdapter(list[CodifiedItem])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLSM_MEDIA_TYPE = "application/vnd.ms-excel.sheet.macroEnabled.12"


def _content_disposition(filename: str, *, is_xlsm: bool) -> str:
    """Attachment header for the populated copy of ``filename``.

    Non-ASCII names go in ``filename*`` (RFC 5987); ``filename`` keeps an
    ASCII fallback because headers are encoded as latin-1.
    """
    name = f"populated_{filename}"
    ascii_name = "".join(ch for ch in filename if " " <= ch <= "~" and ch not in "\"\\")
    if ascii_name.rsplit(".", 1)[0].strip():
        fallback = f"populated_{ascii_name}"
    else:
        fallback = "populated_template.xlsm" if is_xlsm else "populated_template.xlsx"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(name)}"


@router.post("/scan", response_model=ScanResult)
def scan_template(payload: ScanRequest) -> ScanResult:
    return scan(payload.sheets)


@router.post("/populate", response_model=PopulationResult)
def populate(payload: PopulateRequest) -> PopulationResult:
    start = time.monotonic()
    clear_unfilled = (
        settings.clear_unfilled_placeholders
        if payload.clear_unfilled is None
        else payload.clear_unfilled
    )
    result = populate_template(payload.sheets, payload.items, clear_unfilled=clear_unfilled)
    log_event(
        logger,
        "template.populate.finish",
        sheet_count=len(payload.sheets),
        item_count=len(payload.items),
        total_placeholders=result.stats.total_placeholders,
        matched=result.stats.matched,
        unmatched=result.stats.unmatched,
        fallbacks_inserted=result.stats.fallbacks_inserted,
        overflow_count=result.stats.overflow_count,
        duration_ms=monotonic_ms(start),
    )
    return result


@router.post("/populate-xlsx")
async def populate_xlsx(
    upload: UploadFile = File(...),
    items: str = Form(...),
    clear_unfilled: bool | None = Form(None),
) -> Response:
    body = await upload.read()
    filename = upload.filename or "template.xlsx"
    log_event(
        logger,
        "upload.received",
        filename=filename,
        content_type=upload.content_type,
        byte_size=len(body),
    )
    if len(body) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds {settings.max_upload_bytes} bytes",
        )
    try:
        parsed_items = _items_adapter.validate_json(items)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    if clear_unfilled is None:
        clear_unfilled = settings.clear_unfilled_placeholders
    try:
        data, result = populate_workbook(
            body, parsed_items, filename=filename, clear_unfilled=clear_unfilled
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    is_xlsm = filename.lower().endswith(".xlsm")
    stats = result.stats
    return Response(
        content=data,
        media_type=XLSM_MEDIA_TYPE if is_xlsm else XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": _content_disposition(filename, is_xlsm=is_xlsm),
            "X-Codefill-Matched": str(stats.matched),
            "X-Codefill-Unmatched": str(stats.unmatched),
            "X-Codefill-Fallbacks": str(stats.fallbacks_inserted),
            "X-Codefill-Overflow": str(stats.overflow_count),
        },
    )

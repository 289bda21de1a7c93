from __future__ import annotations

from fastapi import APIRouter

from codefill.modules.codification.api import router as codification_router
from codefill.modules.templates.api import router as templates_router

router = APIRouter()

router.include_router(codification_router, prefix="/api")
router.include_router(templates_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}

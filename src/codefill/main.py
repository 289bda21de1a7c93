from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codefill.api.router import router as api_router
from codefill.core.config import settings
from codefill.core.logging import RequestContextMiddleware, configure_logging, get_logger, log_event


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        configure_logging()
        log_event(get_logger(__name__), "app.startup", environment=settings.environment)
        yield

    app = FastAPI(title="Codefill", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app


app = create_app()

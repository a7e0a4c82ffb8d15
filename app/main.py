from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.registry import build_default_registry
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    registry = build_default_registry()
    registry.get_or_create(get_settings().installation_id)
    try:
        yield
    finally:
        registry.shutdown()
        build_default_registry.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="GLOF Telemetry Pipeline",
        description="Live glacial-lake telemetry aggregation and hazard classification.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()

"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI

from folio.api.routes import api_router
from folio.config import get_settings
from folio.core.logging import setup_logging
from folio.core.telemetry import setup_telemetry
from folio.db.init import init_database
from folio.db.session import dispose_engine, get_engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise the database schema when the service boots."""

    await init_database()
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Build the application and attach routes."""

    settings = get_settings()
    setup_logging()
    application = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    setup_telemetry(application, settings, engine=get_engine())

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    application.include_router(api_router, prefix=settings.api_prefix)
    return application


app = create_app()

__all__ = ["app", "create_app"]

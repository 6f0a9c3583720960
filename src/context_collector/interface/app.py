"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from context_collector.infrastructure.config import Settings
from context_collector.interface.dependencies import get_registry, shutdown, startup
from context_collector.interface.error_handlers import register_error_handlers
from context_collector.interface.routes import router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and wire the FastAPI application.

    *settings* overrides the environment-derived configuration, which is
    mostly useful in tests.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Caches and their sweep threads live exactly as long as the app.
        await startup(settings)
        yield
        await shutdown()

    app = FastAPI(
        title="Context Collector",
        version="1.0.0",
        description=(
            "Scans a local project tree, classifies every file by role and "
            "importance, detects the project's technology signature, and "
            "selects the subset of files that fits a token budget."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, object]:
        return {"status": "ok", "roots": len(get_registry())}

    return app

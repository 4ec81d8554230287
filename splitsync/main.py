"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from splitsync.config import get_settings
from splitsync.infrastructure.dependencies import build_runtime
from splitsync.infrastructure.logging.log_config import setup_logging
from splitsync.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the local store, start connectivity and the sync engine, then tear down in reverse."""
    settings = get_settings()
    setup_logging(settings)

    runtime = build_runtime(settings)
    await runtime.start()
    app.state.runtime = runtime

    status = await runtime.engine.get_status()
    logger.info(
        "Sync runtime ready: user=%s online=%s pending=%d failed=%d",
        settings.current_user_id or "-",
        status.is_online,
        status.pending_actions,
        status.failed_actions,
    )
    if status.failed_actions:
        logger.warning(
            "%d outbox action(s) need attention, see /api/v1/outbox/failed",
            status.failed_actions,
        )

    yield

    await runtime.stop()
    logger.info("Sync runtime stopped")


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "splitsync.main:app",
        host="127.0.0.1",
        port=8020,
        reload=True,
    )

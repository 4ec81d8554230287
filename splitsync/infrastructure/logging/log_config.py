"""Logging setup for the sync runtime.

Every logger the app writes to belongs to a category with its own level in
Settings. That lets a device run with a quiet connectivity probe and SQL
layer while the sync cycle still reports each pull and push.

Usage:
    from splitsync.infrastructure.logging.log_config import setup_logging
    setup_logging(settings)   # once, from the FastAPI lifespan
"""

import logging
import sys

from splitsync.config import Settings, get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"

# Settings field → logger names it governs
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_sync": (
        "SyncEngine",
        "splitsync.application.services.sync_engine",
        "splitsync.application.services.conflict_resolver",
        "splitsync.application.services.offline_mutations",
        "splitsync.infrastructure.database",
    ),
    "log_level_connectivity": (
        "splitsync.application.services.connectivity_signal",
        "splitsync.infrastructure.connectivity",
    ),
    "log_level_remote": ("splitsync.infrastructure.remote",),
}


def setup_logging(settings: Settings | None = None) -> None:
    """Apply root and per-category log levels."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)

    levels = {}
    for settings_field, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, settings_field, "INFO"))
        levels[settings_field.removeprefix("log_level_")] = logging.getLevelName(level)
        for name in logger_names:
            logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s %s",
        settings.log_level,
        " ".join(f"{category}={level}" for category, level in levels.items()),
    )


def _parse_level(raw: str) -> int:
    numeric = getattr(logging, raw.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO

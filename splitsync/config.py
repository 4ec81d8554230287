import logging
from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

_config_logger = logging.getLogger(__name__)

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "SplitSync Offline API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///data/offline_cache.db"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Remote data service (PostgREST-style REST endpoint)
    remote_base_url: str = "http://localhost:54321/rest/v1"
    remote_api_key: str = ""
    remote_timeout_seconds: float = 15.0

    # Connectivity probing (empty URL = manual connectivity only)
    connectivity_probe_url: str = ""
    connectivity_probe_interval_seconds: float = 10.0

    # Sync engine policy
    sync_interval_seconds: float = 300.0
    reconnect_debounce_seconds: float = 1.0
    retry_ceiling: int = 3
    cache_max_age_days: int = 30

    # Pull window
    pull_group_limit: int = 50
    pull_expense_limit: int = 500
    pull_expense_window_days: int = 30

    # Conflict resolution policy
    conflict_recency_window_seconds: float = 300.0
    conflict_merge_separator: str = " | "

    # Authenticated user on this device (authentication itself is external)
    current_user_id: str | None = None

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine — SQL queries
    log_level_http: str = "WARNING"          # httpx / httpcore — outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_sync: str = "INFO"             # sync engine, conflicts, outbox
    log_level_connectivity: str = "INFO"     # probe results, online/offline flips
    log_level_remote: str = "INFO"           # remote data service adapter

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @property
    def cache_max_age_ms(self) -> int:
        return self.cache_max_age_days * 24 * 60 * 60 * 1000

    @property
    def conflict_recency_window_ms(self) -> int:
        return int(self.conflict_recency_window_seconds * 1000)

    def model_post_init(self, __context: object) -> None:
        """Clamp policy values that would make the engine misbehave."""
        if self.retry_ceiling < 1:
            _config_logger.warning(
                "retry_ceiling=%s is invalid, falling back to 1", self.retry_ceiling
            )
            object.__setattr__(self, "retry_ceiling", 1)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()

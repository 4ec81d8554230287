"""Domain value objects describing the state and outcome of sync cycles."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SyncState(str, Enum):
    """Phases of a sync cycle. ERROR is a side-state recorded after a cycle with errors."""

    IDLE = "idle"
    PULLING = "pulling"
    PUSHING = "pushing"
    ERROR = "error"


@dataclass
class SyncStatus:
    """Snapshot of the engine for status indicators."""

    state: SyncState = SyncState.IDLE
    is_loading: bool = False
    is_online: bool = True
    last_sync: datetime | None = None
    pending_actions: int = 0
    failed_actions: int = 0
    error: str | None = None
    cache_sizes: dict[str, int] = field(default_factory=dict)


@dataclass
class SyncReport:
    """Outcome of a single pull/push cycle."""

    started_at: int
    finished_at: int | None = None
    skipped: bool = False
    skip_reason: str | None = None
    pulled: dict[str, int] = field(default_factory=dict)
    evicted: dict[str, int] = field(default_factory=dict)
    pushed: int = 0
    failed: int = 0
    abandoned: list[str] = field(default_factory=list)
    conflicts_resolved: int = 0
    conflicts_pending: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass
class ConflictPassResult:
    """Outcome of a detect-then-auto-resolve pass."""

    success: bool
    conflicts: int = 0
    resolved: int = 0
    remaining: int = 0
    error: str | None = None


@dataclass
class MutationResult:
    """What the mutation façade hands back to callers."""

    data: dict[str, Any] | None
    is_offline: bool
    action_id: str | None = None

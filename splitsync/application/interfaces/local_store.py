"""Abstract local store interface (port) — the on-device cache, outbox and metadata."""

from abc import ABC, abstractmethod
from typing import Any

from splitsync.domain.entities import ActionType, CachedEntity, EntityType, PendingAction


class LocalStore(ABC):
    """Port for durable on-device storage — implemented in the infrastructure layer.

    Every method is atomic on its own; there is no cross-call transaction.
    """

    # ── Cached entities ─────────────────────────────────────────────

    @abstractmethod
    async def cache_entities(self, entity_type: EntityType, records: list[dict[str, Any]]) -> int:
        """Upsert records by id, stamping ``cached_at = now``. Returns the number written."""
        ...

    @abstractmethod
    async def get_cached(
        self, entity_type: EntityType, group_id: str | None = None
    ) -> list[CachedEntity]:
        """Return cached entities, optionally restricted to one group."""
        ...

    @abstractmethod
    async def get_cached_entity(self, entity_type: EntityType, entity_id: str) -> CachedEntity | None:
        """Return a single cached entity or None."""
        ...

    @abstractmethod
    async def remove_cached(self, entity_type: EntityType, entity_id: str) -> bool:
        """Delete one cached entity. Returns True if it existed."""
        ...

    @abstractmethod
    async def clean_old_cache(self, max_age_ms: int) -> dict[str, int]:
        """Evict non-pending entities older than ``max_age_ms``. Returns counts per type."""
        ...

    @abstractmethod
    async def get_cache_size(self) -> dict[str, int]:
        """Row counts per collection, including outbox entries."""
        ...

    # ── Outbox ──────────────────────────────────────────────────────

    @abstractmethod
    async def add_pending_action(self, action_type: ActionType, payload: dict[str, Any]) -> str:
        """Persist a new outbox entry and return its locally generated id."""
        ...

    @abstractmethod
    async def get_pending_actions(self) -> list[PendingAction]:
        """Pending (not dead-lettered) actions in FIFO creation order."""
        ...

    @abstractmethod
    async def get_failed_actions(self) -> list[PendingAction]:
        """Actions that exhausted their retries, oldest first."""
        ...

    @abstractmethod
    async def get_pending_action(self, action_id: str) -> PendingAction | None:
        """Return one outbox entry regardless of status."""
        ...

    @abstractmethod
    async def update_pending_action(self, action: PendingAction) -> PendingAction:
        """Persist retries, last_error, status and payload of an existing action."""
        ...

    @abstractmethod
    async def remove_pending_action(self, action_id: str) -> bool:
        """Retire an outbox entry. Returns True if it existed."""
        ...

    # ── Metadata ────────────────────────────────────────────────────

    @abstractmethod
    async def set_metadata(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def get_metadata(self, key: str) -> Any:
        """Return the stored value, or None when the key is unknown."""
        ...

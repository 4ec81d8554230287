"""Domain entities for the on-device read cache."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

TEMP_ID_PREFIX = "temp_"
DEFAULT_CURRENCY = "CAD"


class EntityType(str, Enum):
    """Cached entity collections — values double as local table names."""

    GROUPS = "groups"
    EXPENSES = "expenses"
    USERS = "users"


def temp_id_for(action_id: str) -> str:
    """Synthetic id under which an offline-created entity is cached."""
    return f"{TEMP_ID_PREFIX}{action_id}"


def is_temp_id(entity_id: str | None) -> bool:
    return bool(entity_id) and entity_id.startswith(TEMP_ID_PREFIX)


def action_id_from_temp(entity_id: str) -> str:
    return entity_id[len(TEMP_ID_PREFIX):]


@dataclass
class CachedEntity:
    """A read replica of a remote record, stamped with its refresh time.

    ``data`` holds the authoritative-shape fields. Pending records are
    optimistic local writes that still have a PendingAction in the outbox.
    """

    entity_type: EntityType
    id: str
    data: dict[str, Any] = field(default_factory=dict)
    cached_at: int = 0
    pending: bool = False
    pending_action_id: str | None = None

    @property
    def group_id(self) -> str | None:
        return self.data.get("group_id")

    def to_record(self) -> dict[str, Any]:
        """Flatten into the dict shape the UI renders."""
        record = {**self.data, "id": self.id, "cached_at": self.cached_at}
        if self.pending:
            record["_pending"] = True
            record["_pending_action_id"] = self.pending_action_id
        return record

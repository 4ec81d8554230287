"""Domain entity for outbox entries — mutations not yet confirmed by the remote service."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from splitsync.domain.entities.cached_entity import EntityType


class ActionOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ActionType(str, Enum):
    """Kinds of mutation that can be queued while offline."""

    CREATE_EXPENSE = "CREATE_EXPENSE"
    UPDATE_EXPENSE = "UPDATE_EXPENSE"
    DELETE_EXPENSE = "DELETE_EXPENSE"
    CREATE_GROUP = "CREATE_GROUP"

    @property
    def operation(self) -> ActionOperation:
        return ActionOperation(self.value.split("_", 1)[0].lower())

    @property
    def entity_type(self) -> EntityType:
        return EntityType(self.value.split("_", 1)[1].lower() + "s")


class ActionStatus(str, Enum):
    """Lifecycle states of an outbox entry."""

    PENDING = "pending"
    FAILED = "failed"


@dataclass
class PendingAction:
    """A queued mutation owned by the outbox.

    Payload shapes:
      CREATE_*: the record fields to insert.
      UPDATE_*: ``{"id": ..., "updates": {...}, "base": {...}}`` where ``base``
                holds the cached values the user edited from, when known.
      DELETE_*: ``{"id": ...}``.
    """

    action_type: ActionType
    payload: dict[str, Any]
    id: str | None = None
    created_at: int = 0
    retries: int = 0
    last_error: str | None = None
    status: ActionStatus = ActionStatus.PENDING
    sequence: int = 0

    @property
    def entity_type(self) -> EntityType:
        return self.action_type.entity_type

    @property
    def operation(self) -> ActionOperation:
        return self.action_type.operation

    @property
    def target_id(self) -> str | None:
        """Remote id this action targets, if it targets an existing record."""
        return self.payload.get("id")

    @property
    def local_changes(self) -> dict[str, Any]:
        """The field values this mutation wants the remote record to hold."""
        if self.operation == ActionOperation.UPDATE:
            return dict(self.payload.get("updates") or {})
        if self.operation == ActionOperation.CREATE:
            return {k: v for k, v in self.payload.items() if k != "id"}
        return {}

    @property
    def base(self) -> dict[str, Any] | None:
        return self.payload.get("base")

    def record_failure(self, error: str, retry_ceiling: int, *, permanent: bool = False) -> bool:
        """Count a failed push attempt. Returns True when the action is now dead-lettered."""
        self.retries += 1
        self.last_error = error
        if permanent or self.retries >= retry_ceiling:
            self.status = ActionStatus.FAILED
            return True
        return False

    def mark_requeued(self) -> None:
        """Reset a failed action so the next cycle pushes it again."""
        self.status = ActionStatus.PENDING
        self.retries = 0
        self.last_error = None

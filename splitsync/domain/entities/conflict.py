"""Domain entities for divergences between a queued mutation and the remote record."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from splitsync.domain.entities.cached_entity import EntityType


class ResolutionType(str, Enum):
    USE_LOCAL = "use_local"
    USE_SERVER = "use_server"
    MERGE = "merge"
    MANUAL = "manual"


class MergeStrategy(str, Enum):
    LOCAL_PRIORITY = "local_priority"
    SERVER_PRIORITY = "server_priority"
    TIMESTAMP_PRIORITY = "timestamp_priority"


def conflict_id_for(action_id: str) -> str:
    return f"conflict_{action_id}"


@dataclass
class DataConflict:
    """A queued local mutation whose target also changed on the remote side.

    Derived state: recomputed on every detection pass and discarded together
    with the PendingAction it came from once resolved.
    """

    id: str
    action_id: str
    entity_type: EntityType
    target_id: str
    local_data: dict[str, Any]
    server_data: dict[str, Any]
    field_conflicts: list[str]
    created_at: int  # creation time of the originating local mutation
    detected_at: int = 0
    resolved: bool = False


@dataclass(frozen=True)
class ConflictResolution:
    """Command value telling the resolver which shape should win."""

    conflict_id: str
    resolution_type: ResolutionType
    merged_data: dict[str, Any] | None = field(default=None, compare=False)

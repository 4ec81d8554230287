from .cached_entity import (
    CachedEntity,
    DEFAULT_CURRENCY,
    EntityType,
    TEMP_ID_PREFIX,
    action_id_from_temp,
    is_temp_id,
    temp_id_for,
)
from .pending_action import ActionOperation, ActionStatus, ActionType, PendingAction
from .conflict import (
    ConflictResolution,
    DataConflict,
    MergeStrategy,
    ResolutionType,
    conflict_id_for,
)
from .sync_status import (
    ConflictPassResult,
    MutationResult,
    SyncReport,
    SyncState,
    SyncStatus,
)

__all__ = [
    "CachedEntity",
    "DEFAULT_CURRENCY",
    "EntityType",
    "TEMP_ID_PREFIX",
    "action_id_from_temp",
    "is_temp_id",
    "temp_id_for",
    "ActionOperation",
    "ActionStatus",
    "ActionType",
    "PendingAction",
    "ConflictResolution",
    "DataConflict",
    "MergeStrategy",
    "ResolutionType",
    "conflict_id_for",
    "ConflictPassResult",
    "MutationResult",
    "SyncReport",
    "SyncState",
    "SyncStatus",
]

"""Conflict detection and resolution between queued local mutations and the remote store."""

import logging
from typing import Any

from splitsync.application.interfaces import LocalStore, RemoteDataService
from splitsync.application.services.cache_shapes import (
    MUTABLE_FIELDS,
    to_cache_shape,
    writable_fields,
)
from splitsync.domain.entities import (
    ActionOperation,
    ConflictPassResult,
    ConflictResolution,
    DataConflict,
    EntityType,
    MergeStrategy,
    PendingAction,
    ResolutionType,
    conflict_id_for,
    is_temp_id,
)
from splitsync.domain.exceptions import EntityNotFoundError, RemoteServiceError
from splitsync.domain.time_utils import MINUTE_MS, Clock, now_ms

logger = logging.getLogger(__name__)

DEFAULT_RECENCY_WINDOW_MS = 5 * MINUTE_MS
DEFAULT_MERGE_SEPARATOR = " | "

NUMERIC_FIELDS = frozenset({"amount"})
FREE_TEXT_FIELDS = frozenset({"description", "notes", "name"})


class ConflictResolver:
    """Detects field-level divergences and resolves them by policy or by user decision.

    Outstanding conflicts live in memory only; every detection pass rebuilds
    them from the outbox. Resolving a conflict writes the winning shape to
    the remote service, refreshes the cache and retires the originating
    PendingAction, in that order, so a failed write leaves everything in place.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteDataService,
        *,
        recency_window_ms: int = DEFAULT_RECENCY_WINDOW_MS,
        merge_separator: str = DEFAULT_MERGE_SEPARATOR,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._remote = remote
        self._recency_window_ms = recency_window_ms
        self._merge_separator = merge_separator
        self._clock = clock
        self._conflicts: dict[str, DataConflict] = {}

    @property
    def conflicts(self) -> list[DataConflict]:
        return list(self._conflicts.values())

    def get_conflict(self, conflict_id: str) -> DataConflict:
        conflict = self._conflicts.get(conflict_id)
        if conflict is None:
            raise EntityNotFoundError("DataConflict", conflict_id)
        return conflict

    def track(self, conflict: DataConflict) -> None:
        self._conflicts[conflict.id] = conflict

    def retain(self, conflict_ids: set[str]) -> None:
        """Drop every tracked conflict whose id is not in ``conflict_ids``."""
        self._conflicts = {
            cid: conflict for cid, conflict in self._conflicts.items() if cid in conflict_ids
        }

    # ── Detection ────────────────────────────────────────────────────

    @staticmethod
    def detect_field_conflicts(
        entity_type: EntityType,
        local_data: dict[str, Any],
        server_data: dict[str, Any],
        base: dict[str, Any] | None = None,
    ) -> list[str]:
        """List the mutable fields where the local mutation and the remote record disagree.

        Only fields the local mutation actually sets are compared. When the
        value the user edited from (``base``) is known and the remote still
        holds it, the remote did not move and the field is not a conflict.
        """
        conflicts: list[str] = []
        for field_name in MUTABLE_FIELDS.get(entity_type, ()):
            if field_name not in local_data:
                continue
            local_value = local_data[field_name]
            server_value = server_data.get(field_name)
            if local_value == server_value:
                continue
            if base is not None and field_name in base and base[field_name] == server_value:
                continue
            conflicts.append(field_name)
        return conflicts

    async def detect_conflict(self, action: PendingAction) -> DataConflict | None:
        """Check one outbox entry against the current remote record."""
        if action.operation not in (ActionOperation.CREATE, ActionOperation.UPDATE):
            return None
        target_id = action.target_id
        if not target_id or is_temp_id(target_id):
            return None

        server_data = await self._remote.get_one(action.entity_type, target_id)
        if server_data is None:
            return None

        local_changes = action.local_changes
        field_conflicts = self.detect_field_conflicts(
            action.entity_type, local_changes, server_data, action.base
        )
        if not field_conflicts:
            return None

        return DataConflict(
            id=conflict_id_for(action.id),
            action_id=action.id,
            entity_type=action.entity_type,
            target_id=target_id,
            local_data={"id": target_id, **local_changes},
            server_data=server_data,
            field_conflicts=field_conflicts,
            created_at=action.created_at,
            detected_at=self._clock(),
        )

    async def detect_conflicts(self) -> list[DataConflict]:
        """Rebuild the outstanding conflict set from the whole outbox."""
        detected: dict[str, DataConflict] = {}
        for action in await self._store.get_pending_actions():
            try:
                conflict = await self.detect_conflict(action)
            except RemoteServiceError as exc:
                logger.warning("Conflict check skipped for %s: %s", action.id, exc)
                continue
            if conflict is not None:
                detected[conflict.id] = conflict

        self._conflicts = detected
        if detected:
            logger.info("Detected %d conflict(s)", len(detected))
        return list(detected.values())

    # ── Resolution policy ────────────────────────────────────────────

    def auto_resolve_conflict(
        self, conflict: DataConflict, now: int | None = None
    ) -> ConflictResolution | None:
        """Pick a resolution by policy, or None when a person has to decide."""
        current = self._clock() if now is None else now

        if current - conflict.created_at < self._recency_window_ms:
            return ConflictResolution(conflict.id, ResolutionType.USE_LOCAL)

        if len(conflict.field_conflicts) == 1:
            field_name = conflict.field_conflicts[0]
            if field_name in NUMERIC_FIELDS:
                return ConflictResolution(conflict.id, ResolutionType.USE_LOCAL)
            if field_name in FREE_TEXT_FIELDS:
                local_value = conflict.local_data.get(field_name) or ""
                server_value = conflict.server_data.get(field_name) or ""
                return ConflictResolution(
                    conflict.id,
                    ResolutionType.MERGE,
                    merged_data={
                        **conflict.server_data,
                        field_name: f"{local_value}{self._merge_separator}{server_value}",
                    },
                )

        return None

    @staticmethod
    def smart_merge(
        local_data: dict[str, Any],
        server_data: dict[str, Any],
        strategy: MergeStrategy = MergeStrategy.LOCAL_PRIORITY,
    ) -> dict[str, Any]:
        merged = dict(server_data)

        if strategy == MergeStrategy.LOCAL_PRIORITY:
            for key, value in local_data.items():
                if value is not None and value != server_data.get(key):
                    merged[key] = value
        elif strategy == MergeStrategy.TIMESTAMP_PRIORITY:
            local_ts = local_data.get("updated_at")
            server_ts = server_data.get("updated_at")
            if local_ts and (not server_ts or str(local_ts) > str(server_ts)):
                merged.update(local_data)

        return merged

    # ── Resolution ───────────────────────────────────────────────────

    async def resolve_conflict(self, resolution: ConflictResolution) -> dict[str, Any]:
        """Apply a resolution and retire the originating action. Returns the remote record."""
        conflict = self.get_conflict(resolution.conflict_id)
        final_data = self._final_shape(conflict, resolution)

        # Only fields the mutation or the entity's editable set cover are written back
        allowed = set(MUTABLE_FIELDS.get(conflict.entity_type, ())) | set(conflict.local_data)
        patch = {k: v for k, v in writable_fields(final_data).items() if k in allowed}
        record = await self._remote.update(conflict.entity_type, conflict.target_id, patch)

        await self._store.cache_entities(
            conflict.entity_type, [to_cache_shape(conflict.entity_type, record)]
        )
        await self._store.remove_pending_action(conflict.action_id)

        conflict.resolved = True
        self._conflicts.pop(conflict.id, None)
        logger.info(
            "Resolved %s with %s (fields: %s)",
            conflict.id,
            resolution.resolution_type.value,
            ", ".join(conflict.field_conflicts),
        )
        return record

    @staticmethod
    def _final_shape(conflict: DataConflict, resolution: ConflictResolution) -> dict[str, Any]:
        kind = resolution.resolution_type
        if kind == ResolutionType.USE_LOCAL:
            return dict(conflict.local_data)
        if kind == ResolutionType.USE_SERVER:
            return {
                k: v for k, v in conflict.server_data.items()
                if k in MUTABLE_FIELDS.get(conflict.entity_type, ())
            }
        if kind == ResolutionType.MERGE:
            if resolution.merged_data is not None:
                return dict(resolution.merged_data)
            return {**conflict.server_data, **conflict.local_data}
        if resolution.merged_data is None:
            raise ValueError("Manual resolution requires merged_data")
        return dict(resolution.merged_data)

    async def auto_resolve_all(self) -> list[DataConflict]:
        """Resolve what policy allows; return the conflicts left for manual handling."""
        remaining: list[DataConflict] = []
        resolved = 0

        for conflict in self.conflicts:
            resolution = self.auto_resolve_conflict(conflict)
            if resolution is None:
                remaining.append(conflict)
                continue
            try:
                await self.resolve_conflict(resolution)
                resolved += 1
            except RemoteServiceError as exc:
                logger.warning("Auto-resolution of %s failed: %s", conflict.id, exc)
                remaining.append(conflict)

        if resolved:
            logger.info("%d conflict(s) resolved automatically", resolved)
        return remaining

    async def sync_with_conflict_resolution(self) -> ConflictPassResult:
        """Detect conflicts, auto-resolve what policy allows and report the rest."""
        try:
            detected = await self.detect_conflicts()
            if not detected:
                return ConflictPassResult(success=True)

            remaining = await self.auto_resolve_all()
            if remaining:
                logger.warning("%d conflict(s) need a manual decision", len(remaining))

            return ConflictPassResult(
                success=True,
                conflicts=len(detected),
                resolved=len(detected) - len(remaining),
                remaining=len(remaining),
            )
        except Exception as exc:
            logger.exception("Conflict resolution pass failed")
            return ConflictPassResult(success=False, error=str(exc))

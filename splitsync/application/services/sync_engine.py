"""Sync Engine — pulls remote state into the cache and replays the outbox."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

from splitsync.application.interfaces import (
    LocalStore,
    QueryFilter,
    QueryOrder,
    RemoteDataService,
)
from splitsync.application.services.cache_shapes import to_cache_shape, writable_fields
from splitsync.application.services.conflict_resolver import ConflictResolver
from splitsync.application.services.connectivity_signal import ConnectivitySignal
from splitsync.domain.entities import (
    ActionOperation,
    ActionStatus,
    EntityType,
    PendingAction,
    SyncReport,
    SyncState,
    SyncStatus,
    conflict_id_for,
    temp_id_for,
)
from splitsync.domain.exceptions import EntityNotFoundError, RemoteServiceError
from splitsync.domain.time_utils import DAY_MS, Clock, ms_to_datetime, now_ms
from splitsync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
sync_log = SyncLogger("SyncEngine")

LAST_SYNC_KEY = "last_sync"


class SyncEngine:
    """Keeps the local replica and the remote store converging.

    A cycle pulls every entity type first and then pushes the outbox in FIFO
    order. Cycles are serialized by a single in-flight flag; a trigger that
    arrives while a cycle runs gets a skipped report back.

    Triggers:
        - connectivity returning (debounced; a newer transition cancels the
          wait, never a cycle that already started)
        - a fixed interval while online
        - ``force_sync()``
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteDataService,
        signal: ConnectivitySignal,
        resolver: ConflictResolver,
        *,
        interval_seconds: float = 300,
        debounce_seconds: float = 1.0,
        retry_ceiling: int = 3,
        cache_max_age_ms: int = 30 * DAY_MS,
        group_limit: int = 50,
        expense_limit: int = 500,
        expense_window_days: int = 30,
        current_user_id: str | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._remote = remote
        self._signal = signal
        self._resolver = resolver
        self._interval_seconds = interval_seconds
        self._debounce_seconds = debounce_seconds
        self._retry_ceiling = max(1, retry_ceiling)
        self._cache_max_age_ms = cache_max_age_ms
        self._group_limit = group_limit
        self._expense_limit = expense_limit
        self._expense_window_days = expense_window_days
        self._current_user_id = current_user_id
        self._clock = clock

        self._state = SyncState.IDLE
        self._is_loading = False
        self._last_error: str | None = None
        self._last_report: SyncReport | None = None

        self._running = False
        self._interval_task: asyncio.Task | None = None
        self._debounce_task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Listen for reconnects, start the interval loop and sync once if online."""
        self._running = True
        self._signal.add_listener(self._on_connectivity_change)
        self._interval_task = asyncio.create_task(self._interval_loop())
        if self._signal.is_online:
            self._schedule_debounced_sync()
        logger.info("SyncEngine started (interval=%ss)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the interval loop and any pending debounced sync."""
        self._running = False
        self._signal.remove_listener(self._on_connectivity_change)
        for task in (self._debounce_task, self._interval_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._debounce_task = None
        self._interval_task = None
        if self._cycle_task and not self._cycle_task.done():
            # Let an in-flight cycle finish retiring what it already pushed
            await asyncio.gather(self._cycle_task, return_exceptions=True)
        self._cycle_task = None
        logger.info("SyncEngine stopped")

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Back online, syncing in %.1fs", self._debounce_seconds)
            self._schedule_debounced_sync()
        else:
            logger.info("Went offline, pending sync cancelled")
            self._cancel_debounced_sync()

    def _schedule_debounced_sync(self) -> None:
        self._cancel_debounced_sync()
        self._debounce_task = asyncio.create_task(self._debounced_sync())

    def _cancel_debounced_sync(self) -> None:
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _launch_cycle(self) -> asyncio.Task:
        """Run a cycle in its own task, or hand back the one already running.

        Triggers await this task through ``asyncio.shield`` so cancelling a
        trigger never interrupts a push between the remote write and the
        outbox removal.
        """
        if self._cycle_task is None or self._cycle_task.done():
            self._cycle_task = asyncio.create_task(self.run_cycle())
        return self._cycle_task

    async def _debounced_sync(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        try:
            await asyncio.shield(self._launch_cycle())
        except Exception:
            logger.exception("Reconnect sync failed")

    async def _interval_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval_seconds)
            if not self._signal.is_online:
                continue
            try:
                await asyncio.shield(self._launch_cycle())
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Interval sync failed")

    # ── Cycle ────────────────────────────────────────────────────────

    async def force_sync(self) -> SyncReport:
        """Run a cycle now, subject to the same guard as automatic triggers."""
        return await self.run_cycle()

    async def run_cycle(self) -> SyncReport:
        now = self._clock()
        if self._is_loading:
            logger.debug("Sync already in flight, skipping trigger")
            return SyncReport(started_at=now, finished_at=now, skipped=True, skip_reason="in_flight")
        if not self._signal.is_online:
            return SyncReport(started_at=now, finished_at=now, skipped=True, skip_reason="offline")

        self._is_loading = True
        report = SyncReport(started_at=now)
        sync_log.step_start(SyncStage.CYCLE, "Sync cycle started")
        try:
            self._state = SyncState.PULLING
            await self._pull(report)

            self._state = SyncState.PUSHING
            await self._push(report)
        except Exception as exc:
            logger.exception("Sync cycle aborted")
            report.errors.append(f"cycle: {exc}")
        finally:
            report.finished_at = self._clock()
            self._is_loading = False
            self._state = SyncState.ERROR if report.has_errors else SyncState.IDLE
            self._last_error = report.errors[-1] if report.errors else None
            self._last_report = report

        sync_log.stats(
            pulled=sum(report.pulled.values()),
            pushed=report.pushed,
            failed=report.failed,
            conflicts=report.conflicts_pending,
            ms=report.finished_at - report.started_at,
        )
        return report

    # ── Pull ─────────────────────────────────────────────────────────

    async def _pull(self, report: SyncReport) -> None:
        complete = True
        for entity_type, fetch in (
            (EntityType.GROUPS, self._fetch_groups),
            (EntityType.EXPENSES, self._fetch_expenses),
            (EntityType.USERS, self._fetch_users),
        ):
            try:
                with sync_log.timed_step(SyncStage.PULL, f"Refreshing {entity_type.value}"):
                    records = await fetch()
                    report.pulled[entity_type.value] = await self._cache_pulled(entity_type, records)
            except Exception as exc:
                complete = False
                report.errors.append(f"pull {entity_type.value}: {exc}")

        if not complete:
            sync_log.detail("Pull incomplete, keeping cache and last_sync as they are")
            return

        report.evicted = await self._store.clean_old_cache(self._cache_max_age_ms)
        if any(report.evicted.values()):
            sync_log.step_complete(SyncStage.CACHE, "Evicted stale entries", **report.evicted)
        await self._store.set_metadata(LAST_SYNC_KEY, ms_to_datetime(self._clock()).isoformat())

    async def _fetch_groups(self) -> list[dict[str, Any]]:
        return await self._remote.query(
            EntityType.GROUPS,
            limit=self._group_limit,
            order=QueryOrder("updated_at"),
        )

    async def _fetch_expenses(self) -> list[dict[str, Any]]:
        since = ms_to_datetime(self._clock()) - timedelta(days=self._expense_window_days)
        return await self._remote.query(
            EntityType.EXPENSES,
            filters=[QueryFilter("expense_date", "gte", since.date().isoformat())],
            limit=self._expense_limit,
            order=QueryOrder("expense_date"),
        )

    async def _fetch_users(self) -> list[dict[str, Any]]:
        if not self._current_user_id:
            return []
        profile = await self._remote.get_one(EntityType.USERS, self._current_user_id)
        return [profile] if profile else []

    async def _cache_pulled(self, entity_type: EntityType, records: list[dict[str, Any]]) -> int:
        pending_ids = {e.id for e in await self._store.get_cached(entity_type) if e.pending}
        fresh = [
            shaped
            for shaped in (to_cache_shape(entity_type, r) for r in records)
            if shaped["id"] not in pending_ids
        ]
        return await self._store.cache_entities(entity_type, fresh)

    # ── Push ─────────────────────────────────────────────────────────

    async def _push(self, report: SyncReport) -> None:
        deferred: set[str] = set()
        actions = await self._store.get_pending_actions()
        if not actions:
            self._resolver.retain(deferred)
            return

        sync_log.step_start(SyncStage.PUSH, f"Replaying {len(actions)} pending action(s)")
        for queued in actions:
            # Resolved, discarded or folded into by a caller since the snapshot
            action = await self._store.get_pending_action(queued.id)
            if action is None or action.status != ActionStatus.PENDING:
                continue
            try:
                if await self._handled_as_conflict(action, report, deferred):
                    continue
                record = await self._send(action)
            except Exception as exc:
                await self._record_failure(action, exc, report)
                tracked = any(c.action_id == action.id for c in self._resolver.conflicts)
                if tracked and action.status == ActionStatus.PENDING:
                    deferred.add(conflict_id_for(action.id))
                continue

            try:
                await self._retire(action, record)
                report.pushed += 1
                sync_log.outbox_action(
                    "pushed", action.id, action.action_type.value, target=action.target_id or "-"
                )
            except Exception as exc:
                logger.exception("Could not retire %s after a successful push", action.id)
                report.errors.append(f"retire {action.id}: {exc}")

        # Conflicts deferred in earlier cycles stay resolvable until now
        self._resolver.retain(deferred)
        sync_log.step_complete(
            SyncStage.PUSH,
            "Outbox replayed",
            pushed=report.pushed,
            failed=report.failed,
            deferred=report.conflicts_pending,
        )

    async def _handled_as_conflict(
        self, action: PendingAction, report: SyncReport, deferred: set[str]
    ) -> bool:
        """Check for divergence; True when the action was resolved or deferred instead of pushed."""
        conflict = await self._resolver.detect_conflict(action)
        if conflict is None:
            return False

        self._resolver.track(conflict)
        resolution = self._resolver.auto_resolve_conflict(conflict)
        if resolution is None:
            report.conflicts_pending += 1
            deferred.add(conflict.id)
            sync_log.detail(
                f"{action.id} deferred for manual resolution",
                fields=",".join(conflict.field_conflicts),
            )
            return True

        await self._resolver.resolve_conflict(resolution)
        report.conflicts_resolved += 1
        sync_log.step_complete(
            SyncStage.CONFLICT,
            f"{conflict.id} auto-resolved",
            resolution=resolution.resolution_type.value,
        )
        return True

    async def _send(self, action: PendingAction) -> dict[str, Any] | None:
        entity_type = action.entity_type
        operation = action.operation
        if operation == ActionOperation.CREATE:
            return await self._remote.insert(entity_type, dict(action.payload))
        if operation == ActionOperation.UPDATE:
            return await self._remote.update(
                entity_type, action.target_id, writable_fields(action.local_changes)
            )
        await self._remote.delete(entity_type, action.target_id)
        return None

    async def _retire(self, action: PendingAction, record: dict[str, Any] | None) -> None:
        entity_type = action.entity_type
        await self._store.remove_pending_action(action.id)

        if action.operation == ActionOperation.DELETE:
            await self._store.remove_cached(entity_type, action.target_id)
            return
        if action.operation == ActionOperation.CREATE:
            await self._store.remove_cached(entity_type, temp_id_for(action.id))
        if record:
            await self._store.cache_entities(entity_type, [to_cache_shape(entity_type, record)])

    async def _record_failure(
        self, action: PendingAction, exc: Exception, report: SyncReport
    ) -> None:
        permanent = isinstance(exc, RemoteServiceError) and not exc.is_transient
        message = str(exc) or type(exc).__name__
        dead = action.record_failure(message, self._retry_ceiling, permanent=permanent)
        await self._store.update_pending_action(action)

        report.failed += 1
        report.errors.append(f"push {action.id}: {message}")
        if dead:
            report.abandoned.append(action.id)
            sync_log.step_error(
                SyncStage.PUSH,
                f"{action.id} moved to failed after {action.retries} attempt(s)",
                error=exc,
            )
        else:
            logger.warning(
                "Push of %s failed (attempt %d/%d): %s",
                action.id,
                action.retries,
                self._retry_ceiling,
                message,
            )

    # ── Outbox maintenance ───────────────────────────────────────────

    async def requeue_action(self, action_id: str) -> PendingAction:
        """Put a failed action back in line for the next cycle."""
        action = await self._require_action(action_id)
        if action.status == ActionStatus.FAILED:
            action.mark_requeued()
            await self._store.update_pending_action(action)
            logger.info("Requeued %s", action_id)
        return action

    async def discard_action(self, action_id: str) -> PendingAction:
        """Drop an action for good and undo its optimistic cache write."""
        action = await self._require_action(action_id)
        await self._store.remove_pending_action(action_id)

        entity_type = action.entity_type
        if action.operation == ActionOperation.CREATE:
            await self._store.remove_cached(entity_type, temp_id_for(action_id))
        elif action.operation == ActionOperation.UPDATE and action.target_id:
            cached = await self._store.get_cached_entity(entity_type, action.target_id)
            if cached is not None and cached.pending_action_id == action_id:
                # Roll the optimistic edit back to the values it was made from
                restored = {**cached.data, **(action.base or {}), "id": cached.id}
                await self._store.cache_entities(entity_type, [restored])

        logger.info("Discarded %s (%s)", action_id, action.action_type.value)
        return action

    async def _require_action(self, action_id: str) -> PendingAction:
        action = await self._store.get_pending_action(action_id)
        if action is None:
            raise EntityNotFoundError("PendingAction", action_id)
        return action

    # ── Status ───────────────────────────────────────────────────────

    async def get_status(self) -> SyncStatus:
        pending = await self._store.get_pending_actions()
        failed = await self._store.get_failed_actions()
        last_sync = await self._store.get_metadata(LAST_SYNC_KEY)
        return SyncStatus(
            state=self._state,
            is_loading=self._is_loading,
            is_online=self._signal.is_online,
            last_sync=datetime.fromisoformat(last_sync) if last_sync else None,
            pending_actions=len(pending),
            failed_actions=len(failed),
            error=self._last_error,
            cache_sizes=await self._store.get_cache_size(),
        )

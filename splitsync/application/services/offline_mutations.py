"""Offline-aware mutation service — the single entry point the UI writes through."""

import logging
from typing import Any

from splitsync.application.interfaces import LocalStore, QueryFilter, QueryOrder, RemoteDataService
from splitsync.application.schemas import ExpenseCreate, ExpenseUpdate, GroupCreate
from splitsync.application.services.cache_shapes import to_cache_shape
from splitsync.application.services.connectivity_signal import ConnectivitySignal
from splitsync.domain.entities import (
    ActionOperation,
    ActionStatus,
    ActionType,
    CachedEntity,
    EntityType,
    MutationResult,
    PendingAction,
    action_id_from_temp,
    is_temp_id,
    temp_id_for,
)
from splitsync.domain.exceptions import EntityNotFoundError, MissingUserError, RemoteServiceError
from splitsync.domain.time_utils import Clock, ms_to_datetime, now_ms

logger = logging.getLogger(__name__)


class OfflineMutationService:
    """Writes go straight to the remote service when online, into the outbox when not.

    Offline writes leave an optimistic ``_pending`` record in the cache so
    reads reflect them immediately. Each pending record is backed by exactly
    one outbox entry: repeated offline edits of the same expense fold into
    the entry already queued for it instead of stacking new ones.

    Online write failures propagate as ``RemoteServiceError``; reads never
    fail because of the network and fall back to the cache.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteDataService,
        signal: ConnectivitySignal,
        current_user_id: str | None = None,
        clock: Clock = now_ms,
    ):
        self._store = store
        self._remote = remote
        self._signal = signal
        self._current_user_id = current_user_id
        self._clock = clock

    @property
    def is_online(self) -> bool:
        return self._signal.is_online

    # ── Expenses ─────────────────────────────────────────────────────

    async def create_expense(self, data: ExpenseCreate) -> MutationResult:
        payload = data.model_dump(mode="json", exclude_none=True)

        if self.is_online:
            record = await self._remote.insert(EntityType.EXPENSES, payload)
            await self._store.cache_entities(
                EntityType.EXPENSES, [to_cache_shape(EntityType.EXPENSES, record)]
            )
            logger.info("Created expense %s", record.get("id"))
            return MutationResult(data=record, is_offline=False)

        action_id = await self._store.add_pending_action(ActionType.CREATE_EXPENSE, payload)
        cached = await self._cache_pending(EntityType.EXPENSES, temp_id_for(action_id), payload, action_id)
        logger.info("Expense queued offline as %s", action_id)
        return MutationResult(data=cached, is_offline=True, action_id=action_id)

    async def update_expense(self, expense_id: str, data: ExpenseUpdate) -> MutationResult:
        updates = data.model_dump(mode="json", exclude_unset=True)

        if is_temp_id(expense_id):
            return await self._amend_queued_create(expense_id, updates)

        cached = await self._store.get_cached_entity(EntityType.EXPENSES, expense_id)
        queued = await self._queued_action(cached, ActionType.UPDATE_EXPENSE)

        if self.is_online:
            # Edits still waiting in the outbox go out together with this one
            patch = {**(queued.local_changes if queued else {}), **updates}
            record = await self._remote.update(EntityType.EXPENSES, expense_id, patch)
            await self._store.cache_entities(
                EntityType.EXPENSES, [to_cache_shape(EntityType.EXPENSES, record)]
            )
            if queued is not None:
                await self._store.remove_pending_action(queued.id)
            return MutationResult(data=record, is_offline=False)

        if queued is not None:
            # Fold into the edit already waiting; base keeps the values of the first edit
            base = dict(queued.base or {})
            for field_name in updates:
                if field_name not in base and cached is not None:
                    base[field_name] = cached.data.get(field_name)
            queued.payload = {
                "id": expense_id,
                "updates": {**queued.payload.get("updates", {}), **updates},
                "base": base,
            }
            await self._store.update_pending_action(queued)
            action_id = queued.id
        else:
            base = {f: cached.data.get(f) for f in updates} if cached is not None else None
            payload: dict[str, Any] = {"id": expense_id, "updates": updates}
            if base is not None:
                payload["base"] = base
            action_id = await self._store.add_pending_action(ActionType.UPDATE_EXPENSE, payload)

        record = None
        if cached is not None:
            record = await self._cache_pending(
                EntityType.EXPENSES, expense_id, {**cached.data, **updates}, action_id
            )
        logger.info("Expense %s edit queued offline as %s", expense_id, action_id)
        return MutationResult(data=record, is_offline=True, action_id=action_id)

    async def delete_expense(self, expense_id: str) -> MutationResult:
        if is_temp_id(expense_id):
            # Never reached the remote store: dropping the queued create is enough
            action_id = action_id_from_temp(expense_id)
            removed = await self._store.remove_pending_action(action_id)
            cached = await self._store.remove_cached(EntityType.EXPENSES, expense_id)
            if not removed and not cached:
                raise EntityNotFoundError("Expense", expense_id)
            logger.info("Dropped offline expense %s before it was synced", expense_id)
            return MutationResult(data=None, is_offline=True)

        cached = await self._store.get_cached_entity(EntityType.EXPENSES, expense_id)
        queued = await self._queued_action(cached, ActionType.UPDATE_EXPENSE)

        if self.is_online:
            await self._remote.delete(EntityType.EXPENSES, expense_id)
            await self._store.remove_cached(EntityType.EXPENSES, expense_id)
            if queued is not None:
                await self._store.remove_pending_action(queued.id)
            return MutationResult(data=None, is_offline=False)

        if queued is not None:
            await self._store.remove_pending_action(queued.id)

        action_id = await self._store.add_pending_action(
            ActionType.DELETE_EXPENSE, {"id": expense_id}
        )
        await self._store.remove_cached(EntityType.EXPENSES, expense_id)
        logger.info("Expense %s deletion queued offline as %s", expense_id, action_id)
        return MutationResult(data=None, is_offline=True, action_id=action_id)

    # ── Groups ───────────────────────────────────────────────────────

    async def create_group(self, data: GroupCreate) -> MutationResult:
        if not self._current_user_id:
            raise MissingUserError("create_group")

        payload = {
            **data.model_dump(mode="json", exclude_none=True),
            "created_by": self._current_user_id,
        }

        if self.is_online:
            record = await self._remote.insert(EntityType.GROUPS, payload)
            await self._store.cache_entities(
                EntityType.GROUPS, [to_cache_shape(EntityType.GROUPS, record)]
            )
            logger.info("Created group %s", record.get("id"))
            return MutationResult(data=record, is_offline=False)

        action_id = await self._store.add_pending_action(ActionType.CREATE_GROUP, payload)
        now_iso = ms_to_datetime(self._clock()).isoformat()
        cached = await self._cache_pending(
            EntityType.GROUPS,
            temp_id_for(action_id),
            {**payload, "updated_at": now_iso},
            action_id,
        )
        logger.info("Group queued offline as %s", action_id)
        return MutationResult(data=cached, is_offline=True, action_id=action_id)

    # ── Reads ────────────────────────────────────────────────────────

    async def get_expenses(self, group_id: str | None = None) -> list[dict[str, Any]]:
        cached = await self._store.get_cached(EntityType.EXPENSES, group_id)
        if not self.is_online:
            return [e.to_record() for e in cached]

        filters = [QueryFilter("group_id", "eq", group_id)] if group_id else None
        try:
            fresh = await self._remote.query(
                EntityType.EXPENSES, filters=filters, order=QueryOrder("expense_date")
            )
        except RemoteServiceError as exc:
            logger.warning("Expense refresh failed, serving cache: %s", exc)
            return [e.to_record() for e in cached]

        return await self._merge_fresh(EntityType.EXPENSES, fresh, cached)

    async def get_groups(self) -> list[dict[str, Any]]:
        cached = await self._store.get_cached(EntityType.GROUPS)
        if not self.is_online:
            return [g.to_record() for g in cached]

        try:
            fresh = await self._remote.query(EntityType.GROUPS, order=QueryOrder("updated_at"))
        except RemoteServiceError as exc:
            logger.warning("Group refresh failed, serving cache: %s", exc)
            return [g.to_record() for g in cached]

        return await self._merge_fresh(EntityType.GROUPS, fresh, cached)

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        cached = await self._store.get_cached_entity(EntityType.USERS, user_id)
        if self.is_online:
            try:
                profile = await self._remote.get_one(EntityType.USERS, user_id)
            except RemoteServiceError as exc:
                logger.warning("Profile refresh failed, serving cache: %s", exc)
            else:
                if profile is not None:
                    shaped = to_cache_shape(EntityType.USERS, profile)
                    await self._store.cache_entities(EntityType.USERS, [shaped])
                    cached = await self._store.get_cached_entity(EntityType.USERS, user_id)
        return cached.to_record() if cached else None

    # ── Helpers ──────────────────────────────────────────────────────

    async def _merge_fresh(
        self,
        entity_type: EntityType,
        fresh: list[dict[str, Any]],
        cached: list[CachedEntity],
    ) -> list[dict[str, Any]]:
        """Cache fresh records and return them alongside pending local ones.

        Pending records win over their fresh copies, and records with a
        queued deletion are left out.
        """
        pending = {e.id: e for e in cached if e.pending}
        deleted = {
            a.target_id
            for a in await self._store.get_pending_actions()
            if a.entity_type == entity_type and a.operation == ActionOperation.DELETE
        }

        shaped = [to_cache_shape(entity_type, r) for r in fresh]
        writable = [r for r in shaped if r["id"] not in pending and r["id"] not in deleted]
        await self._store.cache_entities(entity_type, writable)

        now = self._clock()
        records = [e.to_record() for e in pending.values()]
        records.extend({**r, "cached_at": now} for r in writable)
        return records

    async def _cache_pending(
        self,
        entity_type: EntityType,
        entity_id: str,
        data: dict[str, Any],
        action_id: str,
    ) -> dict[str, Any]:
        record = {
            "created_at": ms_to_datetime(self._clock()).isoformat(),
            **data,
            "id": entity_id,
            "_pending": True,
            "_pending_action_id": action_id,
        }
        await self._store.cache_entities(entity_type, [record])
        cached = await self._store.get_cached_entity(entity_type, entity_id)
        return cached.to_record() if cached else record

    async def _queued_action(
        self, cached: CachedEntity | None, action_type: ActionType
    ) -> PendingAction | None:
        """The still-pending outbox entry of ``action_type`` behind a cached record, if any."""
        if cached is None or not cached.pending or not cached.pending_action_id:
            return None
        action = await self._store.get_pending_action(cached.pending_action_id)
        if action is None or action.action_type != action_type:
            return None
        if action.status != ActionStatus.PENDING:
            return None
        return action

    async def _amend_queued_create(self, temp_id: str, updates: dict[str, Any]) -> MutationResult:
        action = await self._store.get_pending_action(action_id_from_temp(temp_id))
        if action is None or action.action_type != ActionType.CREATE_EXPENSE:
            raise EntityNotFoundError("Expense", temp_id)

        action.payload = {**action.payload, **updates}
        await self._store.update_pending_action(action)

        cached = await self._store.get_cached_entity(EntityType.EXPENSES, temp_id)
        base = cached.data if cached else action.payload
        record = await self._cache_pending(EntityType.EXPENSES, temp_id, {**base, **updates}, action.id)
        logger.info("Offline expense %s amended before sync", temp_id)
        return MutationResult(data=record, is_offline=True, action_id=action.id)

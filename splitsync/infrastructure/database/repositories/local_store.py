"""Concrete local store implementation backed by SQLAlchemy."""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from splitsync.application.interfaces import LocalStore
from splitsync.domain.entities import (
    ActionStatus,
    ActionType,
    CachedEntity,
    EntityType,
    PendingAction,
)
from splitsync.domain.time_utils import Clock, now_ms
from splitsync.infrastructure.database.models import (
    CachedExpenseModel,
    CachedGroupModel,
    CachedUserModel,
    MetadataEntryModel,
    PendingActionModel,
)

logger = logging.getLogger(__name__)

_MODELS = {
    EntityType.GROUPS: CachedGroupModel,
    EntityType.EXPENSES: CachedExpenseModel,
    EntityType.USERS: CachedUserModel,
}

# Keys carried on UI-facing records that are store bookkeeping, not entity data
_BOOKKEEPING_KEYS = frozenset({"id", "cached_at", "_pending", "_pending_action_id"})


class SQLAlchemyLocalStore(LocalStore):
    """Implements the LocalStore port on an async SQLAlchemy engine.

    Every call runs in its own short-lived session and transaction, which is
    what makes each operation atomic on its own.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = now_ms,
    ):
        self._session_factory = session_factory
        self._clock = clock

    # ── Cached entities ─────────────────────────────────────────────

    async def cache_entities(self, entity_type: EntityType, records: list[dict[str, Any]]) -> int:
        if not records:
            return 0
        model_cls = _MODELS[entity_type]
        now = self._clock()

        async with self._session_factory() as session:
            async with session.begin():
                for record in records:
                    entity_id = record.get("id")
                    if not entity_id:
                        raise ValueError(f"Cannot cache a {entity_type.value} record without an id")
                    data = {k: v for k, v in record.items() if k not in _BOOKKEEPING_KEYS}
                    values: dict[str, Any] = {
                        "id": str(entity_id),
                        "data": data,
                        "cached_at": now,
                        "pending": bool(record.get("_pending", False)),
                        "pending_action_id": record.get("_pending_action_id"),
                    }
                    if model_cls is CachedExpenseModel:
                        values["group_id"] = data.get("group_id")
                    await session.merge(model_cls(**values))
        return len(records)

    async def get_cached(
        self, entity_type: EntityType, group_id: str | None = None
    ) -> list[CachedEntity]:
        model_cls = _MODELS[entity_type]
        stmt = select(model_cls)
        if group_id is not None:
            if model_cls is not CachedExpenseModel:
                raise ValueError(f"{entity_type.value} cannot be filtered by group")
            stmt = stmt.where(CachedExpenseModel.group_id == group_id)
        stmt = stmt.order_by(model_cls.cached_at.desc(), model_cls.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(entity_type, m) for m in result.scalars().all()]

    async def get_cached_entity(self, entity_type: EntityType, entity_id: str) -> CachedEntity | None:
        async with self._session_factory() as session:
            model = await session.get(_MODELS[entity_type], entity_id)
            return self._to_entity(entity_type, model) if model else None

    async def remove_cached(self, entity_type: EntityType, entity_id: str) -> bool:
        model_cls = _MODELS[entity_type]
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(model_cls).where(model_cls.id == entity_id)
                )
                removed = result.rowcount > 0
        return removed

    async def clean_old_cache(self, max_age_ms: int) -> dict[str, int]:
        cutoff = self._clock() - max_age_ms
        evicted: dict[str, int] = {}

        for entity_type, model_cls in _MODELS.items():
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(model_cls)
                        .where(model_cls.cached_at < cutoff)
                        .where(model_cls.pending.is_(False))
                    )
                    evicted[entity_type.value] = result.rowcount or 0

        if any(evicted.values()):
            logger.info("Evicted stale cache entries: %s", evicted)
        return evicted

    async def get_cache_size(self) -> dict[str, int]:
        sizes: dict[str, int] = {}
        async with self._session_factory() as session:
            for entity_type, model_cls in _MODELS.items():
                count = await session.scalar(select(func.count()).select_from(model_cls))
                sizes[entity_type.value] = count or 0
            actions = await session.scalar(
                select(func.count()).select_from(PendingActionModel)
            )
            sizes["actions"] = actions or 0
        return sizes

    # ── Outbox ──────────────────────────────────────────────────────

    async def add_pending_action(self, action_type: ActionType, payload: dict[str, Any]) -> str:
        now = self._clock()
        action_id = f"action_{now}_{uuid.uuid4().hex[:9]}"

        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    PendingActionModel(
                        id=action_id,
                        type=action_type.value,
                        payload=dict(payload),
                        created_at=now,
                        retries=0,
                        last_error=None,
                        status=ActionStatus.PENDING.value,
                    )
                )

        logger.debug("Queued %s as %s", action_type.value, action_id)
        return action_id

    async def get_pending_actions(self) -> list[PendingAction]:
        return await self._actions_with_status(ActionStatus.PENDING)

    async def get_failed_actions(self) -> list[PendingAction]:
        return await self._actions_with_status(ActionStatus.FAILED)

    async def get_pending_action(self, action_id: str) -> PendingAction | None:
        async with self._session_factory() as session:
            model = await self._action_model(session, action_id)
            return self._to_action(model) if model else None

    async def update_pending_action(self, action: PendingAction) -> PendingAction:
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._action_model(session, action.id)
                if model is None:
                    raise ValueError(f"PendingAction with id {action.id} not found")
                model.payload = dict(action.payload)
                model.retries = action.retries
                model.last_error = action.last_error
                model.status = action.status.value
        return action

    async def remove_pending_action(self, action_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(PendingActionModel).where(PendingActionModel.id == action_id)
                )
                removed = result.rowcount > 0
        return removed

    # ── Metadata ────────────────────────────────────────────────────

    async def set_metadata(self, key: str, value: Any) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.merge(
                    MetadataEntryModel(key=key, value=value, updated_at=self._clock())
                )

    async def get_metadata(self, key: str) -> Any:
        async with self._session_factory() as session:
            model = await session.get(MetadataEntryModel, key)
            return model.value if model else None

    # ── Mapping ──────────────────────────────────────────────────────

    async def _actions_with_status(self, status: ActionStatus) -> list[PendingAction]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PendingActionModel)
                .where(PendingActionModel.status == status.value)
                .order_by(PendingActionModel.sequence.asc(), PendingActionModel.id.asc())
            )
            return [self._to_action(m) for m in result.scalars().all()]

    @staticmethod
    async def _action_model(session: AsyncSession, action_id: str) -> PendingActionModel | None:
        return await session.scalar(
            select(PendingActionModel).where(PendingActionModel.id == action_id)
        )

    @staticmethod
    def _to_entity(entity_type: EntityType, model: Any) -> CachedEntity:
        return CachedEntity(
            entity_type=entity_type,
            id=model.id,
            data=dict(model.data or {}),
            cached_at=model.cached_at,
            pending=model.pending,
            pending_action_id=model.pending_action_id,
        )

    @staticmethod
    def _to_action(model: PendingActionModel) -> PendingAction:
        return PendingAction(
            id=model.id,
            action_type=ActionType(model.type),
            payload=dict(model.payload or {}),
            created_at=model.created_at,
            retries=model.retries,
            last_error=model.last_error,
            status=ActionStatus(model.status),
            sequence=model.sequence,
        )

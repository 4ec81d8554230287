"""Shared fakes and fixtures: an in-memory remote service, a settable clock and a real SQLite store."""

import copy
from typing import Any

import pytest

from splitsync.application.interfaces import QueryFilter, QueryOrder, RemoteDataService
from splitsync.application.services import ConnectivitySignal
from splitsync.domain.entities import EntityType
from splitsync.domain.exceptions import RemoteServiceError
from splitsync.infrastructure.connectivity import ManualConnectivityProvider
from splitsync.infrastructure.database.repositories import SQLAlchemyLocalStore
from splitsync.infrastructure.database.session import (
    create_session_factory,
    create_store_engine,
    init_local_store_schema,
)

# 2025-06-15T00:00:00Z
START_MS = 1_749_945_600_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeRemoteDataService(RemoteDataService):
    """In-memory remote store with per-operation failure injection."""

    def __init__(self):
        self.tables: dict[EntityType, dict[str, dict[str, Any]]] = {t: {} for t in EntityType}
        self.calls: list[tuple[str, EntityType, Any]] = []
        self.failures: dict[str, Exception] = {}
        self._next_id = 1

    def seed(self, entity_type: EntityType, record: dict[str, Any]) -> dict[str, Any]:
        self.tables[entity_type][record["id"]] = copy.deepcopy(record)
        return record

    def calls_to(self, operation: str) -> list[tuple[str, EntityType, Any]]:
        return [c for c in self.calls if c[0] == operation]

    def _check(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    async def insert(self, entity_type: EntityType, record: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("insert", entity_type, copy.deepcopy(record)))
        self._check("insert")
        stored = {**copy.deepcopy(record)}
        stored.setdefault("id", f"srv_{self._next_id}")
        self._next_id += 1
        stored.setdefault("created_at", "2025-06-15T00:00:00+00:00")
        stored.setdefault("updated_at", "2025-06-15T00:00:00+00:00")
        self.tables[entity_type][stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update(
        self, entity_type: EntityType, entity_id: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("update", entity_type, (entity_id, copy.deepcopy(patch))))
        self._check("update")
        row = self.tables[entity_type].get(entity_id)
        if row is None:
            raise RemoteServiceError(entity_type.value, 404, f"no row returned for id '{entity_id}'")
        row.update(copy.deepcopy(patch))
        return copy.deepcopy(row)

    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        self.calls.append(("delete", entity_type, entity_id))
        self._check("delete")
        self.tables[entity_type].pop(entity_id, None)

    async def get_one(self, entity_type: EntityType, entity_id: str) -> dict[str, Any] | None:
        self.calls.append(("get_one", entity_type, entity_id))
        self._check("get_one")
        row = self.tables[entity_type].get(entity_id)
        return copy.deepcopy(row) if row is not None else None

    async def query(
        self,
        entity_type: EntityType,
        filters: list[QueryFilter] | None = None,
        limit: int | None = None,
        order: QueryOrder | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("query", entity_type, filters))
        self._check("query")
        rows = list(self.tables[entity_type].values())
        for condition in filters or []:
            rows = [r for r in rows if _matches(r.get(condition.field), condition)]
        if order is not None:
            rows.sort(key=lambda r: str(r.get(order.field) or ""), reverse=order.descending)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)


def _matches(value: Any, condition: QueryFilter) -> bool:
    if condition.op == "eq":
        return value == condition.value
    if condition.op == "in":
        return value in condition.value
    if value is None:
        return False
    if condition.op == "gte":
        return str(value) >= str(condition.value)
    if condition.op == "lte":
        return str(value) <= str(condition.value)
    raise ValueError(f"Unsupported filter operator: {condition.op}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> FakeRemoteDataService:
    return FakeRemoteDataService()


@pytest.fixture
async def session_factory():
    engine = create_store_engine("sqlite:///:memory:")
    await init_local_store_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory, clock) -> SQLAlchemyLocalStore:
    return SQLAlchemyLocalStore(session_factory, clock=clock)


@pytest.fixture
def provider() -> ManualConnectivityProvider:
    return ManualConnectivityProvider(online=True)


@pytest.fixture
def signal(provider) -> ConnectivitySignal:
    connectivity = ConnectivitySignal(provider)
    connectivity.start()
    yield connectivity
    connectivity.stop()

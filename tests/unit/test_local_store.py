"""Unit tests for the SQLAlchemy-backed local store (in-memory SQLite)."""

import asyncio
import re

import pytest

from splitsync.domain.entities import ActionStatus, ActionType, EntityType
from splitsync.domain.time_utils import DAY_MS
from splitsync.infrastructure.database.repositories import SQLAlchemyLocalStore
from splitsync.infrastructure.database.session import (
    create_session_factory,
    create_store_engine,
    init_local_store_schema,
)


def _expense(expense_id: str, group_id: str = "g1", **extra) -> dict:
    return {"id": expense_id, "group_id": group_id, "description": "Lunch", "amount": 20, **extra}


# ── Cached entities ──


@pytest.mark.asyncio
async def test_cache_entities_stamps_cached_at_and_overwrites(store, clock):
    await store.cache_entities(EntityType.EXPENSES, [_expense("e1", notes="first")])
    clock.advance(1000)
    await store.cache_entities(EntityType.EXPENSES, [_expense("e1", amount=35)])

    entity = await store.get_cached_entity(EntityType.EXPENSES, "e1")
    assert entity.cached_at == clock.now
    assert entity.data["amount"] == 35
    assert "notes" not in entity.data


@pytest.mark.asyncio
async def test_get_cached_filters_expenses_by_group(store):
    await store.cache_entities(
        EntityType.EXPENSES, [_expense("e1", "g1"), _expense("e2", "g2"), _expense("e3", "g1")]
    )

    in_group = await store.get_cached(EntityType.EXPENSES, group_id="g1")
    everything = await store.get_cached(EntityType.EXPENSES)

    assert {e.id for e in in_group} == {"e1", "e3"}
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_group_filter_is_rejected_for_groups(store):
    with pytest.raises(ValueError):
        await store.get_cached(EntityType.GROUPS, group_id="g1")


@pytest.mark.asyncio
async def test_cache_entities_requires_an_id(store):
    with pytest.raises(ValueError):
        await store.cache_entities(EntityType.GROUPS, [{"name": "No id"}])


@pytest.mark.asyncio
async def test_pending_flags_round_trip(store):
    await store.cache_entities(
        EntityType.EXPENSES,
        [_expense("temp_action_1", _pending=True, _pending_action_id="action_1")],
    )

    entity = await store.get_cached_entity(EntityType.EXPENSES, "temp_action_1")
    record = entity.to_record()

    assert entity.pending is True
    assert record["_pending"] is True
    assert record["_pending_action_id"] == "action_1"
    assert "_pending" not in entity.data


@pytest.mark.asyncio
async def test_remove_cached(store):
    await store.cache_entities(EntityType.USERS, [{"id": "u1", "name": "Ana"}])

    assert await store.remove_cached(EntityType.USERS, "u1") is True
    assert await store.remove_cached(EntityType.USERS, "u1") is False
    assert await store.get_cached_entity(EntityType.USERS, "u1") is None


# ── Eviction ──


@pytest.mark.asyncio
async def test_clean_old_cache_keeps_rows_exactly_at_the_boundary(store, clock):
    await store.cache_entities(EntityType.GROUPS, [{"id": "g1", "name": "Trip"}])
    clock.advance(30 * DAY_MS)

    evicted = await store.clean_old_cache(30 * DAY_MS)

    assert evicted["groups"] == 0
    assert await store.get_cached_entity(EntityType.GROUPS, "g1") is not None


@pytest.mark.asyncio
async def test_clean_old_cache_evicts_rows_past_the_boundary(store, clock):
    await store.cache_entities(EntityType.GROUPS, [{"id": "g1", "name": "Trip"}])
    clock.advance(30 * DAY_MS + 1)

    evicted = await store.clean_old_cache(30 * DAY_MS)

    assert evicted == {"groups": 1, "expenses": 0, "users": 0}
    assert await store.get_cached_entity(EntityType.GROUPS, "g1") is None


@pytest.mark.asyncio
async def test_clean_old_cache_never_evicts_pending_records(store, clock):
    await store.cache_entities(
        EntityType.EXPENSES,
        [_expense("temp_a", _pending=True, _pending_action_id="a")],
    )
    clock.advance(90 * DAY_MS)

    await store.clean_old_cache(30 * DAY_MS)

    assert await store.get_cached_entity(EntityType.EXPENSES, "temp_a") is not None


# ── Outbox ──


@pytest.mark.asyncio
async def test_add_pending_action_generates_id_and_defaults(store, clock):
    action_id = await store.add_pending_action(ActionType.CREATE_EXPENSE, {"description": "Lunch"})

    assert re.fullmatch(rf"action_{clock.now}_[0-9a-f]{{9}}", action_id)
    action = await store.get_pending_action(action_id)
    assert action.created_at == clock.now
    assert action.retries == 0
    assert action.last_error is None
    assert action.status == ActionStatus.PENDING


@pytest.mark.asyncio
async def test_pending_actions_replay_in_fifo_order_within_one_millisecond(store):
    first = await store.add_pending_action(ActionType.CREATE_EXPENSE, {"description": "A"})
    second = await store.add_pending_action(ActionType.UPDATE_EXPENSE, {"id": "e1", "updates": {}})
    third = await store.add_pending_action(ActionType.DELETE_EXPENSE, {"id": "e2"})

    actions = await store.get_pending_actions()

    assert [a.id for a in actions] == [first, second, third]


@pytest.mark.asyncio
async def test_remove_pending_action_is_idempotent(store):
    action_id = await store.add_pending_action(ActionType.DELETE_EXPENSE, {"id": "e1"})

    assert await store.remove_pending_action(action_id) is True
    assert await store.remove_pending_action(action_id) is False
    assert await store.get_pending_actions() == []


@pytest.mark.asyncio
async def test_failed_actions_leave_the_pending_list(store):
    action_id = await store.add_pending_action(ActionType.CREATE_GROUP, {"name": "Trip"})
    action = await store.get_pending_action(action_id)
    action.record_failure("boom", retry_ceiling=1)

    await store.update_pending_action(action)

    assert await store.get_pending_actions() == []
    failed = await store.get_failed_actions()
    assert [a.id for a in failed] == [action_id]
    assert failed[0].last_error == "boom"
    assert failed[0].retries == 1


@pytest.mark.asyncio
async def test_update_unknown_pending_action_raises(store):
    action_id = await store.add_pending_action(ActionType.DELETE_EXPENSE, {"id": "e1"})
    action = await store.get_pending_action(action_id)
    await store.remove_pending_action(action_id)

    with pytest.raises(ValueError):
        await store.update_pending_action(action)


@pytest.mark.asyncio
async def test_outbox_survives_a_restart(tmp_path, clock):
    url = f"sqlite:///{tmp_path / 'offline_cache.db'}"

    engine = create_store_engine(url)
    await init_local_store_schema(engine)
    first = SQLAlchemyLocalStore(create_session_factory(engine), clock=clock)
    action_id = await first.add_pending_action(ActionType.CREATE_EXPENSE, {"description": "Taxi"})
    await engine.dispose()

    engine = create_store_engine(url)
    await init_local_store_schema(engine)
    second = SQLAlchemyLocalStore(create_session_factory(engine), clock=clock)
    actions = await second.get_pending_actions()
    await engine.dispose()

    assert [a.id for a in actions] == [action_id]
    assert actions[0].payload == {"description": "Taxi"}


@pytest.mark.asyncio
async def test_concurrent_enqueues_get_distinct_sequences(tmp_path, clock):
    engine = create_store_engine(f"sqlite:///{tmp_path / 'offline_cache.db'}")
    await init_local_store_schema(engine)
    store = SQLAlchemyLocalStore(create_session_factory(engine), clock=clock)

    ids = await asyncio.gather(
        *(
            store.add_pending_action(ActionType.CREATE_EXPENSE, {"description": f"Item {n}"})
            for n in range(5)
        )
    )
    actions = await store.get_pending_actions()
    await engine.dispose()

    sequences = [a.sequence for a in actions]
    assert len(set(sequences)) == 5
    assert sequences == sorted(sequences)
    assert {a.id for a in actions} == set(ids)


# ── Metadata & sizes ──


@pytest.mark.asyncio
async def test_metadata_round_trip(store):
    assert await store.get_metadata("last_sync") is None

    await store.set_metadata("last_sync", "2025-06-15T00:00:00+00:00")
    await store.set_metadata("last_sync", "2025-06-16T00:00:00+00:00")

    assert await store.get_metadata("last_sync") == "2025-06-16T00:00:00+00:00"


@pytest.mark.asyncio
async def test_get_cache_size(store):
    await store.cache_entities(EntityType.GROUPS, [{"id": "g1"}, {"id": "g2"}])
    await store.cache_entities(EntityType.EXPENSES, [_expense("e1")])
    await store.add_pending_action(ActionType.DELETE_EXPENSE, {"id": "e1"})

    assert await store.get_cache_size() == {"groups": 2, "expenses": 1, "users": 0, "actions": 1}

"""API tests for the expense, outbox, sync and conflict endpoints against a wired runtime."""

import pytest
from httpx import ASGITransport, AsyncClient

from splitsync.config import Settings
from splitsync.domain.entities import ActionType, EntityType
from splitsync.domain.exceptions import RemoteServiceError
from splitsync.infrastructure.connectivity import ManualConnectivityProvider
from splitsync.infrastructure.dependencies import build_runtime
from splitsync.main import create_app

LUNCH = {
    "group_id": "g1",
    "description": "Lunch",
    "amount": 20,
    "paid_by": "u1",
    "expense_date": "2025-06-14",
    "participants": ["u1", "u2"],
}


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, current_user_id="u1", **overrides)


@pytest.fixture
async def runtime(session_factory, remote, clock):
    runtime = build_runtime(
        _settings(),
        session_factory=session_factory,
        remote=remote,
        provider=ManualConnectivityProvider(online=True),
        clock=clock,
    )
    runtime.signal.start()
    yield runtime
    runtime.signal.stop()


@pytest.fixture
async def client(runtime):
    app = create_app()
    app.state.runtime = runtime
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def _go_offline(client: AsyncClient) -> None:
    response = await client.put("/api/v1/connectivity", json={"online": False})
    assert response.json() == {"online": False}


@pytest.mark.asyncio
async def test_offline_expense_is_queued_then_synced(client, remote):
    await _go_offline(client)

    created = await client.post("/api/v1/expenses", json=LUNCH)
    assert created.status_code == 201
    body = created.json()
    assert body["is_offline"] is True
    assert body["data"]["id"].startswith("temp_")

    outbox = await client.get("/api/v1/outbox")
    assert [a["action_type"] for a in outbox.json()] == ["CREATE_EXPENSE"]

    skipped = await client.post("/api/v1/sync")
    assert skipped.json()["skip_reason"] == "offline"

    await client.put("/api/v1/connectivity", json={"online": True})
    report = await client.post("/api/v1/sync")
    assert report.status_code == 200
    assert report.json()["pushed"] == 1
    assert len(remote.tables[EntityType.EXPENSES]) == 1

    status = (await client.get("/api/v1/sync/status")).json()
    assert status["pending_actions"] == 0
    assert status["state"] == "idle"
    assert status["last_sync"] is not None


@pytest.mark.asyncio
async def test_online_remote_errors_are_mapped(client, remote):
    remote.failures["insert"] = RemoteServiceError("expenses", 409, "duplicate key")
    conflict = await client.post("/api/v1/expenses", json=LUNCH)

    remote.failures["insert"] = RemoteServiceError("expenses", 0, "connection refused")
    unreachable = await client.post("/api/v1/expenses", json=LUNCH)

    assert conflict.status_code == 409
    assert unreachable.status_code == 502


@pytest.mark.asyncio
async def test_invalid_expense_is_rejected(client):
    response = await client.post("/api/v1/expenses", json={**LUNCH, "amount": -5})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_group_creation_without_user_is_unauthorized(session_factory, remote, clock):
    runtime = build_runtime(
        Settings(_env_file=None, current_user_id=None),
        session_factory=session_factory,
        remote=remote,
        provider=ManualConnectivityProvider(online=True),
        clock=clock,
    )
    app = create_app()
    app.state.runtime = runtime

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        response = await http.post("/api/v1/groups", json={"name": "Trip"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_failed_actions_can_be_retried_and_discarded(client, remote):
    await _go_offline(client)
    first = (await client.post("/api/v1/expenses", json=LUNCH)).json()
    second = (await client.post("/api/v1/expenses", json={**LUNCH, "description": "Taxi"})).json()
    await client.put("/api/v1/connectivity", json={"online": True})

    remote.failures["insert"] = RemoteServiceError("expenses", 400, "bad row")
    await client.post("/api/v1/sync")
    failed = (await client.get("/api/v1/outbox/failed")).json()
    assert {a["id"] for a in failed} == {first["action_id"], second["action_id"]}
    assert all(a["status"] == "failed" for a in failed)

    discarded = await client.delete(f"/api/v1/outbox/{second['action_id']}")
    assert discarded.status_code == 204

    retried = await client.post(f"/api/v1/outbox/{first['action_id']}/retry")
    assert retried.json()["status"] == "pending"

    del remote.failures["insert"]
    report = (await client.post("/api/v1/sync")).json()
    assert report["pushed"] == 1
    assert (await client.get("/api/v1/outbox/failed")).json() == []


@pytest.mark.asyncio
async def test_unknown_outbox_and_conflict_ids_are_404(client):
    assert (await client.post("/api/v1/outbox/action_missing/retry")).status_code == 404
    assert (await client.delete("/api/v1/outbox/action_missing")).status_code == 404
    response = await client.post(
        "/api/v1/conflicts/conflict_missing/resolve", json={"resolution_type": "use_local"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_manual_conflict_resolution_through_the_api(client, remote, runtime, clock):
    remote.seed(
        EntityType.EXPENSES,
        {"id": "e1", "group_id": "g1", "description": "Dinner", "amount": 45, "currency": "USD"},
    )
    clock.advance(-60 * 60 * 1000)
    await runtime.store.add_pending_action(
        ActionType.UPDATE_EXPENSE,
        {"id": "e1", "updates": {"amount": 50, "currency": "EUR"}, "base": {"amount": 40, "currency": "CAD"}},
    )
    clock.advance(60 * 60 * 1000)

    detected = (await client.post("/api/v1/conflicts/detect")).json()
    assert len(detected) == 1
    assert sorted(detected[0]["field_conflicts"]) == ["amount", "currency"]
    conflict_id = detected[0]["id"]

    missing_data = await client.post(
        f"/api/v1/conflicts/{conflict_id}/resolve", json={"resolution_type": "manual"}
    )
    assert missing_data.status_code == 422

    resolved = await client.post(
        f"/api/v1/conflicts/{conflict_id}/resolve",
        json={"resolution_type": "manual", "merged_data": {"amount": 48, "currency": "CAD"}},
    )
    assert resolved.status_code == 200
    assert resolved.json()["amount"] == 48
    assert remote.tables[EntityType.EXPENSES]["e1"]["currency"] == "CAD"
    assert (await client.get("/api/v1/conflicts")).json() == []
    assert (await client.get("/api/v1/outbox")).json() == []

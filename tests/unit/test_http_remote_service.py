"""Unit tests for the HTTP remote data service and the HTTP connectivity probe."""

import json

import httpx
import pytest

from splitsync.application.interfaces import QueryFilter, QueryOrder
from splitsync.domain.entities import EntityType
from splitsync.domain.exceptions import RemoteServiceError
from splitsync.infrastructure.connectivity import HttpProbeConnectivityProvider
from splitsync.infrastructure.remote import HttpRemoteDataService

BASE_URL = "https://db.example.test/rest/v1"


# ── Helpers ──


def _recording_transport(
    requests: list[httpx.Request],
    response_data=None,
    status_code: int = 200,
) -> httpx.MockTransport:
    """Mock transport that records each request and answers with a fixed body."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if response_data is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=response_data)

    return httpx.MockTransport(handler)


def _service(transport: httpx.MockTransport, **kwargs) -> HttpRemoteDataService:
    client = httpx.AsyncClient(transport=transport)
    return HttpRemoteDataService(BASE_URL, api_key="anon-key", http_client=client, **kwargs)


# ── Writes ──


@pytest.mark.asyncio
async def test_insert_asks_for_the_stored_representation():
    requests: list[httpx.Request] = []
    service = _service(_recording_transport(requests, [{"id": "e1", "description": "Lunch"}], 201))

    record = await service.insert(EntityType.EXPENSES, {"description": "Lunch"})

    assert record == {"id": "e1", "description": "Lunch"}
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/expenses"
    assert request.headers["Prefer"] == "return=representation"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert json.loads(request.content) == {"description": "Lunch"}


@pytest.mark.asyncio
async def test_update_targets_the_row_by_id():
    requests: list[httpx.Request] = []
    service = _service(_recording_transport(requests, [{"id": "e1", "amount": 50}]))

    record = await service.update(EntityType.EXPENSES, "e1", {"amount": 50})

    assert record["amount"] == 50
    assert requests[0].method == "PATCH"
    assert requests[0].url.params["id"] == "eq.e1"


@pytest.mark.asyncio
async def test_update_of_missing_row_is_not_found():
    service = _service(_recording_transport([], []))

    with pytest.raises(RemoteServiceError) as exc_info:
        await service.update(EntityType.EXPENSES, "gone", {"amount": 1})

    assert exc_info.value.status_code == 404
    assert exc_info.value.is_transient is False


@pytest.mark.asyncio
async def test_delete_accepts_an_empty_response():
    requests: list[httpx.Request] = []
    service = _service(_recording_transport(requests, status_code=204))

    await service.delete(EntityType.EXPENSES, "e1")

    assert requests[0].method == "DELETE"
    assert requests[0].url.params["id"] == "eq.e1"


# ── Reads ──


@pytest.mark.asyncio
async def test_get_one_returns_none_for_no_rows():
    service = _service(_recording_transport([], []))

    assert await service.get_one(EntityType.GROUPS, "missing") is None


@pytest.mark.asyncio
async def test_users_live_in_the_profiles_table():
    requests: list[httpx.Request] = []
    service = _service(_recording_transport(requests, [{"id": "u1"}]))

    await service.get_one(EntityType.USERS, "u1")

    assert requests[0].url.path.endswith("/user_profiles")


@pytest.mark.asyncio
async def test_query_translates_filters_order_and_limit():
    requests: list[httpx.Request] = []
    service = _service(_recording_transport(requests, [{"id": "e1"}, {"id": "e2"}]))

    rows = await service.query(
        EntityType.EXPENSES,
        filters=[
            QueryFilter("expense_date", "gte", "2025-05-16"),
            QueryFilter("group_id", "in", ["g1", "g2"]),
        ],
        limit=500,
        order=QueryOrder("expense_date"),
    )

    assert len(rows) == 2
    params = requests[0].url.params
    assert params["select"] == "*"
    assert params["expense_date"] == "gte.2025-05-16"
    assert params["group_id"] == "in.(g1,g2)"
    assert params["order"] == "expense_date.desc"
    assert params["limit"] == "500"


@pytest.mark.asyncio
async def test_query_rejects_unknown_operators():
    service = _service(_recording_transport([], []))

    with pytest.raises(ValueError):
        await service.query(EntityType.EXPENSES, filters=[QueryFilter("amount", "like", "%")])


# ── Errors ──


@pytest.mark.asyncio
async def test_error_body_message_is_surfaced():
    service = _service(
        _recording_transport([], {"message": "violates check constraint"}, status_code=400)
    )

    with pytest.raises(RemoteServiceError) as exc_info:
        await service.insert(EntityType.EXPENSES, {"amount": -1})

    assert exc_info.value.status_code == 400
    assert "violates check constraint" in exc_info.value.message
    assert exc_info.value.is_transient is False


@pytest.mark.asyncio
async def test_server_errors_are_transient():
    service = _service(_recording_transport([], {"message": "upstream down"}, status_code=503))

    with pytest.raises(RemoteServiceError) as exc_info:
        await service.query(EntityType.GROUPS)

    assert exc_info.value.is_transient is True


@pytest.mark.asyncio
async def test_transport_failure_is_a_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(httpx.MockTransport(handler))

    with pytest.raises(RemoteServiceError) as exc_info:
        await service.get_one(EntityType.EXPENSES, "e1")

    assert exc_info.value.status_code == RemoteServiceError.NETWORK_FAILURE
    assert exc_info.value.is_transient is True


# ── Connectivity probe ──


@pytest.mark.asyncio
async def test_probe_reports_transitions():
    reachable = {"value": True}

    def handler(request: httpx.Request) -> httpx.Response:
        if not reachable["value"]:
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(503)

    provider = HttpProbeConnectivityProvider(
        "https://db.example.test/health",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    seen: list[bool] = []
    provider.subscribe(seen.append)

    assert await provider.probe() is True
    reachable["value"] = False
    assert await provider.probe() is False
    assert provider.is_online() is False
    assert seen == [False]

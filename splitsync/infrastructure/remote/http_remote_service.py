"""PostgREST-style remote data service client — implements the RemoteDataService interface.

Talks to a hosted database's REST endpoint using httpx. Rows are addressed
with ``?id=eq.<id>`` filters and writes ask for the stored representation
back (``Prefer: return=representation``).
"""

import logging
from typing import Any

import httpx

from splitsync.application.interfaces import QueryFilter, QueryOrder, RemoteDataService
from splitsync.domain.entities import EntityType
from splitsync.domain.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)

DEFAULT_TABLES: dict[EntityType, str] = {
    EntityType.GROUPS: "groups",
    EntityType.EXPENSES: "expenses",
    EntityType.USERS: "user_profiles",
}

_SUPPORTED_OPS = frozenset({"eq", "gte", "lte", "gt", "lt", "in"})


class HttpRemoteDataService(RemoteDataService):
    """Infrastructure adapter — connects to the remote REST API.

    An injected ``httpx.AsyncClient`` is reused across calls (and left open);
    otherwise a client is created and closed per request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = 15.0,
        tables: dict[EntityType, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._tables = {**DEFAULT_TABLES, **(tables or {})}
        self._http_client = http_client

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _url(self, entity_type: EntityType) -> str:
        return f"{self._base_url}/{self._tables[entity_type]}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _request(
        self,
        entity_type: EntityType,
        method: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> Any:
        headers = self._get_headers()
        if prefer:
            headers["Prefer"] = prefer

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.request(
                method, self._url(entity_type), params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed before a response: %s", method, entity_type.value, exc)
            raise RemoteServiceError(
                entity_type.value, RemoteServiceError.NETWORK_FAILURE, str(exc) or type(exc).__name__
            ) from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code >= 400:
            self._raise_remote_error(entity_type, response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _raise_remote_error(entity_type: EntityType, response: httpx.Response) -> None:
        """Parse an error body and raise RemoteServiceError."""
        try:
            body = response.json()
            message = body.get("message") or body.get("error") or response.text
        except (ValueError, AttributeError):
            message = response.text or response.reason_phrase
        raise RemoteServiceError(entity_type.value, response.status_code, str(message))

    @staticmethod
    def _first_row(entity_type: EntityType, data: Any, entity_id: str | None = None) -> dict[str, Any]:
        if isinstance(data, list):
            if not data:
                raise RemoteServiceError(
                    entity_type.value, 404, f"no row returned for id '{entity_id}'"
                )
            return data[0]
        if isinstance(data, dict):
            return data
        raise RemoteServiceError(entity_type.value, 502, "unexpected response body")

    # ── RemoteDataService ────────────────────────────────────────────

    async def insert(self, entity_type: EntityType, record: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            entity_type, "POST", json=record, prefer="return=representation"
        )
        return self._first_row(entity_type, data)

    async def update(
        self, entity_type: EntityType, entity_id: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        data = await self._request(
            entity_type,
            "PATCH",
            params={"id": f"eq.{entity_id}"},
            json=patch,
            prefer="return=representation",
        )
        return self._first_row(entity_type, data, entity_id)

    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        await self._request(entity_type, "DELETE", params={"id": f"eq.{entity_id}"})

    async def get_one(self, entity_type: EntityType, entity_id: str) -> dict[str, Any] | None:
        data = await self._request(
            entity_type, "GET", params={"id": f"eq.{entity_id}", "limit": "1"}
        )
        if not data:
            return None
        return data[0] if isinstance(data, list) else data

    async def query(
        self,
        entity_type: EntityType,
        filters: list[QueryFilter] | None = None,
        limit: int | None = None,
        order: QueryOrder | None = None,
    ) -> list[dict[str, Any]]:
        params = self._build_query_params(filters, limit, order)
        data = await self._request(entity_type, "GET", params=params)
        return list(data or [])

    @staticmethod
    def _build_query_params(
        filters: list[QueryFilter] | None,
        limit: int | None,
        order: QueryOrder | None,
    ) -> dict[str, str]:
        """Translate filters into PostgREST ``field=op.value`` parameters."""
        params: dict[str, str] = {"select": "*"}
        for condition in filters or []:
            if condition.op not in _SUPPORTED_OPS:
                raise ValueError(f"Unsupported filter operator: {condition.op}")
            if condition.op == "in":
                value = "(" + ",".join(str(v) for v in condition.value) + ")"
            else:
                value = str(condition.value)
            params[condition.field] = f"{condition.op}.{value}"
        if order is not None:
            params["order"] = f"{order.field}.{'desc' if order.descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        return params

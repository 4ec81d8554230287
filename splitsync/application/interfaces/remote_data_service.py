"""Abstract remote data service interface (port) — the authoritative store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from splitsync.domain.entities import EntityType


@dataclass(frozen=True)
class QueryFilter:
    """A single ``field <op> value`` condition. ``op`` is one of eq, gte, lte, in."""

    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class QueryOrder:
    field: str
    descending: bool = True


class RemoteDataService(ABC):
    """Port for the hosted database. Implementations raise RemoteServiceError on failure."""

    @abstractmethod
    async def insert(self, entity_type: EntityType, record: dict[str, Any]) -> dict[str, Any]:
        """Create a record and return it as stored, with its server-assigned id."""
        ...

    @abstractmethod
    async def update(
        self, entity_type: EntityType, entity_id: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply a partial update and return the resulting record."""
        ...

    @abstractmethod
    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        ...

    @abstractmethod
    async def get_one(self, entity_type: EntityType, entity_id: str) -> dict[str, Any] | None:
        """Return the record, or None when it does not exist."""
        ...

    @abstractmethod
    async def query(
        self,
        entity_type: EntityType,
        filters: list[QueryFilter] | None = None,
        limit: int | None = None,
        order: QueryOrder | None = None,
    ) -> list[dict[str, Any]]:
        ...

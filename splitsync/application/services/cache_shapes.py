"""Transform remote records into the shape kept in the local cache."""

from typing import Any

from splitsync.domain.entities import DEFAULT_CURRENCY, EntityType

# Fields each entity type can have edited; used for conflict detection and writes
MUTABLE_FIELDS: dict[EntityType, tuple[str, ...]] = {
    EntityType.EXPENSES: ("description", "amount", "currency", "expense_date", "notes"),
    EntityType.GROUPS: ("name", "description", "currency"),
    EntityType.USERS: ("name", "avatar_url", "preferred_currency"),
}

# Server-managed or store-managed keys that must never be written back
READ_ONLY_FIELDS = frozenset({
    "id",
    "created_at",
    "updated_at",
    "cached_at",
    "_pending",
    "_pending_action_id",
})


def _member_ids(record: dict[str, Any], flat_key: str, join_key: str) -> list[str]:
    if isinstance(record.get(flat_key), list):
        return [str(m) for m in record[flat_key]]
    joined = record.get(join_key) or []
    return [str(row["user_id"]) for row in joined if isinstance(row, dict) and "user_id" in row]


def group_to_cache(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(record["id"]),
        "name": record.get("name"),
        "description": record.get("description"),
        "currency": record.get("currency"),
        "created_by": record.get("created_by"),
        "created_at": record.get("created_at"),
        "updated_at": record.get("updated_at"),
        "members": _member_ids(record, "members", "group_members"),
    }


def expense_to_cache(record: dict[str, Any]) -> dict[str, Any]:
    shaped = {
        "id": str(record["id"]),
        "group_id": record.get("group_id"),
        "description": record.get("description"),
        "amount": record.get("amount"),
        "currency": record.get("currency"),
        "paid_by": record.get("paid_by"),
        "expense_date": record.get("expense_date"),
        "created_at": record.get("created_at"),
        "participants": _member_ids(record, "participants", "expense_participants"),
    }
    for optional in ("category", "notes"):
        if record.get(optional) is not None:
            shaped[optional] = record[optional]
    return shaped


def user_to_cache(record: dict[str, Any]) -> dict[str, Any]:
    email = record.get("email") or ""
    name = record.get("full_name") or record.get("name") or (email.split("@")[0] if email else "")
    return {
        "id": str(record["id"]),
        "name": name or "User",
        "email": email,
        "avatar_url": record.get("avatar_url"),
        "preferred_currency": record.get("preferred_currency") or DEFAULT_CURRENCY,
    }


_TRANSFORMS = {
    EntityType.GROUPS: group_to_cache,
    EntityType.EXPENSES: expense_to_cache,
    EntityType.USERS: user_to_cache,
}


def to_cache_shape(entity_type: EntityType, record: dict[str, Any]) -> dict[str, Any]:
    return _TRANSFORMS[entity_type](record)


def writable_fields(record: dict[str, Any]) -> dict[str, Any]:
    """Strip keys the remote service manages itself."""
    return {k: v for k, v in record.items() if k not in READ_ONLY_FIELDS}

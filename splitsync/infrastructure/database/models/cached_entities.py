"""SQLAlchemy ORM models for the cached entity collections."""

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from splitsync.infrastructure.database.base import Base


class CachedEntityMixin:
    """Columns shared by every cached collection.

    ``data`` stores the authoritative-shape fields as-is so the cache never
    drops fields it does not know about.
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    cached_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pending_action_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class CachedGroupModel(CachedEntityMixin, Base):
    """ORM model — maps to the 'groups' table."""

    __tablename__ = "groups"

    def __repr__(self) -> str:
        return f"<CachedGroupModel(id={self.id}, pending={self.pending})>"


class CachedExpenseModel(CachedEntityMixin, Base):
    """ORM model — maps to the 'expenses' table."""

    __tablename__ = "expenses"

    group_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<CachedExpenseModel(id={self.id}, group_id={self.group_id}, "
            f"pending={self.pending})>"
        )


class CachedUserModel(CachedEntityMixin, Base):
    """ORM model — maps to the 'users' table."""

    __tablename__ = "users"

    def __repr__(self) -> str:
        return f"<CachedUserModel(id={self.id})>"

"""SQLAlchemy ORM models for the outbox and the metadata key-value collection."""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from splitsync.infrastructure.database.base import Base


class PendingActionModel(Base):
    """ORM model — maps to the 'pending_actions' table."""

    __tablename__ = "pending_actions"

    # Assigned by the database on insert; outbox replay order
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    __table_args__ = (
        Index("ix_pending_actions_status_sequence", "status", "sequence"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<PendingActionModel(id={self.id}, type='{self.type}', "
            f"status='{self.status}', retries={self.retries})>"
        )


class MetadataEntryModel(Base):
    """ORM model — maps to the 'metadata' table."""

    __tablename__ = "metadata"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<MetadataEntryModel(key='{self.key}')>"

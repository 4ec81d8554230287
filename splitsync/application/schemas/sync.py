"""Pydantic DTOs for sync status, outbox and conflict endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from splitsync.domain.entities import ActionStatus, ActionType, EntityType, ResolutionType, SyncState


class SyncStatusResponse(BaseModel):
    state: SyncState
    is_loading: bool
    is_online: bool
    last_sync: datetime | None = None
    pending_actions: int
    failed_actions: int
    error: str | None = None
    cache_sizes: dict[str, int] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class SyncReportResponse(BaseModel):
    """Outcome of a manually triggered cycle."""

    started_at: int
    finished_at: int | None = None
    skipped: bool
    skip_reason: str | None = None
    pulled: dict[str, int] = Field(default_factory=dict)
    evicted: dict[str, int] = Field(default_factory=dict)
    pushed: int
    failed: int
    abandoned: list[str] = Field(default_factory=list)
    conflicts_resolved: int
    conflicts_pending: int
    errors: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PendingActionResponse(BaseModel):
    id: str
    action_type: ActionType
    payload: dict[str, Any]
    created_at: int
    retries: int
    last_error: str | None = None
    status: ActionStatus

    model_config = {"from_attributes": True}


class ConflictResponse(BaseModel):
    id: str
    action_id: str
    entity_type: EntityType
    target_id: str
    local_data: dict[str, Any]
    server_data: dict[str, Any]
    field_conflicts: list[str]
    created_at: int
    detected_at: int
    resolved: bool

    model_config = {"from_attributes": True}


class ConflictResolutionRequest(BaseModel):
    """How the user wants a conflict settled."""

    resolution_type: ResolutionType
    merged_data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _manual_needs_data(self) -> "ConflictResolutionRequest":
        if self.resolution_type == ResolutionType.MANUAL and self.merged_data is None:
            raise ValueError("merged_data is required for a manual resolution")
        return self


class ConflictPassResponse(BaseModel):
    success: bool
    conflicts: int = 0
    resolved: int = 0
    remaining: int = 0
    error: str | None = None

    model_config = {"from_attributes": True}

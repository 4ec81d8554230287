"""Pydantic DTOs for the expense and group mutation endpoints."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from splitsync.domain.entities import DEFAULT_CURRENCY


class ExpenseCreate(BaseModel):
    """Schema for recording a new expense in a group."""

    group_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=255, examples=["Lunch"])
    amount: float = Field(..., gt=0, examples=[20.0])
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    paid_by: str = Field(..., min_length=1)
    expense_date: date
    participants: list[str] = Field(default_factory=list)
    category: str | None = None
    notes: str | None = None


class ExpenseUpdate(BaseModel):
    """Schema for editing an expense — all fields optional, only set ones are sent."""

    description: str | None = Field(None, min_length=1, max_length=255)
    amount: float | None = Field(None, gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    expense_date: date | None = None
    notes: str | None = None


class GroupCreate(BaseModel):
    """Schema for creating a group; the creator is the configured current user."""

    name: str = Field(..., min_length=1, max_length=120, examples=["Roommates"])
    description: str | None = None
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    members: list[str] = Field(default_factory=list)


class MutationResponse(BaseModel):
    """What a create/update/delete hands back, online or queued."""

    data: dict[str, Any] | None = None
    is_offline: bool
    action_id: str | None = None

    model_config = {"from_attributes": True}

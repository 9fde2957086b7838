"""Subscription request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from academy.subscriptions.ledger import Balance


class BalanceResponse(BaseModel):
    """A student's global session balance."""

    has_subscription: bool
    total_sessions: int = 0
    remaining_sessions: int = 0
    used_sessions: int = 0
    plan_duration_months: int = 0
    warning: bool = False
    status: Literal["none", "active", "low", "expired"] = "none"
    usage_percent: float = 0.0

    @classmethod
    def from_balance(cls, balance: Balance | None) -> BalanceResponse:
        if balance is None:
            return cls(has_subscription=False)
        return cls(
            has_subscription=True,
            total_sessions=balance.total_sessions,
            remaining_sessions=balance.remaining_sessions,
            used_sessions=balance.used_sessions,
            plan_duration_months=balance.plan_duration_months,
            warning=balance.warning,
            status=balance.status,  # type: ignore[arg-type]
            usage_percent=balance.usage_percent,
        )


class CreateSubscriptionRequest(BaseModel):
    plan_duration_months: int = Field(..., ge=1, le=36)


class AdjustSessionsRequest(BaseModel):
    """Add or remove sessions; ``group_title`` is quoted in the student's notification."""

    action: Literal["add", "remove"]
    sessions: int = Field(..., ge=1, le=500)
    group_title: str | None = Field(None, max_length=200)


class RefillRequest(BaseModel):
    sessions: int = Field(..., ge=1, le=500)


class DeduplicateResponse(BaseModel):
    removed: int


class LowSessionAlertResponse(BaseModel):
    student_id: str
    student_name: str
    student_email: str
    student_phone: str | None = None
    student_unique_id: str | None = None
    remaining_sessions: int
    updated_at: datetime

    model_config = {"from_attributes": True}

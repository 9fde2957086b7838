"""Subscription endpoints: admin ledger operations and the student's own balance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin, require_student
from academy.database import get_session
from academy.db.models import Profile
from academy.subscriptions.schemas import (
    AdjustSessionsRequest,
    BalanceResponse,
    CreateSubscriptionRequest,
    DeduplicateResponse,
    LowSessionAlertResponse,
    RefillRequest,
)
from academy.subscriptions.service import SubscriptionService

router = APIRouter(prefix="/api/v1", tags=["Subscriptions"])


@router.get("/me/subscription", response_model=BalanceResponse)
async def get_my_subscription(
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    """The caller's global session balance."""
    balance = await SubscriptionService(db).get_balance(student.id)
    return BalanceResponse.from_balance(balance)


@router.get("/admin/students/{student_id}/subscription", response_model=BalanceResponse)
async def get_student_subscription(
    student_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    balance = await SubscriptionService(db).get_balance(student_id)
    return BalanceResponse.from_balance(balance)


@router.post("/admin/students/{student_id}/subscription", response_model=BalanceResponse, status_code=201)
async def create_student_subscription(
    student_id: str,
    body: CreateSubscriptionRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Start a new plan; fails with 409 if the student already has one."""
    balance = await SubscriptionService(db).create_subscription(student_id, body.plan_duration_months)
    await db.commit()
    return BalanceResponse.from_balance(balance)


@router.post("/admin/students/{student_id}/subscription/adjust", response_model=BalanceResponse)
async def adjust_student_sessions(
    student_id: str,
    body: AdjustSessionsRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    service = SubscriptionService(db)
    if body.action == "add":
        balance = await service.add_sessions(student_id, body.sessions, body.group_title)
    else:
        balance = await service.remove_sessions(student_id, body.sessions, body.group_title)
    await db.commit()
    return BalanceResponse.from_balance(balance)


@router.post("/admin/students/{student_id}/subscription/refill", response_model=BalanceResponse)
async def refill_student_sessions(
    student_id: str,
    body: RefillRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    balance = await SubscriptionService(db).refill(student_id, body.sessions)
    await db.commit()
    return BalanceResponse.from_balance(balance)


@router.post("/admin/students/{student_id}/subscription/consume", response_model=BalanceResponse)
async def consume_student_session(
    student_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Deduct one attended session."""
    balance = await SubscriptionService(db).consume_session(student_id)
    await db.commit()
    return BalanceResponse.from_balance(balance)


@router.post("/admin/subscriptions/deduplicate", response_model=DeduplicateResponse)
async def deduplicate_subscriptions(
    student_id: str | None = Query(None),
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    removed = await SubscriptionService(db).deduplicate(student_id)
    await db.commit()
    return DeduplicateResponse(removed=removed)


@router.get("/admin/low-session-alerts", response_model=list[LowSessionAlertResponse])
async def list_low_session_alerts(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await SubscriptionService(db).list_low_session_alerts()


@router.post("/admin/low-session-alerts/refresh", response_model=list[LowSessionAlertResponse])
async def refresh_low_session_alerts(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Recompute alerts for students at or below the low-session threshold."""
    alerts = await SubscriptionService(db).refresh_low_session_alerts()
    await db.commit()
    return alerts

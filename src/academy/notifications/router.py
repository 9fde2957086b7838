"""Endpoints for a user's own notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.database import get_session
from academy.db.models import Profile
from academy.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    ReadAllResponse,
    UnreadCountResponse,
)
from academy.notifications.service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Newest first, one page at a time."""
    rows, total = await get_notifications(db, user.id, page, per_page)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return UnreadCountResponse(unread_count=await get_unread_count(db, user.id))


@router.post("/read-all", response_model=ReadAllResponse)
async def read_all(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    marked = await mark_all_as_read(db, user.id)
    await db.commit()
    return ReadAllResponse(detail=f"Marked {marked} notifications as read", marked=marked)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """404 unless the notification belongs to the caller."""
    notification = await mark_as_read(db, user.id, notification_id)
    await db.commit()
    return NotificationResponse.model_validate(notification)

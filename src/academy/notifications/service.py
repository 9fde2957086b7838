"""Student notification outbox.

Notifications are written in the same transaction as the change that caused
them, so a rolled-back ledger update never leaves a stray message behind.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import StudentNotification, utcnow
from academy.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

VALID_TYPES = {
    "subscription_change",
    "session_update",
    "session_refill",
    "session_removal",
    "enrollment",
    "group",
    "points",
    "certificate",
    "system",
}


async def create_notification(
    db: AsyncSession,
    student_id: str,
    notification_type: str,
    title: str,
    message: str,
) -> StudentNotification:
    """Queue a notification for a student."""
    if notification_type not in VALID_TYPES:
        msg = f"Invalid notification type: {notification_type}. Must be one of {sorted(VALID_TYPES)}"
        raise BadRequestError(msg)

    notification = StudentNotification(
        student_id=student_id,
        notification_type=notification_type,
        title=title,
        message=message,
        created_at=utcnow(),
    )
    db.add(notification)
    await db.flush()
    logger.debug("Notification %s queued for %s", notification_type, student_id)
    return notification


async def get_notifications(
    db: AsyncSession,
    student_id: str,
    page: int = 1,
    per_page: int = 10,
) -> tuple[list[StudentNotification], int]:
    """Get a student's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(StudentNotification).where(StudentNotification.student_id == student_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(StudentNotification)
        .where(StudentNotification.student_id == student_id)
        .order_by(StudentNotification.created_at.desc(), StudentNotification.id)
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_as_read(db: AsyncSession, student_id: str, notification_id: str) -> StudentNotification:
    """Stamp read_at on one of the student's notifications."""
    result = await db.execute(
        select(StudentNotification).where(
            StudentNotification.id == notification_id,
            StudentNotification.student_id == student_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    if notification.read_at is None:
        notification.read_at = utcnow()
        await db.flush()
    return notification


async def mark_all_as_read(db: AsyncSession, student_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(StudentNotification)
        .where(StudentNotification.student_id == student_id, StudentNotification.read_at.is_(None))
        .values(read_at=utcnow())
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, student_id: str) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(StudentNotification)
        .where(StudentNotification.student_id == student_id, StudentNotification.read_at.is_(None))
    )
    return result.scalar_one()

"""Dashboard aggregation for students and admins.

The admin dashboard is cached in Redis for a few seconds when Redis is
available; the student dashboard is always computed live because it shows
the session balance right after an admin edits it.
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis
import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.courses.service import list_admin_courses
from academy.db.models import Course, LowSessionAlert, Profile, StudentCourse
from academy.groups.service import count_groups
from academy.leaderboard.service import get_student_group_ranks, get_student_rank, get_top_students
from academy.notifications.service import get_unread_count
from academy.redis_client import cache_get_json, cache_set_json
from academy.subscriptions.schemas import BalanceResponse
from academy.subscriptions.service import SubscriptionService
from academy.users.service import count_students, recent_students

logger = structlog.get_logger()

ADMIN_DASHBOARD_CACHE_KEY = "dashboard:admin:{admin_id}"


def _course_completed(progress: int, total_sessions: int) -> bool:
    return total_sessions > 0 and progress >= total_sessions


async def get_student_dashboard(db: AsyncSession, student: Profile) -> dict[str, Any]:
    """Progress, points, balance and notifications for one student."""
    rows = (
        await db.execute(
            select(StudentCourse, Course)
            .join(Course, Course.id == StudentCourse.course_id)
            .where(StudentCourse.student_id == student.id)
            .order_by(StudentCourse.assigned_at.desc())
        )
    ).all()

    balance = await SubscriptionService(db).get_balance(student.id)
    expired = balance is not None and balance.remaining_sessions <= 0

    courses = [
        {
            "course_id": course.id,
            "title": course.title,
            "progress": enrollment.progress,
            "total_sessions": course.total_sessions,
            "percent": round(enrollment.progress / course.total_sessions * 100) if course.total_sessions else 0,
        }
        for enrollment, course in rows
    ]

    return {
        "total_courses": len(rows),
        "completed_courses": sum(1 for e, c in rows if _course_completed(e.progress, c.total_sessions)),
        "completed_sessions": sum(e.progress for e, _ in rows),
        "total_points": student.total_points,
        "rank": await get_student_rank(db, student.id),
        "subscription": BalanceResponse.from_balance(balance).model_dump(),
        "unread_notifications": await get_unread_count(db, student.id),
        "courses": [] if expired else courses,
        "top_students": await get_top_students(db),
        "group_ranks": await get_student_group_ranks(db, student.id),
    }


async def _build_admin_dashboard(db: AsyncSession, admin: Profile) -> dict[str, Any]:
    courses = await list_admin_courses(db, admin.id)
    alerts = await db.execute(select(func.count()).select_from(LowSessionAlert))
    return {
        "courses": [
            {"id": c.id, "title": c.title, "total_sessions": c.total_sessions} for c in courses
        ],
        "recent_students": [
            {
                "id": s.id,
                "name": s.name,
                "email": s.email,
                "unique_id": s.unique_id,
                "created_at": s.created_at.isoformat(),
            }
            for s in await recent_students(db)
        ],
        "total_students": await count_students(db),
        "total_courses": len(courses),
        "total_groups": await count_groups(db, admin.id),
        "low_session_alerts": alerts.scalar_one(),
    }


async def get_admin_dashboard(
    db: AsyncSession,
    admin: Profile,
    redis: aioredis.Redis | None = None,
) -> dict[str, Any]:
    """Admin overview, cached in Redis for ``dashboard_cache_ttl_seconds``."""
    if redis is None:
        return await _build_admin_dashboard(db, admin)

    cache_key = ADMIN_DASHBOARD_CACHE_KEY.format(admin_id=admin.id)
    cached = await cache_get_json(redis, cache_key)
    if cached is not None:
        return cached

    stats = await _build_admin_dashboard(db, admin)
    await cache_set_json(redis, cache_key, stats, get_settings().dashboard_cache_ttl_seconds)
    logger.debug("admin_dashboard_cached", admin_id=admin.id)
    return stats

"""Profile updates and student lookups."""

from __future__ import annotations

import structlog
from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import Profile
from academy.errors import NotFoundError

logger = structlog.get_logger()

_EDITABLE_FIELDS = ("name", "age", "phone", "location")


def student_matches(q: str) -> ColumnElement[bool]:
    """unique_id, name or email containing ``q`` (case-insensitive).

    ``%`` and ``_`` in ``q`` match themselves rather than acting as LIKE wildcards.
    """
    term = q.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{term}%"
    columns = (Profile.unique_id, Profile.name, Profile.email)
    return or_(*(func.lower(column).like(pattern, escape="\\") for column in columns))


async def update_profile(db: AsyncSession, profile: Profile, changes: dict[str, object]) -> Profile:
    """Apply owner-editable fields; anything else in ``changes`` is ignored."""
    for field in _EDITABLE_FIELDS:
        if field in changes:
            value = changes[field]
            if field == "name":
                if value is None:
                    continue
                value = str(value).strip()
            setattr(profile, field, value)
    await db.flush()
    logger.info("profile_updated", profile_id=profile.id, fields=sorted(k for k in changes if k in _EDITABLE_FIELDS))
    return profile


async def search_students(db: AsyncSession, q: str | None = None, limit: int = 50) -> list[Profile]:
    """Students by name, optionally filtered on unique_id, name or email."""
    query = select(Profile).where(Profile.role == "student")
    if q:
        query = query.where(student_matches(q))
    result = await db.execute(query.order_by(Profile.name, Profile.id).limit(limit))
    return list(result.scalars().all())


async def recent_students(db: AsyncSession, limit: int = 10) -> list[Profile]:
    result = await db.execute(
        select(Profile).where(Profile.role == "student").order_by(Profile.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def count_students(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(Profile).where(Profile.role == "student"))
    return result.scalar_one()


async def get_student(db: AsyncSession, student_id: str) -> Profile:
    result = await db.execute(select(Profile).where(Profile.id == student_id, Profile.role == "student"))
    student = result.scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student", student_id)
    return student

"""Course catalog: courses and their ordered sessions.

``courses.total_sessions`` is kept equal to the number of session rows and
``order_number`` stays contiguous from 1 after every insert or delete.
"""

from __future__ import annotations

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import AdminCourse, Course, CourseSession, StudentSession, utcnow
from academy.errors import NotFoundError

logger = structlog.get_logger()


def _clean_url(url: str | None) -> str | None:
    """Empty strings clear the URL."""
    if url is None:
        return None
    url = url.strip()
    return url or None


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


async def create_course(db: AsyncSession, admin_id: str, title: str, description: str | None = None) -> Course:
    """Create a course and link it to the creating admin."""
    course = Course(title=title.strip(), description=description, total_sessions=0, created_at=utcnow())
    db.add(course)
    await db.flush()
    db.add(AdminCourse(admin_id=admin_id, course_id=course.id))
    await db.flush()
    logger.info("course_created", course_id=course.id, admin_id=admin_id)
    return course


async def list_courses(db: AsyncSession) -> list[Course]:
    result = await db.execute(select(Course).order_by(Course.created_at.desc()))
    return list(result.scalars().all())


async def list_admin_courses(db: AsyncSession, admin_id: str) -> list[Course]:
    """Courses linked to an admin through admin_courses."""
    result = await db.execute(
        select(Course)
        .join(AdminCourse, AdminCourse.course_id == Course.id)
        .where(AdminCourse.admin_id == admin_id)
        .order_by(Course.created_at.desc())
    )
    return list(result.scalars().all())


async def admin_owns_course(db: AsyncSession, admin_id: str, course_id: str) -> bool:
    result = await db.execute(
        select(AdminCourse.id).where(AdminCourse.admin_id == admin_id, AdminCourse.course_id == course_id)
    )
    return result.scalar_one_or_none() is not None


async def get_course(db: AsyncSession, course_id: str) -> Course:
    result = await db.execute(select(Course).where(Course.id == course_id))
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFoundError("Course", course_id)
    return course


async def update_course(
    db: AsyncSession,
    course_id: str,
    title: str | None = None,
    description: str | None = None,
) -> Course:
    course = await get_course(db, course_id)
    if title is not None:
        course.title = title.strip()
    if description is not None:
        course.description = description
    await db.flush()
    return course


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def list_sessions(db: AsyncSession, course_id: str) -> list[CourseSession]:
    result = await db.execute(
        select(CourseSession).where(CourseSession.course_id == course_id).order_by(CourseSession.order_number)
    )
    return list(result.scalars().all())


async def get_course_session(db: AsyncSession, session_id: str, course_id: str | None = None) -> CourseSession:
    query = select(CourseSession).where(CourseSession.id == session_id)
    if course_id is not None:
        query = query.where(CourseSession.course_id == course_id)
    session = (await db.execute(query)).scalar_one_or_none()
    if session is None:
        raise NotFoundError("Session", session_id)
    return session


async def add_session(
    db: AsyncSession,
    course_id: str,
    title: str,
    video_url: str | None = None,
    material_url: str | None = None,
) -> CourseSession:
    """Append a session at the end of the course."""
    course = await get_course(db, course_id)
    result = await db.execute(
        select(func.coalesce(func.max(CourseSession.order_number), 0)).where(CourseSession.course_id == course_id)
    )
    next_order = result.scalar_one() + 1

    session = CourseSession(
        course_id=course_id,
        title=title.strip(),
        order_number=next_order,
        video_url=_clean_url(video_url),
        material_url=_clean_url(material_url),
        visible=True,
        locked=False,
        created_at=utcnow(),
    )
    db.add(session)
    course.total_sessions = (course.total_sessions or 0) + 1
    await db.flush()
    logger.info("session_added", course_id=course_id, session_id=session.id, order_number=next_order)
    return session


async def update_session(
    db: AsyncSession,
    course_id: str,
    session_id: str,
    title: str | None = None,
    video_url: str | None = None,
    material_url: str | None = None,
) -> CourseSession:
    session = await get_course_session(db, session_id, course_id)
    if title is not None:
        session.title = title.strip()
    if video_url is not None:
        session.video_url = _clean_url(video_url)
    if material_url is not None:
        session.material_url = _clean_url(material_url)
    await db.flush()
    return session


async def set_session_flags(
    db: AsyncSession,
    course_id: str,
    session_id: str,
    visible: bool | None = None,
    locked: bool | None = None,
) -> CourseSession:
    """Toggle whether students see the session and whether it opens."""
    session = await get_course_session(db, session_id, course_id)
    if visible is not None:
        session.visible = visible
    if locked is not None:
        session.locked = locked
    await db.flush()
    logger.info("session_flags_changed", session_id=session_id, visible=session.visible, locked=session.locked)
    return session


async def delete_session(db: AsyncSession, course_id: str, session_id: str) -> None:
    """Delete a session with its progress rows and close the numbering gap."""
    course = await get_course(db, course_id)
    session = await get_course_session(db, session_id, course_id)
    removed_order = session.order_number

    await db.execute(delete(StudentSession).where(StudentSession.session_id == session_id))
    await db.delete(session)
    await db.flush()

    later = await db.execute(
        select(CourseSession)
        .where(CourseSession.course_id == course_id, CourseSession.order_number > removed_order)
        .order_by(CourseSession.order_number)
    )
    for s in later.scalars().all():
        s.order_number -= 1

    course.total_sessions = max(0, (course.total_sessions or 0) - 1)
    await db.flush()
    logger.info("session_deleted", course_id=course_id, session_id=session_id)

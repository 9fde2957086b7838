"""Enrollment of students into courses, and the student's view of them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.service import get_student_by_unique_id
from academy.courses.service import get_course, get_course_session, list_sessions
from academy.db.models import Course, CourseSession, Profile, StudentCourse, StudentSession, utcnow
from academy.errors import AlreadyEnrolledError, ForbiddenError, NotFoundError
from academy.notifications.service import create_notification
from academy.subscriptions.service import SubscriptionService

logger = structlog.get_logger()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def is_hidden_as_new(session: CourseSession, enrollment: StudentCourse) -> bool:
    """Sessions added after enrollment stay hidden while hide_new_sessions is set."""
    return enrollment.hide_new_sessions and _as_utc(session.created_at) > _as_utc(enrollment.assigned_at)


def is_session_accessible(session: CourseSession, enrollment: StudentCourse, expired: bool) -> bool:
    """Whether a student may open a session right now."""
    return (
        session.visible
        and bool(session.video_url)
        and not session.locked
        and not is_hidden_as_new(session, enrollment)
        and not expired
    )


@dataclass
class SessionView:
    session: CourseSession
    accessible: bool
    completed: bool
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Admin side
# ---------------------------------------------------------------------------


async def get_enrollment(db: AsyncSession, student_id: str, course_id: str) -> StudentCourse | None:
    result = await db.execute(
        select(StudentCourse).where(StudentCourse.student_id == student_id, StudentCourse.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def enroll(db: AsyncSession, student: Profile, course: Course, assigned_by: str | None) -> StudentCourse:
    """Create the enrollment and carry the student's global balance onto it."""
    if await get_enrollment(db, student.id, course.id) is not None:
        msg = f"{student.name} is already enrolled in {course.title}"
        raise AlreadyEnrolledError(msg)

    enrollment = StudentCourse(
        student_id=student.id,
        course_id=course.id,
        progress=0,
        hide_new_sessions=False,
        assigned_at=utcnow(),
        assigned_by=assigned_by,
    )
    db.add(enrollment)
    await db.flush()
    await SubscriptionService(db).ensure_enrollment_subscription(enrollment)
    await create_notification(
        db,
        student.id,
        "enrollment",
        "New Course",
        f"You have been enrolled in {course.title}.",
    )
    logger.info("student_enrolled", student_id=student.id, course_id=course.id, assigned_by=assigned_by)
    return enrollment


async def assign_student(db: AsyncSession, course_id: str, unique_id: str, admin_id: str) -> StudentCourse:
    """Enroll the student identified by ``unique_id`` into a course."""
    course = await get_course(db, course_id)
    student = await get_student_by_unique_id(db, unique_id)
    if student is None:
        raise NotFoundError("Student", unique_id)
    return await enroll(db, student, course, admin_id)


async def remove_student(db: AsyncSession, course_id: str, student_id: str) -> None:
    """Drop the enrollment and the student's progress in that course.

    Subscription copies and group memberships tied to the enrollment go with it.
    """
    enrollment = await get_enrollment(db, student_id, course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment", f"{student_id}:{course_id}")

    course_session_ids = select(CourseSession.id).where(CourseSession.course_id == course_id)
    await db.execute(
        delete(StudentSession).where(
            StudentSession.student_id == student_id,
            StudentSession.session_id.in_(course_session_ids),
        )
    )
    await db.delete(enrollment)
    await db.flush()

    remaining = await db.execute(
        select(func.count()).select_from(StudentCourse).where(StudentCourse.student_id == student_id)
    )
    if remaining.scalar_one() == 0:
        logger.warning("last_enrollment_removed", student_id=student_id, course_id=course_id)
    logger.info("student_unenrolled", student_id=student_id, course_id=course_id)


async def list_enrolled_students(db: AsyncSession, course_id: str) -> list[tuple[Profile, StudentCourse]]:
    await get_course(db, course_id)
    result = await db.execute(
        select(Profile, StudentCourse)
        .join(StudentCourse, StudentCourse.student_id == Profile.id)
        .where(StudentCourse.course_id == course_id)
        .order_by(Profile.name)
    )
    return [(row[0], row[1]) for row in result.all()]


async def set_hide_new_sessions(db: AsyncSession, course_id: str, student_id: str, hide: bool) -> StudentCourse:
    enrollment = await get_enrollment(db, student_id, course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment", f"{student_id}:{course_id}")
    enrollment.hide_new_sessions = hide
    await db.flush()
    return enrollment


# ---------------------------------------------------------------------------
# Student side
# ---------------------------------------------------------------------------


async def list_my_courses(db: AsyncSession, student_id: str) -> tuple[bool, list[tuple[StudentCourse, Course]]]:
    """Return ``(expired, courses)``. An exhausted balance hides every course."""
    if await SubscriptionService(db).is_expired(student_id):
        return True, []

    result = await db.execute(
        select(StudentCourse, Course)
        .join(Course, Course.id == StudentCourse.course_id)
        .where(StudentCourse.student_id == student_id)
        .order_by(StudentCourse.assigned_at.desc())
    )
    return False, [(row[0], row[1]) for row in result.all()]


async def _require_enrollment(db: AsyncSession, student_id: str, course_id: str) -> StudentCourse:
    enrollment = await get_enrollment(db, student_id, course_id)
    if enrollment is None:
        # Students only ever see courses they are enrolled in
        raise NotFoundError("Course", course_id)
    return enrollment


async def get_my_course(
    db: AsyncSession, student_id: str, course_id: str
) -> tuple[Course, StudentCourse, list[SessionView], bool]:
    """The course as the student sees it: ``(course, enrollment, sessions, expired)``."""
    enrollment = await _require_enrollment(db, student_id, course_id)
    course = await get_course(db, course_id)
    expired = await SubscriptionService(db).is_expired(student_id)

    progress_rows = await db.execute(
        select(StudentSession)
        .join(CourseSession, CourseSession.id == StudentSession.session_id)
        .where(StudentSession.student_id == student_id, CourseSession.course_id == course_id)
    )
    done = {row.session_id: row for row in progress_rows.scalars().all()}

    views = []
    for session in await list_sessions(db, course_id):
        record = done.get(session.id)
        views.append(
            SessionView(
                session=session,
                accessible=is_session_accessible(session, enrollment, expired),
                completed=bool(record and record.completed),
                completed_at=record.completed_at if record else None,
            )
        )
    return course, enrollment, views, expired


async def complete_session(db: AsyncSession, student_id: str, course_id: str, session_id: str) -> StudentCourse:
    """Record a finished session and recompute course progress."""
    enrollment = await _require_enrollment(db, student_id, course_id)
    session = await get_course_session(db, session_id, course_id)
    expired = await SubscriptionService(db).is_expired(student_id)
    if not is_session_accessible(session, enrollment, expired):
        msg = "Session is not available"
        raise ForbiddenError(msg)

    result = await db.execute(
        select(StudentSession).where(StudentSession.student_id == student_id, StudentSession.session_id == session_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        record = StudentSession(student_id=student_id, session_id=session_id)
        db.add(record)
    if not record.completed:
        record.completed = True
        record.completed_at = utcnow()
    await db.flush()

    completed_count = await db.execute(
        select(func.count())
        .select_from(StudentSession)
        .join(CourseSession, CourseSession.id == StudentSession.session_id)
        .where(
            StudentSession.student_id == student_id,
            StudentSession.completed.is_(True),
            CourseSession.course_id == course_id,
        )
    )
    enrollment.progress = completed_count.scalar_one()

    course = await get_course(db, course_id)
    if course.total_sessions > 0 and enrollment.progress >= course.total_sessions and enrollment.completed_at is None:
        enrollment.completed_at = utcnow()
        logger.info("course_completed", student_id=student_id, course_id=course_id)
    await db.flush()
    return enrollment

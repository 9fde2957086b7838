"""Enrollment, session access and progress."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import select

from academy.courses.service import add_session, create_course, delete_session, list_sessions, set_session_flags
from academy.db.models import CourseSubscription, StudentSession
from academy.enrollment import service as enrollment
from academy.errors import AlreadyEnrolledError, NotFoundError
from academy.subscriptions.service import SubscriptionService

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def course(db_session, admin):
    course = await create_course(db_session, admin.id, "Web Basics", "HTML and CSS")
    await add_session(db_session, course.id, "Tags", video_url="https://video.example/1")
    await add_session(db_session, course.id, "Styles", video_url="https://video.example/2")
    await add_session(db_session, course.id, "Layout")
    await db_session.commit()
    return course


async def _funded(db_session, admin, student, course, months=1):
    enrolled = await enrollment.assign_student(db_session, course.id, student.unique_id.lower(), admin.id)
    await SubscriptionService(db_session).create_subscription(student.id, months)
    await db_session.commit()
    return enrolled


async def test_assign_by_unique_id(db_session, admin, student, course):
    enrolled = await enrollment.assign_student(db_session, course.id, "sam00001", admin.id)
    assert enrolled.student_id == student.id
    assert enrolled.assigned_by == admin.id
    assert enrolled.progress == 0

    with pytest.raises(AlreadyEnrolledError):
        await enrollment.assign_student(db_session, course.id, "SAM00001", admin.id)


async def test_assign_unknown_student(db_session, admin, course):
    with pytest.raises(NotFoundError):
        await enrollment.assign_student(db_session, course.id, "NOPE0000", admin.id)


async def test_my_course_marks_accessible_sessions(db_session, admin, student, course):
    await _funded(db_session, admin, student, course)

    _, _, views, expired = await enrollment.get_my_course(db_session, student.id, course.id)

    assert expired is False
    assert [(v.session.title, v.accessible) for v in views] == [
        ("Tags", True),
        ("Styles", True),
        ("Layout", False),
    ]


async def test_flags_and_hidden_new_sessions(db_session, admin, student, course):
    enrolled = await _funded(db_session, admin, student, course)
    sessions = await list_sessions(db_session, course.id)
    await set_session_flags(db_session, course.id, sessions[0].id, locked=True)
    await set_session_flags(db_session, course.id, sessions[1].id, visible=False)
    await enrollment.set_hide_new_sessions(db_session, course.id, student.id, True)
    extra = await add_session(db_session, course.id, "Bonus", video_url="https://video.example/b")

    _, _, views, _ = await enrollment.get_my_course(db_session, student.id, course.id)
    access = {v.session.id: v.accessible for v in views}
    assert access[sessions[0].id] is False
    assert access[sessions[1].id] is False
    assert access[extra.id] is False

    enrolled.hide_new_sessions = False
    _, _, views, _ = await enrollment.get_my_course(db_session, student.id, course.id)
    assert {v.session.id: v.accessible for v in views}[extra.id] is True


async def test_complete_session_tracks_progress(db_session, admin, student, course):
    enrolled = await _funded(db_session, admin, student, course)
    tags, styles, layout = await list_sessions(db_session, course.id)

    await enrollment.complete_session(db_session, student.id, course.id, tags.id)
    again = await enrollment.complete_session(db_session, student.id, course.id, tags.id)
    assert again.progress == 1

    with pytest.raises(PermissionError):
        await enrollment.complete_session(db_session, student.id, course.id, layout.id)

    await delete_session(db_session, course.id, layout.id)
    finished = await enrollment.complete_session(db_session, student.id, course.id, styles.id)
    assert finished.progress == 2
    assert finished.completed_at is not None
    assert enrolled.id == finished.id


async def test_expired_balance_hides_courses(db_session, admin, student, course):
    await enrollment.assign_student(db_session, course.id, student.unique_id, admin.id)
    ledger = SubscriptionService(db_session)
    await ledger.add_sessions(student.id, 1)

    expired, rows = await enrollment.list_my_courses(db_session, student.id)
    assert expired is False
    assert [c.title for _, c in rows] == ["Web Basics"]

    await ledger.consume_session(student.id)
    expired, rows = await enrollment.list_my_courses(db_session, student.id)
    assert expired is True
    assert rows == []

    _, _, views, expired = await enrollment.get_my_course(db_session, student.id, course.id)
    assert expired is True
    assert not any(v.accessible for v in views)


async def test_not_enrolled_course_is_not_found(db_session, student, course):
    with pytest.raises(NotFoundError):
        await enrollment.get_my_course(db_session, student.id, course.id)


async def test_remove_student_drops_progress_and_balance_copy(db_session, admin, student, course):
    await _funded(db_session, admin, student, course)
    tags = (await list_sessions(db_session, course.id))[0]
    await enrollment.complete_session(db_session, student.id, course.id, tags.id)
    await db_session.commit()

    await enrollment.remove_student(db_session, course.id, student.id)
    await db_session.commit()

    assert await enrollment.get_enrollment(db_session, student.id, course.id) is None
    progress = await db_session.execute(select(StudentSession).where(StudentSession.student_id == student.id))
    assert progress.scalars().all() == []
    copies = await db_session.execute(select(CourseSubscription))
    assert copies.scalars().all() == []

    with pytest.raises(NotFoundError):
        await enrollment.remove_student(db_session, course.id, student.id)

"""Global subscription ledger against a real database session."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from academy.courses.service import create_course
from academy.db.models import CourseSubscription, LowSessionAlert, StudentCourse, StudentNotification
from academy.enrollment.service import enroll
from academy.errors import InsufficientSessionsError, NotFoundError, SubscriptionExistsError
from academy.subscriptions.ledger import Balance
from academy.subscriptions.service import SubscriptionService

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def courses(db_session, admin):
    python = await create_course(db_session, admin.id, "Python for Kids")
    scratch = await create_course(db_session, admin.id, "Scratch Games")
    await db_session.commit()
    return python, scratch


async def _rows(db_session, student_id):
    result = await db_session.execute(
        select(CourseSubscription)
        .join(StudentCourse, StudentCourse.id == CourseSubscription.student_course_id)
        .where(StudentCourse.student_id == student_id)
    )
    return list(result.scalars().all())


async def _notification_types(db_session, student_id):
    result = await db_session.execute(
        select(StudentNotification.notification_type)
        .where(StudentNotification.student_id == student_id)
        .order_by(StudentNotification.created_at)
    )
    return list(result.scalars().all())


class TestCreate:
    async def test_create_needs_enrollment(self, db_session, student):
        with pytest.raises(ValueError, match="enrolled"):
            await SubscriptionService(db_session).create_subscription(student.id, 2)

    async def test_create_fills_every_enrollment(self, db_session, admin, student, courses):
        for course in courses:
            await enroll(db_session, student, course, admin.id)

        balance = await SubscriptionService(db_session).create_subscription(student.id, 3)
        await db_session.commit()

        assert balance == Balance(12, 12)
        rows = await _rows(db_session, student.id)
        assert len(rows) == 2
        assert {(r.total_sessions, r.remaining_sessions, r.plan_duration_months, r.warning) for r in rows} == {
            (12, 12, 3, False)
        }
        assert "subscription_change" in await _notification_types(db_session, student.id)

    async def test_second_create_conflicts(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        service = SubscriptionService(db_session)
        await service.create_subscription(student.id, 1)
        with pytest.raises(SubscriptionExistsError):
            await service.create_subscription(student.id, 1)

    async def test_unknown_student(self, db_session):
        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).create_subscription("missing", 1)

    async def test_admin_is_not_a_student(self, db_session, admin):
        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).add_sessions(admin.id, 1)


class TestAdjust:
    async def test_add_and_remove(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        service = SubscriptionService(db_session)
        await service.create_subscription(student.id, 1)

        assert await service.add_sessions(student.id, 3, group_title="Saturday Coders") == Balance(7, 7)
        assert await service.remove_sessions(student.id, 5) == Balance(2, 2)
        assert await service.remove_sessions(student.id, 10) == Balance(0, 0)

        row = (await _rows(db_session, student.id))[0]
        assert row.plan_duration_months == 0
        assert row.warning is True

        result = await db_session.execute(
            select(StudentNotification.message).where(
                StudentNotification.student_id == student.id,
                StudentNotification.notification_type == "session_update",
            )
        )
        messages = list(result.scalars().all())
        assert any('from group "Saturday Coders"' in m for m in messages)

    async def test_add_without_prior_balance_starts_from_zero(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        balance = await SubscriptionService(db_session).add_sessions(student.id, 2)
        assert balance == Balance(2, 2)

    async def test_refill_notifies(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        service = SubscriptionService(db_session)
        await service.create_subscription(student.id, 1)
        assert await service.refill(student.id, 4) == Balance(8, 8)
        assert "session_refill" in await _notification_types(db_session, student.id)

    async def test_consume_until_empty(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        service = SubscriptionService(db_session)
        await service.add_sessions(student.id, 1)

        assert await service.consume_session(student.id) == Balance(1, 0)
        assert await service.is_expired(student.id)
        with pytest.raises(InsufficientSessionsError):
            await service.consume_session(student.id)
        assert "session_removal" in await _notification_types(db_session, student.id)


class TestGlobalBalance:
    async def test_newest_row_wins_and_write_collapses_duplicates(self, db_session, admin, student, courses):
        python, scratch = courses
        first = await enroll(db_session, student, python, admin.id)
        second = await enroll(db_session, student, scratch, admin.id)

        old = datetime(2026, 1, 1, tzinfo=timezone.utc)
        db_session.add_all(
            [
                CourseSubscription(student_course_id=first.id, total_sessions=4, remaining_sessions=1,
                                   created_at=old, updated_at=old),
                CourseSubscription(student_course_id=first.id, total_sessions=8, remaining_sessions=6,
                                   created_at=old, updated_at=old + timedelta(days=2)),
                CourseSubscription(student_course_id=second.id, total_sessions=4, remaining_sessions=3,
                                   created_at=old, updated_at=old + timedelta(days=1)),
            ]
        )
        await db_session.commit()

        service = SubscriptionService(db_session)
        assert await service.get_balance(student.id) == Balance(8, 6)

        await service.add_sessions(student.id, 2)
        await db_session.commit()

        rows = await _rows(db_session, student.id)
        assert len(rows) == 2
        assert {(r.student_course_id, r.total_sessions, r.remaining_sessions) for r in rows} == {
            (first.id, 10, 8),
            (second.id, 10, 8),
        }

    async def test_new_enrollment_mirrors_balance(self, db_session, admin, student, courses):
        python, scratch = courses
        await enroll(db_session, student, python, admin.id)
        service = SubscriptionService(db_session)
        await service.create_subscription(student.id, 2)

        enrollment = await enroll(db_session, student, scratch, admin.id)
        await db_session.commit()

        result = await db_session.execute(
            select(CourseSubscription).where(CourseSubscription.student_course_id == enrollment.id)
        )
        mirrored = result.scalar_one()
        assert (mirrored.total_sessions, mirrored.remaining_sessions) == (8, 8)

    async def test_enrollment_without_balance_gets_no_row(self, db_session, admin, student, courses):
        await enroll(db_session, student, courses[0], admin.id)
        await db_session.commit()
        assert await _rows(db_session, student.id) == []
        assert await SubscriptionService(db_session).get_balance(student.id) is None
        assert not await SubscriptionService(db_session).is_expired(student.id)


class TestMaintenance:
    async def test_deduplicate_keeps_newest_per_enrollment(self, db_session, admin, student, courses):
        enrollment = await enroll(db_session, student, courses[0], admin.id)
        base = datetime(2026, 2, 1, tzinfo=timezone.utc)
        for offset, remaining in ((0, 1), (1, 2), (2, 3)):
            db_session.add(
                CourseSubscription(
                    student_course_id=enrollment.id,
                    total_sessions=4,
                    remaining_sessions=remaining,
                    created_at=base,
                    updated_at=base + timedelta(hours=offset),
                )
            )
        await db_session.commit()

        removed = await SubscriptionService(db_session).deduplicate()
        await db_session.commit()

        assert removed == 2
        rows = await _rows(db_session, student.id)
        assert [r.remaining_sessions for r in rows] == [3]

    async def test_deduplicate_nothing_to_do(self, db_session):
        assert await SubscriptionService(db_session).deduplicate() == 0

    async def test_low_session_alerts(self, db_session, admin, make_profile, courses):
        low = await make_profile(name="Low Lou", phone="555-0101")
        empty = await make_profile(name="Empty Em")
        healthy = await make_profile(name="Healthy Hal")
        await make_profile(name="No Plan Nia")
        for s in (low, empty, healthy):
            await enroll(db_session, s, courses[0], admin.id)

        service = SubscriptionService(db_session)
        await service.add_sessions(low.id, 1)
        await service.add_sessions(empty.id, 1)
        await service.consume_session(empty.id)
        await service.add_sessions(healthy.id, 5)

        alerts = await service.refresh_low_session_alerts()
        await db_session.commit()

        assert {a.student_name: a.remaining_sessions for a in alerts} == {"Low Lou": 1, "Empty Em": 0}
        listed = await service.list_low_session_alerts()
        assert [a.student_name for a in listed] == ["Empty Em", "Low Lou"]
        assert listed[1].student_phone == "555-0101"

        # Rebuilding replaces rather than appends
        await service.refill(low.id, 4)
        await service.refresh_low_session_alerts()
        await db_session.commit()
        count = await db_session.execute(select(func.count()).select_from(LowSessionAlert))
        assert count.scalar_one() == 1

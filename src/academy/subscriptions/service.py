"""Global subscription ledger.

A student owns one session balance, but it is stored as a copy on every one
of their enrollments (``student_course_subscription``). The authoritative
value is the most recently updated copy. Every write goes through
:meth:`SubscriptionService._write_balance`, which locks the student's profile
row, collapses duplicate copies and then stamps the same balance onto every
enrollment, so all copies agree once the transaction commits.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.db.models import CourseSubscription, LowSessionAlert, Profile, StudentCourse, utcnow
from academy.errors import BadRequestError, InsufficientSessionsError, NotFoundError, SubscriptionExistsError
from academy.notifications.service import create_notification
from academy.subscriptions import ledger
from academy.subscriptions.ledger import Balance

logger = structlog.get_logger()

_NEWEST_FIRST = (
    CourseSubscription.updated_at.desc(),
    CourseSubscription.created_at.desc(),
    CourseSubscription.id.desc(),
)


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def _apply(row: CourseSubscription, balance: Balance) -> None:
    row.total_sessions = balance.total_sessions
    row.remaining_sessions = balance.remaining_sessions
    row.plan_duration_months = balance.plan_duration_months
    row.warning = balance.warning
    row.updated_at = utcnow()


def balance_of(row: CourseSubscription) -> Balance:
    return Balance(total_sessions=row.total_sessions, remaining_sessions=row.remaining_sessions)


class SubscriptionService:
    """Reads and writes a student's global session balance."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_global_subscription(self, student_id: str) -> CourseSubscription | None:
        """Most recently updated subscription row across the student's enrollments."""
        result = await self.db.execute(
            select(CourseSubscription)
            .join(StudentCourse, StudentCourse.id == CourseSubscription.student_course_id)
            .where(StudentCourse.student_id == student_id)
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_balance(self, student_id: str) -> Balance | None:
        """The student's balance, or None when they never had a subscription."""
        row = await self.get_global_subscription(student_id)
        return balance_of(row) if row is not None else None

    async def is_expired(self, student_id: str) -> bool:
        """True when a balance exists and no sessions remain."""
        balance = await self.get_balance(student_id)
        return balance is not None and balance.remaining_sessions <= 0

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def create_subscription(self, student_id: str, plan_duration_months: int) -> Balance:
        """Start a plan of ``plan_duration_months`` months (4 sessions each)."""
        student = await self._get_student(student_id)
        if await self.get_global_subscription(student_id) is not None:
            msg = "Student already has a subscription; adjust its sessions instead"
            raise SubscriptionExistsError(msg)

        balance = await self._write_balance(student, Balance.for_months(plan_duration_months))
        await create_notification(
            self.db,
            student.id,
            "subscription_change",
            "Subscription Created",
            f"A new {plan_duration_months}-month subscription with {balance.total_sessions} sessions "
            "has been created for you.",
        )
        return balance

    async def add_sessions(self, student_id: str, n: int, group_title: str | None = None) -> Balance:
        """Grant ``n`` sessions (total and remaining both grow)."""
        return await self._adjust(student_id, n, add=True, group_title=group_title)

    async def remove_sessions(self, student_id: str, n: int, group_title: str | None = None) -> Balance:
        """Take ``n`` sessions away, flooring both counters at zero."""
        return await self._adjust(student_id, n, add=False, group_title=group_title)

    async def refill(self, student_id: str, n: int) -> Balance:
        """Top up the balance after a payment."""
        student = await self._get_student(student_id)
        current = await self.get_balance(student_id) or Balance()
        balance = await self._write_balance(student, ledger.add(current, n))
        await create_notification(
            self.db,
            student.id,
            "session_refill",
            "Sessions Added to Your Subscription",
            f"Admin refilled your subscription with {n} session{_plural(n)} on {date.today().isoformat()}. "
            f"You now have {balance.remaining_sessions} sessions remaining.",
        )
        return balance

    async def consume_session(self, student_id: str) -> Balance:
        """Deduct one attended session from the remaining count."""
        student = await self._get_student(student_id)
        current = await self.get_balance(student_id) or Balance()
        try:
            updated = ledger.consume(current)
        except BadRequestError as e:
            raise InsufficientSessionsError(str(e)) from e

        balance = await self._write_balance(student, updated)
        await create_notification(
            self.db,
            student.id,
            "session_removal",
            "Session Removed from Your Subscription",
            f"Admin removed one session from your subscription on {date.today().isoformat()}. "
            f"You now have {balance.remaining_sessions} sessions remaining.",
        )
        return balance

    async def _adjust(self, student_id: str, n: int, *, add: bool, group_title: str | None) -> Balance:
        student = await self._get_student(student_id)
        current = await self.get_balance(student_id) or Balance()
        updated = ledger.add(current, n) if add else ledger.remove(current, n)
        balance = await self._write_balance(student, updated)

        verb = "added to" if add else "removed from"
        where = ""
        if group_title:
            where = f' from group "{group_title}"' if add else f' in group "{group_title}"'
        await create_notification(
            self.db,
            student.id,
            "session_update",
            f"Sessions {'Added' if add else 'Removed'}",
            f"{n} session{_plural(n)} {verb} your global subscription{where}. "
            f"You now have {balance.remaining_sessions} sessions remaining.",
        )
        return balance

    # ------------------------------------------------------------------
    # Enrollment hooks
    # ------------------------------------------------------------------

    async def ensure_enrollment_subscription(self, enrollment: StudentCourse) -> CourseSubscription | None:
        """Copy the student's current balance onto a freshly created enrollment.

        Students without a balance stay without one.
        """
        existing = await self.db.execute(
            select(CourseSubscription.id).where(CourseSubscription.student_course_id == enrollment.id).limit(1)
        )
        if existing.scalar_one_or_none() is not None:
            return None

        source = await self.get_global_subscription(enrollment.student_id)
        if source is None:
            return None

        row = CourseSubscription(student_course_id=enrollment.id, created_at=utcnow())
        _apply(row, balance_of(source))
        self.db.add(row)
        await self.db.flush()
        logger.info(
            "subscription_mirrored",
            student_id=enrollment.student_id,
            student_course_id=enrollment.id,
            remaining=row.remaining_sessions,
        )
        return row

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def deduplicate(self, student_id: str | None = None) -> int:
        """Delete all but the newest subscription row per enrollment.

        Returns the number of rows removed.
        """
        query = select(CourseSubscription).order_by(CourseSubscription.student_course_id, *_NEWEST_FIRST)
        if student_id is not None:
            query = query.join(StudentCourse, StudentCourse.id == CourseSubscription.student_course_id).where(
                StudentCourse.student_id == student_id
            )
        rows = (await self.db.execute(query)).scalars().all()
        _, removed = await self._drop_stale(rows)
        if removed:
            logger.info("subscriptions_deduplicated", student_id=student_id, removed=removed)
        return removed

    async def refresh_low_session_alerts(self) -> list[LowSessionAlert]:
        """Rebuild the low-session alert table from the current balances."""
        threshold = get_settings().low_session_threshold
        await self.db.execute(delete(LowSessionAlert))

        students = (
            await self.db.execute(select(Profile).where(Profile.role == "student").order_by(Profile.name))
        ).scalars().all()

        alerts: list[LowSessionAlert] = []
        for student in students:
            balance = await self.get_balance(student.id)
            if balance is None or balance.remaining_sessions > threshold:
                continue
            alert = LowSessionAlert(
                student_id=student.id,
                student_name=student.name,
                student_email=student.email,
                student_phone=student.phone,
                student_unique_id=student.unique_id,
                remaining_sessions=balance.remaining_sessions,
                updated_at=utcnow(),
            )
            self.db.add(alert)
            alerts.append(alert)

        await self.db.flush()
        logger.info("low_session_alerts_refreshed", count=len(alerts), threshold=threshold)
        return alerts

    async def list_low_session_alerts(self) -> list[LowSessionAlert]:
        result = await self.db.execute(
            select(LowSessionAlert).order_by(
                LowSessionAlert.remaining_sessions, LowSessionAlert.updated_at.desc()
            )
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get_student(self, student_id: str) -> Profile:
        result = await self.db.execute(
            select(Profile).where(Profile.id == student_id, Profile.role == "student")
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    async def _drop_stale(
        self, rows: Sequence[CourseSubscription]
    ) -> tuple[dict[str, CourseSubscription], int]:
        """Keep the first row seen per enrollment and delete the rest.

        ``rows`` must be grouped by enrollment, newest first within a group.
        """
        kept: dict[str, CourseSubscription] = {}
        removed = 0
        for row in rows:
            if row.student_course_id in kept:
                await self.db.delete(row)
                removed += 1
            else:
                kept[row.student_course_id] = row
        await self.db.flush()
        return kept, removed

    async def _write_balance(self, student: Profile, balance: Balance) -> Balance:
        """Write ``balance`` onto every enrollment of ``student``.

        Locks the profile row first so two admins editing the same student
        serialise on it (a no-op on SQLite, which has no row locks).
        """
        await self.db.execute(select(Profile.id).where(Profile.id == student.id).with_for_update())

        enrollment_ids = (
            await self.db.execute(select(StudentCourse.id).where(StudentCourse.student_id == student.id))
        ).scalars().all()
        if not enrollment_ids:
            msg = "Student must be enrolled in a course before a subscription can be recorded"
            raise BadRequestError(msg)

        rows = (
            await self.db.execute(
                select(CourseSubscription)
                .where(CourseSubscription.student_course_id.in_(enrollment_ids))
                .order_by(CourseSubscription.student_course_id, *_NEWEST_FIRST)
            )
        ).scalars().all()
        kept, removed = await self._drop_stale(rows)

        now = utcnow()
        for enrollment_id in enrollment_ids:
            row = kept.get(enrollment_id)
            if row is None:
                row = CourseSubscription(student_course_id=enrollment_id, created_at=now)
                self.db.add(row)
            _apply(row, balance)

        await self.db.flush()
        logger.info(
            "subscription_updated",
            student_id=student.id,
            enrollments=len(enrollment_ids),
            total=balance.total_sessions,
            remaining=balance.remaining_sessions,
            duplicates_removed=removed,
        )
        return balance

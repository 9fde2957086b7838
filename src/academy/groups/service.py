"""Course groups: cohorts of students managed by one or two admins.

An admin may see and manage a group when they created it or are its
``allowed_admin_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.service import get_profile_by_id
from academy.courses.service import admin_owns_course, get_course
from academy.db.models import Course, CourseGroup, GroupMember, Profile, utcnow
from academy.enrollment.service import enroll, get_enrollment
from academy.errors import AlreadyMemberError, BadRequestError, ForbiddenError, NotFoundError
from academy.notifications.service import create_notification
from academy.subscriptions.ledger import Balance
from academy.subscriptions.service import SubscriptionService
from academy.users.service import student_matches

logger = structlog.get_logger()

CANDIDATE_LIMIT = 10


@dataclass
class MemberView:
    student: Profile
    membership: GroupMember
    balance: Balance | None


def can_manage(group: CourseGroup, admin_id: str) -> bool:
    return admin_id in (group.created_by, group.allowed_admin_id)


async def create_group(
    db: AsyncSession,
    admin_id: str,
    title: str,
    course_id: str,
    start_date: date,
    branch: str | None = None,
    allowed_admin_id: str | None = None,
) -> CourseGroup:
    """Create a group for a course the admin owns."""
    await get_course(db, course_id)
    if not await admin_owns_course(db, admin_id, course_id):
        msg = "You can only create groups for your own courses"
        raise ForbiddenError(msg)

    if allowed_admin_id is not None:
        co_admin = await get_profile_by_id(db, allowed_admin_id)
        if co_admin is None or not co_admin.is_admin:
            msg = "allowed_admin_id must reference an admin"
            raise BadRequestError(msg)

    group = CourseGroup(
        title=title.strip(),
        course_id=course_id,
        branch=branch,
        start_date=start_date,
        created_by=admin_id,
        allowed_admin_id=allowed_admin_id,
        created_at=utcnow(),
    )
    db.add(group)
    await db.flush()
    logger.info("group_created", group_id=group.id, course_id=course_id, admin_id=admin_id)
    return group


async def list_groups(db: AsyncSession, admin_id: str) -> list[tuple[CourseGroup, Course, int]]:
    """Groups visible to the admin with their course and member count, newest first."""
    member_count = (
        select(GroupMember.group_id, func.count(GroupMember.id).label("members"))
        .group_by(GroupMember.group_id)
        .subquery()
    )
    result = await db.execute(
        select(CourseGroup, Course, func.coalesce(member_count.c.members, 0))
        .join(Course, Course.id == CourseGroup.course_id)
        .outerjoin(member_count, member_count.c.group_id == CourseGroup.id)
        .where(or_(CourseGroup.created_by == admin_id, CourseGroup.allowed_admin_id == admin_id))
        .order_by(CourseGroup.created_at.desc())
    )
    return [(row[0], row[1], int(row[2])) for row in result.all()]


async def count_groups(db: AsyncSession, admin_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(CourseGroup)
        .where(or_(CourseGroup.created_by == admin_id, CourseGroup.allowed_admin_id == admin_id))
    )
    return result.scalar_one()


async def get_group(db: AsyncSession, admin_id: str, group_id: str) -> CourseGroup:
    result = await db.execute(select(CourseGroup).where(CourseGroup.id == group_id))
    group = result.scalar_one_or_none()
    if group is None:
        raise NotFoundError("Group", group_id)
    if not can_manage(group, admin_id):
        msg = "You do not have access to this group"
        raise ForbiddenError(msg)
    return group


async def list_members(db: AsyncSession, group_id: str) -> list[tuple[Profile, GroupMember]]:
    """Members in the order they joined."""
    result = await db.execute(
        select(Profile, GroupMember)
        .join(GroupMember, GroupMember.student_id == Profile.id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at, GroupMember.id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def member_views(db: AsyncSession, group_id: str) -> list[MemberView]:
    """Members with their global session balance."""
    ledger = SubscriptionService(db)
    return [
        MemberView(student=student, membership=membership, balance=await ledger.get_balance(student.id))
        for student, membership in await list_members(db, group_id)
    ]


async def search_candidates(db: AsyncSession, group_id: str, q: str) -> list[Profile]:
    """Students matching ``q`` by unique_id, name or email who are not yet members."""
    existing = select(GroupMember.student_id).where(GroupMember.group_id == group_id)
    result = await db.execute(
        select(Profile)
        .where(
            Profile.role == "student",
            Profile.id.not_in(existing),
            student_matches(q),
        )
        .order_by(Profile.name)
        .limit(CANDIDATE_LIMIT)
    )
    return list(result.scalars().all())


async def add_student(db: AsyncSession, admin_id: str, group_id: str, student_id: str) -> GroupMember:
    """Add a student, enrolling them in the group's course first if needed."""
    group = await get_group(db, admin_id, group_id)
    student = await get_profile_by_id(db, student_id)
    if student is None or student.role != "student":
        raise NotFoundError("Student", student_id)

    existing = await db.execute(
        select(GroupMember.id).where(GroupMember.group_id == group_id, GroupMember.student_id == student_id)
    )
    if existing.scalar_one_or_none() is not None:
        msg = f"{student.name} is already in this group"
        raise AlreadyMemberError(msg)

    enrollment = await get_enrollment(db, student_id, group.course_id)
    if enrollment is None:
        course = await get_course(db, group.course_id)
        enrollment = await enroll(db, student, course, admin_id)

    membership = GroupMember(
        group_id=group_id,
        student_id=student_id,
        student_course_id=enrollment.id,
        joined_at=utcnow(),
    )
    db.add(membership)
    await db.flush()
    await create_notification(
        db,
        student_id,
        "group",
        "Added to Group",
        f'You have been added to the group "{group.title}".',
    )
    logger.info("group_member_added", group_id=group_id, student_id=student_id)
    return membership


async def remove_student(db: AsyncSession, admin_id: str, group_id: str, student_id: str) -> None:
    """Remove the membership only; enrollment and balance stay."""
    await get_group(db, admin_id, group_id)
    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.student_id == student_id)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFoundError("Group member", student_id)
    await db.delete(membership)
    await db.flush()
    logger.info("group_member_removed", group_id=group_id, student_id=student_id)

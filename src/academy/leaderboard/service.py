"""Group points and leaderboards."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.db.models import Course, CourseGroup, GroupMember, Profile, StudentGroupPoints, utcnow
from academy.errors import BadRequestError, NotFoundError
from academy.groups.service import get_group, list_members
from academy.leaderboard.ranking import find_rank, rank_by_points
from academy.notifications.service import create_notification

logger = structlog.get_logger()

TOP_STUDENTS_LIMIT = 5


async def _group_points(db: AsyncSession, group_id: str) -> dict[str, int]:
    result = await db.execute(
        select(StudentGroupPoints.student_id, StudentGroupPoints.points).where(
            StudentGroupPoints.group_id == group_id
        )
    )
    return {row[0]: row[1] for row in result.all()}


async def build_group_leaderboard(db: AsyncSession, group_id: str) -> list[dict[str, Any]]:
    """Every member with their group points (0 if none), ranked."""
    points = await _group_points(db, group_id)
    entries = [
        {
            "student_id": student.id,
            "name": student.name,
            "unique_id": student.unique_id,
            "points": points.get(student.id, 0),
        }
        for student, _ in await list_members(db, group_id)
    ]
    return rank_by_points(entries)


async def get_group_leaderboard(db: AsyncSession, admin_id: str, group_id: str) -> list[dict[str, Any]]:
    await get_group(db, admin_id, group_id)
    return await build_group_leaderboard(db, group_id)


async def award_group_points(
    db: AsyncSession,
    admin_id: str,
    group_id: str,
    student_id: str,
    points: int,
) -> StudentGroupPoints:
    """Add points to a member's group tally and to their profile total."""
    if points <= 0:
        msg = "Points must be a positive integer"
        raise BadRequestError(msg)

    group = await get_group(db, admin_id, group_id)
    member = await db.execute(
        select(GroupMember.id).where(GroupMember.group_id == group_id, GroupMember.student_id == student_id)
    )
    if member.scalar_one_or_none() is None:
        raise NotFoundError("Group member", student_id)

    result = await db.execute(
        select(StudentGroupPoints).where(
            StudentGroupPoints.group_id == group_id, StudentGroupPoints.student_id == student_id
        )
    )
    tally = result.scalar_one_or_none()
    if tally is None:
        tally = StudentGroupPoints(group_id=group_id, student_id=student_id, points=0)
        db.add(tally)
    tally.points = (tally.points or 0) + points
    tally.updated_at = utcnow()

    student = (await db.execute(select(Profile).where(Profile.id == student_id))).scalar_one()
    student.total_points = (student.total_points or 0) + points
    await db.flush()

    await create_notification(
        db,
        student_id,
        "points",
        "Points Earned",
        f'You earned {points} point{"" if points == 1 else "s"} in "{group.title}".',
    )
    logger.info("group_points_awarded", group_id=group_id, student_id=student_id, points=points)
    return tally


async def get_student_group_ranks(db: AsyncSession, student_id: str) -> list[dict[str, Any]]:
    """The student's standing in every group they belong to."""
    result = await db.execute(
        select(CourseGroup, Course)
        .join(GroupMember, GroupMember.group_id == CourseGroup.id)
        .join(Course, Course.id == CourseGroup.course_id)
        .where(GroupMember.student_id == student_id)
        .order_by(Course.title, CourseGroup.title)
    )
    ranks = []
    for group, course in result.all():
        board = await build_group_leaderboard(db, group.id)
        rank = find_rank(board, student_id)
        entry = next(e for e in board if e["student_id"] == student_id)
        ranks.append(
            {
                "course_id": course.id,
                "course_title": course.title,
                "group_id": group.id,
                "group_title": group.title,
                "rank": rank,
                "points": entry["points"],
                "total_students": len(board),
            }
        )
    return ranks


async def get_top_students(db: AsyncSession, limit: int = TOP_STUDENTS_LIMIT) -> list[dict[str, Any]]:
    """Students with the most points overall."""
    result = await db.execute(
        select(Profile)
        .where(Profile.role == "student")
        .order_by(Profile.total_points.desc(), Profile.created_at, Profile.id)
        .limit(limit)
    )
    entries = [
        {"student_id": s.id, "name": s.name, "unique_id": s.unique_id, "points": s.total_points}
        for s in result.scalars().all()
    ]
    return rank_by_points(entries)


async def get_student_rank(db: AsyncSession, student_id: str) -> int | None:
    """1-based position among all students by total points."""
    result = await db.execute(
        select(Profile.id, Profile.total_points)
        .where(Profile.role == "student")
        .order_by(Profile.total_points.desc(), Profile.created_at, Profile.id)
    )
    ranked = rank_by_points([{"student_id": row[0], "points": row[1]} for row in result.all()])
    return find_rank(ranked, student_id)

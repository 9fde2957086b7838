"""Leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user, require_admin, require_student
from academy.database import get_session
from academy.db.models import Profile
from academy.leaderboard import service
from academy.leaderboard.schemas import (
    AwardPointsRequest,
    AwardPointsResponse,
    GroupRankResponse,
    LeaderboardEntry,
)

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/admin/groups/{group_id}/leaderboard", response_model=list[LeaderboardEntry])
async def group_leaderboard(
    group_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await service.get_group_leaderboard(db, admin.id, group_id)


@router.post("/admin/groups/{group_id}/points", response_model=AwardPointsResponse)
async def award_points(
    group_id: str,
    body: AwardPointsRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    tally = await service.award_group_points(db, admin.id, group_id, body.student_id, body.points)
    await db.commit()
    return AwardPointsResponse(student_id=tally.student_id, group_id=tally.group_id, group_points=tally.points)


@router.get("/leaderboard/top", response_model=list[LeaderboardEntry])
async def top_students(
    _user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Top five students by total points."""
    return await service.get_top_students(db)


@router.get("/me/group-ranks", response_model=list[GroupRankResponse])
async def my_group_ranks(
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    return await service.get_student_group_ranks(db, student.id)

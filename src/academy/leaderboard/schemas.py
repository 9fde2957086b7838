"""Leaderboard schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: str
    name: str
    unique_id: str | None = None
    points: int


class AwardPointsRequest(BaseModel):
    student_id: str
    points: int = Field(..., gt=0, le=10_000)


class AwardPointsResponse(BaseModel):
    student_id: str
    group_id: str
    group_points: int


class GroupRankResponse(BaseModel):
    course_id: str
    course_title: str
    group_id: str
    group_title: str
    rank: int
    points: int
    total_students: int

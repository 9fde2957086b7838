"""Group schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class GroupCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    course_id: str
    start_date: date
    branch: str | None = Field(None, max_length=128)
    allowed_admin_id: str | None = None


class GroupResponse(BaseModel):
    id: str
    title: str
    course_id: str
    course_title: str | None = None
    branch: str | None = None
    start_date: date
    created_by: str
    allowed_admin_id: str | None = None
    member_count: int = 0
    created_at: datetime


class GroupMemberResponse(BaseModel):
    student_id: str
    name: str
    unique_id: str | None = None
    total_points: int
    remaining_sessions: int
    total_sessions: int
    joined_at: datetime


class GroupDetailResponse(GroupResponse):
    members: list[GroupMemberResponse] = []


class AddMemberRequest(BaseModel):
    student_id: str


class CandidateResponse(BaseModel):
    id: str
    name: str
    email: str
    unique_id: str | None = None

    model_config = {"from_attributes": True}

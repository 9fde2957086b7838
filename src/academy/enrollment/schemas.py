"""Enrollment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AssignStudentRequest(BaseModel):
    unique_id: str = Field(..., min_length=1, max_length=16)


class HideNewSessionsRequest(BaseModel):
    hide_new_sessions: bool


class EnrollmentResponse(BaseModel):
    id: str
    student_id: str
    course_id: str
    progress: int
    hide_new_sessions: bool
    assigned_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class EnrolledStudentResponse(BaseModel):
    student_id: str
    name: str
    email: str
    unique_id: str | None = None
    progress: int
    hide_new_sessions: bool
    assigned_at: datetime


class MyCourseResponse(BaseModel):
    course_id: str
    title: str
    description: str | None = None
    total_sessions: int
    progress: int
    completed: bool
    assigned_at: datetime


class MyCoursesResponse(BaseModel):
    """``subscription_expired`` is true when the balance is exhausted; courses are then withheld."""

    subscription_expired: bool
    courses: list[MyCourseResponse]


class MySessionResponse(BaseModel):
    id: str
    title: str
    order_number: int
    accessible: bool
    completed: bool
    completed_at: datetime | None = None
    video_url: str | None = None
    material_url: str | None = None


class MyCourseDetailResponse(MyCourseResponse):
    subscription_expired: bool
    sessions: list[MySessionResponse]

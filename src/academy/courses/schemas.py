"""Course and session schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CourseCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)


class CourseUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    total_sessions: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    video_url: str | None = None
    material_url: str | None = None


class SessionUpdateRequest(BaseModel):
    """Omitted fields are left alone; an empty string clears a URL."""

    title: str | None = Field(None, min_length=1, max_length=200)
    video_url: str | None = None
    material_url: str | None = None


class SessionFlagsRequest(BaseModel):
    visible: bool | None = None
    locked: bool | None = None


class SessionResponse(BaseModel):
    id: str
    course_id: str
    title: str
    order_number: int
    video_url: str | None = None
    material_url: str | None = None
    visible: bool
    locked: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CourseDetailResponse(CourseResponse):
    sessions: list[SessionResponse] = []

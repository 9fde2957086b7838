"""Admin course management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin
from academy.courses import service
from academy.courses.schemas import (
    CourseCreateRequest,
    CourseDetailResponse,
    CourseResponse,
    CourseUpdateRequest,
    SessionCreateRequest,
    SessionFlagsRequest,
    SessionResponse,
    SessionUpdateRequest,
)
from academy.database import get_session
from academy.db.models import Profile

router = APIRouter(prefix="/api/v1/admin/courses", tags=["Courses"])


@router.post("", response_model=CourseResponse, status_code=201)
async def create_course(
    body: CourseCreateRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    course = await service.create_course(db, admin.id, body.title, body.description)
    await db.commit()
    return course


@router.get("", response_model=list[CourseResponse])
async def list_courses(
    mine: bool = Query(False, description="Only courses linked to the caller"),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    if mine:
        return await service.list_admin_courses(db, admin.id)
    return await service.list_courses(db)


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(
    course_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Course with every session, hidden and locked ones included."""
    course = await service.get_course(db, course_id)
    sessions = await service.list_sessions(db, course_id)
    return CourseDetailResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        total_sessions=course.total_sessions,
        created_at=course.created_at,
        sessions=[SessionResponse.model_validate(s) for s in sessions],
    )


@router.patch("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    body: CourseUpdateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    course = await service.update_course(db, course_id, body.title, body.description)
    await db.commit()
    return course


@router.post("/{course_id}/sessions", response_model=SessionResponse, status_code=201)
async def add_session(
    course_id: str,
    body: SessionCreateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    session = await service.add_session(db, course_id, body.title, body.video_url, body.material_url)
    await db.commit()
    return session


@router.patch("/{course_id}/sessions/{session_id}", response_model=SessionResponse)
async def update_session(
    course_id: str,
    session_id: str,
    body: SessionUpdateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    session = await service.update_session(
        db, course_id, session_id, body.title, body.video_url, body.material_url
    )
    await db.commit()
    return session


@router.patch("/{course_id}/sessions/{session_id}/flags", response_model=SessionResponse)
async def set_session_flags(
    course_id: str,
    session_id: str,
    body: SessionFlagsRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    session = await service.set_session_flags(db, course_id, session_id, body.visible, body.locked)
    await db.commit()
    return session


@router.delete("/{course_id}/sessions/{session_id}", status_code=204)
async def delete_session(
    course_id: str,
    session_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await service.delete_session(db, course_id, session_id)
    await db.commit()
    return Response(status_code=204)

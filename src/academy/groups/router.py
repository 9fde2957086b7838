"""Admin group management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin
from academy.courses.service import get_course
from academy.database import get_session
from academy.db.models import Course, CourseGroup, Profile
from academy.groups import service
from academy.groups.schemas import (
    AddMemberRequest,
    CandidateResponse,
    GroupCreateRequest,
    GroupDetailResponse,
    GroupMemberResponse,
    GroupResponse,
)

router = APIRouter(prefix="/api/v1/admin/groups", tags=["Groups"])


def _group_response(group: CourseGroup, course: Course | None, member_count: int) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        title=group.title,
        course_id=group.course_id,
        course_title=course.title if course else None,
        branch=group.branch,
        start_date=group.start_date,
        created_by=group.created_by,
        allowed_admin_id=group.allowed_admin_id,
        member_count=member_count,
        created_at=group.created_at,
    )


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    body: GroupCreateRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    group = await service.create_group(
        db,
        admin.id,
        title=body.title,
        course_id=body.course_id,
        start_date=body.start_date,
        branch=body.branch,
        allowed_admin_id=body.allowed_admin_id,
    )
    course = await get_course(db, group.course_id)
    await db.commit()
    return _group_response(group, course, 0)


@router.get("", response_model=list[GroupResponse])
async def list_groups(
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Groups the caller created or was granted access to."""
    rows = await service.list_groups(db, admin.id)
    return [_group_response(group, course, count) for group, course, count in rows]


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    group = await service.get_group(db, admin.id, group_id)
    course = await get_course(db, group.course_id)
    members = await service.member_views(db, group_id)
    summary = _group_response(group, course, len(members))
    return GroupDetailResponse(
        **summary.model_dump(),
        members=[
            GroupMemberResponse(
                student_id=m.student.id,
                name=m.student.name,
                unique_id=m.student.unique_id,
                total_points=m.student.total_points,
                remaining_sessions=m.balance.remaining_sessions if m.balance else 0,
                total_sessions=m.balance.total_sessions if m.balance else 0,
                joined_at=m.membership.joined_at,
            )
            for m in members
        ],
    )


@router.get("/{group_id}/candidates", response_model=list[CandidateResponse])
async def search_candidates(
    group_id: str,
    q: str = Query(..., min_length=1, max_length=100),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Students not yet in the group, matched by unique_id, name or email."""
    await service.get_group(db, admin.id, group_id)
    return await service.search_candidates(db, group_id, q)


@router.post("/{group_id}/students", status_code=201)
async def add_group_student(
    group_id: str,
    body: AddMemberRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    membership = await service.add_student(db, admin.id, group_id, body.student_id)
    await db.commit()
    return {
        "group_id": membership.group_id,
        "student_id": membership.student_id,
        "student_course_id": membership.student_course_id or "",
    }


@router.delete("/{group_id}/students/{student_id}", status_code=204)
async def remove_group_student(
    group_id: str,
    student_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await service.remove_student(db, admin.id, group_id, student_id)
    await db.commit()
    return Response(status_code=204)

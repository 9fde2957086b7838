"""Enrollment endpoints: admins manage rosters, students browse their courses."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin, require_student
from academy.database import get_session
from academy.db.models import Course, Profile, StudentCourse
from academy.enrollment import service
from academy.enrollment.schemas import (
    AssignStudentRequest,
    EnrolledStudentResponse,
    EnrollmentResponse,
    HideNewSessionsRequest,
    MyCourseDetailResponse,
    MyCourseResponse,
    MyCoursesResponse,
    MySessionResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Enrollment"])


def _my_course(enrollment: StudentCourse, course: Course) -> MyCourseResponse:
    return MyCourseResponse(
        course_id=course.id,
        title=course.title,
        description=course.description,
        total_sessions=course.total_sessions,
        progress=enrollment.progress,
        completed=enrollment.completed_at is not None,
        assigned_at=enrollment.assigned_at,
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("/admin/courses/{course_id}/students", response_model=EnrollmentResponse, status_code=201)
async def assign_student(
    course_id: str,
    body: AssignStudentRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Enroll a student by their unique_id."""
    enrollment = await service.assign_student(db, course_id, body.unique_id, admin.id)
    await db.commit()
    return enrollment


@router.get("/admin/courses/{course_id}/students", response_model=list[EnrolledStudentResponse])
async def list_course_students(
    course_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_enrolled_students(db, course_id)
    return [
        EnrolledStudentResponse(
            student_id=student.id,
            name=student.name,
            email=student.email,
            unique_id=student.unique_id,
            progress=enrollment.progress,
            hide_new_sessions=enrollment.hide_new_sessions,
            assigned_at=enrollment.assigned_at,
        )
        for student, enrollment in rows
    ]


@router.patch("/admin/courses/{course_id}/students/{student_id}", response_model=EnrollmentResponse)
async def update_enrollment(
    course_id: str,
    student_id: str,
    body: HideNewSessionsRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    enrollment = await service.set_hide_new_sessions(db, course_id, student_id, body.hide_new_sessions)
    await db.commit()
    return enrollment


@router.delete("/admin/courses/{course_id}/students/{student_id}", status_code=204)
async def remove_course_student(
    course_id: str,
    student_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Unenroll a student; their progress in the course is reset."""
    await service.remove_student(db, course_id, student_id)
    await db.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------


@router.get("/me/courses", response_model=MyCoursesResponse)
async def my_courses(
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    expired, rows = await service.list_my_courses(db, student.id)
    return MyCoursesResponse(
        subscription_expired=expired,
        courses=[_my_course(enrollment, course) for enrollment, course in rows],
    )


@router.get("/me/courses/{course_id}", response_model=MyCourseDetailResponse)
async def my_course_detail(
    course_id: str,
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    """Sessions in order; links are only exposed for accessible sessions."""
    course, enrollment, views, expired = await service.get_my_course(db, student.id, course_id)
    summary = _my_course(enrollment, course)
    return MyCourseDetailResponse(
        **summary.model_dump(),
        subscription_expired=expired,
        sessions=[
            MySessionResponse(
                id=v.session.id,
                title=v.session.title,
                order_number=v.session.order_number,
                accessible=v.accessible,
                completed=v.completed,
                completed_at=v.completed_at,
                video_url=v.session.video_url if v.accessible else None,
                material_url=v.session.material_url if v.accessible else None,
            )
            for v in views
        ],
    )


@router.post("/me/courses/{course_id}/sessions/{session_id}/complete", response_model=EnrollmentResponse)
async def complete_session(
    course_id: str,
    session_id: str,
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    enrollment = await service.complete_session(db, student.id, course_id, session_id)
    await db.commit()
    return enrollment

"""Certificates: creation, assignment, visibility and downloads."""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.service import get_student_by_unique_id
from academy.certificates.pdf import certificate_filename, render_certificate
from academy.config import get_settings
from academy.db.models import Certificate, StudentCertificate, utcnow
from academy.errors import BadRequestError, NotFoundError
from academy.notifications.service import create_notification

logger = structlog.get_logger()


def certificate_text(course_name: str, description: str, start_date: date, end_date: date) -> str:
    return (
        f"For completing {course_name} Course with focus on {description}, "
        f"from {start_date.isoformat()} until {end_date.isoformat()}"
    )


async def create_certificate(
    db: AsyncSession,
    student_name: str,
    student_unique_id: str,
    course_name: str,
    description: str,
    start_date: date,
    end_date: date,
) -> StudentCertificate:
    """Create a certificate dated today and assign it to a student."""
    if end_date < start_date:
        msg = "end_date must not be before start_date"
        raise BadRequestError(msg)

    certificate = Certificate(
        course_name=course_name.strip(),
        certificate_text=certificate_text(course_name.strip(), description.strip(), start_date, end_date),
        certificate_date=date.today(),
        is_visible=True,
        created_at=utcnow(),
    )
    db.add(certificate)
    await db.flush()

    unique_id = student_unique_id.strip().upper()
    assignment = StudentCertificate(
        certificate=certificate,
        certificate_id=certificate.id,
        student_unique_id=unique_id,
        student_name=student_name.strip(),
        download_count=0,
        created_at=utcnow(),
    )
    db.add(assignment)
    await db.flush()

    student = await get_student_by_unique_id(db, unique_id)
    if student is not None:
        await create_notification(
            db,
            student.id,
            "certificate",
            "New Certificate",
            f"Your certificate for {certificate.course_name} is ready to download.",
        )
    else:
        logger.warning("certificate_student_unknown", unique_id=unique_id, certificate_id=certificate.id)
    logger.info("certificate_created", certificate_id=certificate.id, unique_id=unique_id)
    return assignment


async def list_certificates(db: AsyncSession) -> list[StudentCertificate]:
    result = await db.execute(
        select(StudentCertificate).order_by(StudentCertificate.created_at.desc(), StudentCertificate.id)
    )
    return list(result.scalars().unique().all())


async def set_visibility(db: AsyncSession, certificate_id: str, is_visible: bool) -> Certificate:
    result = await db.execute(select(Certificate).where(Certificate.id == certificate_id))
    certificate = result.scalar_one_or_none()
    if certificate is None:
        raise NotFoundError("Certificate", certificate_id)
    certificate.is_visible = is_visible
    await db.flush()
    return certificate


async def list_my_certificates(db: AsyncSession, unique_id: str | None) -> list[StudentCertificate]:
    """Visible certificates assigned to the student's unique_id."""
    if not unique_id:
        return []
    result = await db.execute(
        select(StudentCertificate)
        .join(Certificate, Certificate.id == StudentCertificate.certificate_id)
        .where(StudentCertificate.student_unique_id == unique_id.upper(), Certificate.is_visible.is_(True))
        .order_by(Certificate.certificate_date.desc(), StudentCertificate.created_at.desc())
    )
    return list(result.scalars().unique().all())


async def download_certificate(
    db: AsyncSession, assignment_id: str, unique_id: str | None
) -> tuple[str, bytes]:
    """Render the student's certificate and count the download.

    Returns ``(filename, pdf_bytes)``.
    """
    mine = {a.id: a for a in await list_my_certificates(db, unique_id)}
    assignment = mine.get(assignment_id)
    if assignment is None:
        raise NotFoundError("Certificate", assignment_id)

    certificate = assignment.certificate
    settings = get_settings()
    content = render_certificate(
        academy_name=settings.academy_name,
        student_name=assignment.student_name,
        course_name=certificate.course_name,
        certificate_text=certificate.certificate_text,
        certificate_date=certificate.certificate_date,
        font_path=settings.certificate_font_path,
        bold_font_path=settings.certificate_bold_font_path,
    )
    assignment.download_count = (assignment.download_count or 0) + 1
    await db.flush()
    logger.info("certificate_downloaded", assignment_id=assignment_id, downloads=assignment.download_count)
    return certificate_filename(assignment.student_name, certificate.course_name), content

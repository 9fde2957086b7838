"""Certificate endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin, require_student
from academy.certificates import service
from academy.certificates.pdf import content_disposition
from academy.certificates.schemas import (
    AssignedCertificateResponse,
    CertificateCreateRequest,
    VisibilityRequest,
)
from academy.database import get_session
from academy.db.models import Profile

router = APIRouter(prefix="/api/v1", tags=["Certificates"])


@router.post("/admin/certificates", response_model=AssignedCertificateResponse, status_code=201)
async def create_certificate(
    body: CertificateCreateRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    assignment = await service.create_certificate(
        db,
        student_name=body.student_name,
        student_unique_id=body.student_unique_id,
        course_name=body.course_name,
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    await db.commit()
    return AssignedCertificateResponse.from_assignment(assignment)


@router.get("/admin/certificates", response_model=list[AssignedCertificateResponse])
async def list_certificates(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return [AssignedCertificateResponse.from_assignment(a) for a in await service.list_certificates(db)]


@router.patch("/admin/certificates/{certificate_id}")
async def set_certificate_visibility(
    certificate_id: str,
    body: VisibilityRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Hide or show a certificate to its student."""
    certificate = await service.set_visibility(db, certificate_id, body.is_visible)
    await db.commit()
    return {"id": certificate.id, "is_visible": certificate.is_visible}


@router.get("/me/certificates", response_model=list[AssignedCertificateResponse])
async def my_certificates(
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
):
    assignments = await service.list_my_certificates(db, student.unique_id)
    return [AssignedCertificateResponse.from_assignment(a) for a in assignments]


@router.get("/me/certificates/{assignment_id}/download")
async def download_certificate(
    assignment_id: str,
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Download the certificate as a PDF."""
    filename, content = await service.download_certificate(db, assignment_id, student.unique_id)
    await db.commit()
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )

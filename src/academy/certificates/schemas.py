"""Certificate schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from academy.db.models import StudentCertificate


class CertificateCreateRequest(BaseModel):
    student_name: str = Field(..., min_length=1, max_length=128)
    student_unique_id: str = Field(..., min_length=1, max_length=16)
    course_name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=500)
    start_date: date
    end_date: date


class VisibilityRequest(BaseModel):
    is_visible: bool


class AssignedCertificateResponse(BaseModel):
    id: str
    certificate_id: str
    student_name: str
    student_unique_id: str
    course_name: str
    certificate_text: str
    certificate_date: date
    is_visible: bool
    download_count: int
    created_at: datetime

    @classmethod
    def from_assignment(cls, a: StudentCertificate) -> AssignedCertificateResponse:
        return cls(
            id=a.id,
            certificate_id=a.certificate_id,
            student_name=a.student_name,
            student_unique_id=a.student_unique_id,
            course_name=a.certificate.course_name,
            certificate_text=a.certificate.certificate_text,
            certificate_date=a.certificate.certificate_date,
            is_visible=a.certificate.is_visible,
            download_count=a.download_count,
            created_at=a.created_at,
        )

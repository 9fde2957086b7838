"""Dashboard endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import require_admin, require_student
from academy.dashboard.service import get_admin_dashboard, get_student_dashboard
from academy.database import get_session
from academy.db.models import Profile
from academy.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/student")
async def student_dashboard(
    student: Profile = Depends(require_student),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Courses, progress, balance, points and rankings for the caller."""
    return await get_student_dashboard(db, student)


@router.get("/admin")
async def admin_dashboard(
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Admin overview (briefly cached in Redis)."""
    return await get_admin_dashboard(db, admin, get_optional_redis())

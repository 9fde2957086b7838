"""Profile endpoints: the caller's own profile and the admin student directory."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user, require_admin
from academy.database import get_session
from academy.db.models import Profile
from academy.subscriptions.schemas import BalanceResponse
from academy.subscriptions.service import SubscriptionService
from academy.users import service
from academy.users.schemas import ProfileResponse, ProfileUpdateRequest, StudentDetailResponse

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.get("/users/me", response_model=ProfileResponse)
async def get_me(user: Profile = Depends(get_current_user)):
    return user


@router.patch("/users/me", response_model=ProfileResponse)
async def update_me(
    body: ProfileUpdateRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Update name, age, phone or location."""
    profile = await service.update_profile(db, user, body.model_dump(exclude_unset=True))
    await db.commit()
    return profile


@router.get("/admin/students", response_model=list[ProfileResponse])
async def list_students(
    q: str | None = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await service.search_students(db, q, limit)


@router.get("/admin/students/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    student = await service.get_student(db, student_id)
    balance = await SubscriptionService(db).get_balance(student.id)
    return StudentDetailResponse(
        **ProfileResponse.model_validate(student).model_dump(),
        subscription=BalanceResponse.from_balance(balance),
    )

"""Authentication router: /api/v1/auth/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.jwt import create_access_token
from academy.auth.schemas import LoginRequest, ProfileResponse, RegisterRequest, TokenResponse
from academy.auth.service import InvalidCredentialsError, authenticate, register_profile
from academy.config import get_settings
from academy.database import get_session
from academy.db.models import Profile

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _token_response(profile: Profile) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(profile.id, profile.role),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Create a profile and return an access token."""
    profile = await register_profile(
        db,
        email=body.email,
        password=body.password,
        name=body.name,
        age=body.age,
        phone=body.phone,
        location=body.location,
    )
    await db.commit()
    return _token_response(profile)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange email + password for an access token."""
    try:
        profile = await authenticate(db, body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()
    return _token_response(profile)

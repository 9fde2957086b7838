"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.jwt import decode_access_token
from academy.auth.service import get_profile_by_id
from academy.database import get_session
from academy.db.models import Profile

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """Extract and verify the bearer JWT, return the Profile. Raises 401 on failure."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    profile = await get_profile_by_id(db, claims.profile_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Profile not found")
    return profile


async def require_admin(profile: Profile = Depends(get_current_user)) -> Profile:
    """Allow only admins through."""
    if not profile.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return profile


async def require_student(profile: Profile = Depends(get_current_user)) -> Profile:
    """Allow only students through."""
    if profile.role != "student":
        raise HTTPException(status_code=403, detail="Student access required")
    return profile

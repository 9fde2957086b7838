"""Request/response schemas for authentication and profiles."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Email registration request."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=128)
    age: int | None = Field(None, ge=3, le=120)
    phone: str | None = Field(None, max_length=32)
    location: str | None = Field(None, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(BaseModel):
    """Email + password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class ProfileResponse(BaseModel):
    """A profile as seen by its owner or an admin."""

    id: str
    email: str
    name: str
    role: str
    unique_id: str | None = None
    age: int | None = None
    phone: str | None = None
    location: str | None = None
    total_points: int = 0
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    """Fields a profile owner may change."""

    name: str | None = Field(None, min_length=1, max_length=128)
    age: int | None = Field(None, ge=3, le=120)
    phone: str | None = Field(None, max_length=32)
    location: str | None = Field(None, max_length=128)


class TokenResponse(BaseModel):
    """Token response returned after successful auth."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    profile: ProfileResponse

"""
Account business logic: registration, login and profile lookups.
"""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from academy.auth.password import hash_password, needs_rehash, validate_password_strength, verify_password
from academy.config import get_settings
from academy.db.models import Profile
from academy.errors import ConflictError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

UNIQUE_ID_ALPHABET = string.ascii_uppercase + string.digits
UNIQUE_ID_LENGTH = 8


class InvalidCredentialsError(ValueError):
    """Email/password pair did not match a profile."""


# ---------------------------------------------------------------------------
# Profile queries
# ---------------------------------------------------------------------------


async def get_profile_by_id(db: AsyncSession, profile_id: str) -> Profile | None:
    """Fetch a profile by ID."""
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_profile_by_email(db: AsyncSession, email: str) -> Profile | None:
    """Fetch a profile by email (case-insensitive)."""
    result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_student_by_unique_id(db: AsyncSession, unique_id: str) -> Profile | None:
    """Fetch a student by their public unique_id (case-insensitive)."""
    result = await db.execute(
        select(Profile).where(
            func.upper(Profile.unique_id) == unique_id.strip().upper(),
            Profile.role == "student",
        )
    )
    return result.scalar_one_or_none()


def generate_unique_id() -> str:
    """Random 8-character code (A-Z, 0-9) students share with admins."""
    return "".join(secrets.choice(UNIQUE_ID_ALPHABET) for _ in range(UNIQUE_ID_LENGTH))


async def _allocate_unique_id(db: AsyncSession) -> str:
    while True:
        candidate = generate_unique_id()
        taken = await db.execute(select(Profile.id).where(Profile.unique_id == candidate))
        if taken.scalar_one_or_none() is None:
            return candidate


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------


async def register_profile(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    age: int | None = None,
    phone: str | None = None,
    location: str | None = None,
) -> Profile:
    """
    Create a new profile.

    The role is ``admin`` when the email is listed in
    ``ACADEMY_BOOTSTRAP_ADMIN_EMAILS``, otherwise ``student``. Students get a
    unique_id.

    Raises:
        PasswordStrengthError: If the password is too weak.
        ConflictError: If the email is already registered.
    """
    validate_password_strength(password)

    email = email.lower().strip()
    if await get_profile_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ConflictError(msg)

    admin_emails = set(get_settings().bootstrap_admin_emails)
    role = "admin" if email in admin_emails else "student"

    profile = Profile(
        email=email,
        password_hash=hash_password(password),
        name=name.strip(),
        role=role,
        unique_id=await _allocate_unique_id(db) if role == "student" else None,
        age=age,
        phone=phone,
        location=location,
        total_points=0,
    )
    db.add(profile)
    try:
        await db.flush()
    except IntegrityError as e:
        # A concurrent registration took the email between the check and the insert.
        await db.rollback()
        msg = "Email already registered"
        raise ConflictError(msg) from e
    logger.info("profile_created", profile_id=profile.id, role=role)
    return profile


async def authenticate(db: AsyncSession, email: str, password: str) -> Profile:
    """
    Check an email + password pair.

    Raises:
        InvalidCredentialsError: If credentials are invalid.
    """
    profile = await get_profile_by_email(db, email)
    if profile is None or not verify_password(password, profile.password_hash):
        logger.info("login_failed", email=email)
        msg = "Invalid email or password"
        raise InvalidCredentialsError(msg)
    if needs_rehash(profile.password_hash):
        profile.password_hash = hash_password(password)
        await db.flush()
    logger.info("login_succeeded", profile_id=profile.id)
    return profile

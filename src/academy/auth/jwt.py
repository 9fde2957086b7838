"""
RS256 access tokens.

A token names the profile (``sub``) and its role so the admin and student
guards can reject the wrong kind of caller before the profile is loaded.
There are no refresh tokens: clients log in again once a token expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import NamedTuple

import jwt

from academy.config import get_settings

ACCESS_TOKEN_TYPE = "access"
ROLES = frozenset({"student", "admin"})


class _KeyPair(NamedTuple):
    private: str
    public: str


@dataclass(frozen=True)
class AccessClaims:
    profile_id: str
    role: str
    expires_at: datetime


@lru_cache(maxsize=1)
def _keys() -> _KeyPair:
    settings = get_settings()
    return _KeyPair(
        private=Path(settings.jwt_private_key_path).read_text(),
        public=Path(settings.jwt_public_key_path).read_text(),
    )


def reset_keys() -> None:
    """Forget the cached key pair so the next call rereads the key files."""
    _keys.cache_clear()


def create_access_token(profile_id: str, role: str) -> str:
    """Sign an access token for a profile."""
    if role not in ROLES:
        msg = f"Unknown role: {role}"
        raise ValueError(msg)

    settings = get_settings()
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": profile_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iss": settings.jwt_issuer,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(claims, _keys().private, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AccessClaims:
    """
    Check signature, issuer and expiry and return the token's claims.

    Raises:
        jwt.InvalidTokenError: For any token that is not a live access token
            issued by this service.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            _keys().public,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iat", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        msg = "Not an access token"
        raise jwt.InvalidTokenError(msg)
    if claims.get("role") not in ROLES:
        msg = "Token carries an unknown role"
        raise jwt.InvalidTokenError(msg)

    return AccessClaims(
        profile_id=str(claims["sub"]),
        role=claims["role"],
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )

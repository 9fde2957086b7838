"""Tests for RS256 access tokens."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest

from academy.auth.jwt import create_access_token, decode_access_token
from academy.config import get_settings


def _sign(claims: dict) -> str:
    settings = get_settings()
    return jwt.encode(claims, Path(settings.jwt_private_key_path).read_text(), algorithm="RS256")


def _claims(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "profile-1",
        "role": "student",
        "type": "access",
        "iss": get_settings().jwt_issuer,
        "iat": now,
        "exp": now + timedelta(minutes=5),
    }
    claims.update(overrides)
    return claims


def test_round_trip_claims() -> None:
    before = datetime.now(timezone.utc)
    claims = decode_access_token(create_access_token("profile-1", "admin"))
    assert claims.profile_id == "profile-1"
    assert claims.role == "admin"
    assert claims.expires_at > before


def test_unknown_role_not_signed() -> None:
    with pytest.raises(ValueError, match="Unknown role"):
        create_access_token("profile-1", "tutor")


def test_non_access_token_rejected() -> None:
    with pytest.raises(jwt.InvalidTokenError, match="Not an access token"):
        decode_access_token(_sign(_claims(type="refresh")))


def test_unknown_role_rejected() -> None:
    with pytest.raises(jwt.InvalidTokenError, match="unknown role"):
        decode_access_token(_sign(_claims(role="superuser")))


def test_foreign_issuer_rejected() -> None:
    with pytest.raises(jwt.InvalidIssuerError):
        decode_access_token(_sign(_claims(iss="someone-else")))


def test_expired_token_rejected() -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = _sign(_claims(iat=past, exp=past + timedelta(minutes=5)))
    with pytest.raises(jwt.InvalidTokenError, match="expired"):
        decode_access_token(token)


def test_tampered_token_rejected() -> None:
    token = create_access_token("profile-1", "student")
    header, payload, signature = token.split(".")
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(f"{header}.{payload}.{signature[::-1]}")

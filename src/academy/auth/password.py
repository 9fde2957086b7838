"""Password hashing (argon2id) and the account password rules."""

from __future__ import annotations

from collections.abc import Callable

import argon2
from argon2.exceptions import InvalidHashError, VerificationError

from academy.config import get_settings
from academy.errors import BadRequestError

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=64 * 1024,
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)

_CHARACTER_RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (str.isupper, "Password must contain at least one uppercase letter"),
    (str.islower, "Password must contain at least one lowercase letter"),
    (str.isdigit, "Password must contain at least one digit"),
)


class PasswordStrengthError(BadRequestError):
    """The password breaks one of the account password rules."""


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True on a match. A malformed stored hash counts as a mismatch."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """Whether ``password_hash`` was made with other argon2 parameters than ours."""
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """
    Raise PasswordStrengthError unless ``password`` is acceptable.

    Length bounds come from settings. Every character class listed in
    ``_CHARACTER_RULES`` has to appear at least once.
    """
    settings = get_settings()
    if not password.strip():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)
    if len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
        raise PasswordStrengthError(msg)
    if len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
        raise PasswordStrengthError(msg)
    for has_class, message in _CHARACTER_RULES:
        if not any(has_class(c) for c in password):
            raise PasswordStrengthError(message)

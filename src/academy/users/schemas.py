"""Request/response schemas for profile endpoints.

Re-exports from auth schemas for convenience.
"""

from __future__ import annotations

from academy.auth.schemas import ProfileResponse, ProfileUpdateRequest
from academy.subscriptions.schemas import BalanceResponse


class StudentDetailResponse(ProfileResponse):
    """A student profile with their global session balance."""

    subscription: BalanceResponse


__all__ = [
    "ProfileResponse",
    "ProfileUpdateRequest",
    "StudentDetailResponse",
]

"""Session-credit arithmetic for the global subscription.

Pure functions only: the service layer loads a :class:`Balance`, applies one
of these, and writes the result back to every enrollment.

Rules:
    - one month of plan = 4 sessions
    - adding n sessions raises both total and remaining by n
    - removing n sessions lowers both, each floored at 0
    - plan_duration_months = ceil(total / 4)
    - warning is raised at 2 or fewer remaining sessions
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from academy.errors import BadRequestError

SESSIONS_PER_MONTH = 4
LOW_BALANCE_WARNING = 2


def sessions_for_months(months: int) -> int:
    """Sessions granted by a plan of ``months`` months."""
    if months < 1:
        msg = "Plan duration must be at least one month"
        raise BadRequestError(msg)
    return months * SESSIONS_PER_MONTH


def months_for_sessions(total_sessions: int) -> int:
    """Plan length implied by a session total (rounded up)."""
    return math.ceil(max(0, total_sessions) / SESSIONS_PER_MONTH)


def _require_positive(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        msg = "Number of sessions must be a positive integer"
        raise BadRequestError(msg)


@dataclass(frozen=True)
class Balance:
    """A student's session balance."""

    total_sessions: int = 0
    remaining_sessions: int = 0

    @property
    def plan_duration_months(self) -> int:
        return months_for_sessions(self.total_sessions)

    @property
    def warning(self) -> bool:
        return self.remaining_sessions <= LOW_BALANCE_WARNING

    @property
    def used_sessions(self) -> int:
        return max(0, self.total_sessions - self.remaining_sessions)

    @property
    def usage_percent(self) -> float:
        if self.total_sessions <= 0:
            return 0.0
        return round(self.used_sessions / self.total_sessions * 100, 1)

    @property
    def status(self) -> str:
        """``expired`` at zero, ``low`` at the warning level, else ``active``."""
        if self.remaining_sessions <= 0:
            return "expired"
        if self.remaining_sessions <= LOW_BALANCE_WARNING:
            return "low"
        return "active"

    @classmethod
    def for_months(cls, months: int) -> Balance:
        sessions = sessions_for_months(months)
        return cls(total_sessions=sessions, remaining_sessions=sessions)


def add(balance: Balance, n: int) -> Balance:
    """Grant ``n`` extra sessions."""
    _require_positive(n)
    return Balance(
        total_sessions=balance.total_sessions + n,
        remaining_sessions=balance.remaining_sessions + n,
    )


def remove(balance: Balance, n: int) -> Balance:
    """Take away ``n`` sessions; neither counter goes below zero."""
    _require_positive(n)
    return Balance(
        total_sessions=max(0, balance.total_sessions - n),
        remaining_sessions=max(0, balance.remaining_sessions - n),
    )


def consume(balance: Balance) -> Balance:
    """Use up one attended session. Total is left untouched."""
    if balance.remaining_sessions <= 0:
        msg = "No remaining sessions"
        raise BadRequestError(msg)
    return Balance(
        total_sessions=balance.total_sessions,
        remaining_sessions=balance.remaining_sessions - 1,
    )

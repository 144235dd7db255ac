"""Domain models for attendance sessions."""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionStatus(str, Enum):
    """Derived validity of a session."""

    ACTIVE = "Active"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class Session:
    """Server-issued attendance session."""

    token: str
    title: str
    eligible_scope: str
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SessionView:
    """A session with its remaining time and status at a point in time."""

    session: Session
    remaining_seconds: int
    status: SessionStatus

    @property
    def token(self) -> str:
        return self.session.token


@dataclass(frozen=True)
class CheckInRecord:
    """A recorded check-in of a user for a session."""

    user_id: str
    session_token: str
    check_in_time: datetime | None


def classify(now: datetime, expires_at: datetime) -> SessionStatus:
    """Return ACTIVE iff now is strictly before expires_at."""
    if now < expires_at:
        return SessionStatus.ACTIVE
    return SessionStatus.EXPIRED


def remaining_seconds(now: datetime, expires_at: datetime) -> int:
    """Whole seconds left until expiry, never negative."""
    return max(0, math.floor((expires_at - now).total_seconds()))


def view_at(session: Session, now: datetime) -> SessionView:
    """Compute the view of a session at the given instant."""
    return SessionView(
        session=session,
        remaining_seconds=remaining_seconds(now, session.expires_at),
        status=classify(now, session.expires_at),
    )


def display_order(views: Iterable[SessionView]) -> list[SessionView]:
    """Active sessions first, then longer remaining time first."""
    return sorted(
        views,
        key=lambda view: (
            view.status is not SessionStatus.ACTIVE,
            -view.remaining_seconds,
        ),
    )


def format_remaining(seconds: int) -> str:
    """Format a countdown as MM:SS."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{secs:02d}"

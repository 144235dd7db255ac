"""Client-side registry of attendance sessions."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from qr_attendance.domain.errors import InputValidationError
from qr_attendance.domain.payloads import IssuedSession, SessionListing
from qr_attendance.domain.sessions import (
    CheckInRecord,
    Session,
    SessionStatus,
    SessionView,
    display_order,
    view_at,
)

ALL_SECTIONS = "All"

_logger = logging.getLogger(__name__)


class SessionCollaborator(Protocol):
    """Server endpoints used by the registry."""

    async def issue_session(
        self, title: str, scope: str, duration_minutes: int
    ) -> IssuedSession:
        """Create a session and return its token and expiry."""

    async def list_sessions(self) -> list[SessionListing]:
        """Return all sessions."""

    async def list_check_ins(self, token: str) -> list[CheckInRecord]:
        """Return check-ins for a session."""


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def resolve_scope(sections: Sequence[str]) -> str:
    """Collapse selected sections into the scope string sent to the server."""
    cleaned = [section.strip() for section in sections if section.strip()]
    if ALL_SECTIONS in cleaned:
        return ALL_SECTIONS
    return ",".join(cleaned)


@dataclass
class SessionRegistry:
    """Holds the sessions shown to an instructor, most recent first.

    Status is never stored: every read recomputes it from the clock. A token
    that has been seen expired stays expired, so a refresh computed against a
    skewed server clock cannot bring it back.
    """

    client: SessionCollaborator
    clock: Callable[[], datetime] = utc_now
    _sessions: list[Session] = field(default_factory=list, init=False)
    _views: list[SessionView] = field(default_factory=list, init=False)
    _expired_tokens: set[str] = field(default_factory=set, init=False)

    async def issue(
        self, title: str, sections: Sequence[str], duration_minutes: int
    ) -> SessionView:
        """Create a session and put it at the top of the registry."""
        scope = resolve_scope(sections)
        if not title.strip() or not scope:
            raise InputValidationError(
                "Please fill the session title and select a class/section."
            )
        if duration_minutes <= 0:
            raise InputValidationError("Session duration must be positive.")

        issued = await self.client.issue_session(
            title.strip(), scope, duration_minutes
        )
        now = self.clock()
        session = Session(
            token=issued.token,
            title=title.strip(),
            eligible_scope=scope,
            created_at=now,
            expires_at=_issued_expiry(issued, now, duration_minutes),
        )
        self._sessions.insert(0, session)
        _logger.info("Issued session %s for scope %s", session.token, scope)
        self.tick()
        return self._view(session, now)

    async def refresh(self) -> list[SessionView]:
        """Replace the local sessions with the server's list."""
        listings = await self.client.list_sessions()
        now = self.clock()
        self._sessions = [
            Session(
                token=listing.token,
                title=listing.title,
                eligible_scope=listing.scope,
                created_at=listing.created_at or now,
                expires_at=listing.expires_at,
            )
            for listing in listings
        ]
        self._expired_tokens &= {session.token for session in self._sessions}
        return self.tick()

    def tick(self) -> list[SessionView]:
        """Recompute remaining time and status from the clock alone."""
        now = self.clock()
        self._views = [self._view(session, now) for session in self._sessions]
        return self.sessions()

    def sessions(self) -> list[SessionView]:
        """Return sessions in display order."""
        return display_order(self._views)

    async def check_ins(self, token: str) -> list[CheckInRecord]:
        """Return the check-ins recorded for a session."""
        return await self.client.list_check_ins(token)

    async def run_ticker(
        self, stop: asyncio.Event, interval_seconds: float = 1.0
    ) -> None:
        """Tick until stop is set."""
        while not stop.is_set():
            self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except TimeoutError:
                continue

    def _view(self, session: Session, now: datetime) -> SessionView:
        view = view_at(session, now)
        if view.status is SessionStatus.EXPIRED:
            self._expired_tokens.add(session.token)
        elif session.token in self._expired_tokens:
            view = SessionView(
                session=session, remaining_seconds=0, status=SessionStatus.EXPIRED
            )
        return view


def _issued_expiry(
    issued: IssuedSession, now: datetime, requested_minutes: int
) -> datetime:
    """Prefer the server's expiry, else anchor the returned duration to now."""
    if issued.expires_at is not None:
        return issued.expires_at
    minutes = issued.expires_in_minutes or requested_minutes
    return now + timedelta(minutes=minutes)

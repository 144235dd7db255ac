"""Server-side attendance sessions and check-ins."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import Protocol

from qr_attendance.domain.payloads import (
    CheckInLogEntry,
    CheckInRecordPayload,
    IssuedSession,
    SessionListing,
)
from qr_attendance.domain.sessions import (
    CheckInRecord,
    Session,
    SessionStatus,
    classify,
)

_logger = logging.getLogger(__name__)


class AttendanceRepository(Protocol):
    """Persistence interface for sessions and check-ins."""

    def create_session(self, session: Session, created_by: str) -> None:
        """Store a new session."""

    def get_session(self, token: str) -> Session | None:
        """Return a session by token, if present."""

    def list_sessions(self) -> list[Session]:
        """Return all sessions, newest first."""

    def add_check_in(self, token: str, user_id: str, checked_in_at: datetime) -> bool:
        """Record a check-in. Returns False if the user already checked in."""

    def list_check_ins(self, token: str) -> list[CheckInRecord]:
        """Return the check-ins for a session."""


@dataclass(frozen=True)
class CheckInDecision:
    """Result of a check-in request."""

    status: HTTPStatus
    message: str


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AttendanceService:
    """Issues session tokens and records check-ins against them."""

    repository: AttendanceRepository
    default_duration_minutes: int = 5
    clock: Callable[[], datetime] = _utc_now

    def generate_token(
        self,
        admin_id: str,
        section: str,
        session_name: str,
        duration_minutes: int | None = None,
    ) -> IssuedSession:
        """Create a session and return its token."""
        minutes = duration_minutes or self.default_duration_minutes
        now = self.clock()
        session = Session(
            token=str(uuid.uuid4()),
            title=session_name,
            eligible_scope=section,
            created_at=now,
            expires_at=now + timedelta(minutes=minutes),
        )
        self.repository.create_session(session, created_by=admin_id)
        _logger.info("Session %s created by %s", session.token, admin_id)
        return IssuedSession(
            token=session.token,
            expires_in_minutes=minutes,
            expires_at=session.expires_at,
        )

    def list_sessions(self) -> list[SessionListing]:
        """Return all sessions in wire form."""
        return [
            SessionListing(
                token=session.token,
                title=session.title,
                scope=session.eligible_scope,
                created_at=session.created_at,
                expires_at=session.expires_at,
            )
            for session in self.repository.list_sessions()
        ]

    def check_in(self, token: str, user_id: str) -> CheckInDecision:
        """Record a check-in if the token is known and still valid."""
        session = self.repository.get_session(token)
        if session is None:
            return CheckInDecision(
                HTTPStatus.NOT_FOUND, "Invalid or unknown session token."
            )
        now = self.clock()
        if classify(now, session.expires_at) is SessionStatus.EXPIRED:
            return CheckInDecision(HTTPStatus.GONE, "Session has expired.")
        if not self.repository.add_check_in(token, user_id, now):
            return CheckInDecision(HTTPStatus.CONFLICT, "You have already checked in.")
        _logger.info("User %s checked in to %s", user_id, token)
        return CheckInDecision(
            HTTPStatus.OK, f"Attendance recorded successfully for {session.title}"
        )

    def check_in_records(self, token: str) -> list[CheckInRecordPayload]:
        """Return the check-ins for one session."""
        return [
            CheckInRecordPayload(
                user_id=record.user_id, check_in_time=record.check_in_time
            )
            for record in self.repository.list_check_ins(token)
        ]

    def all_check_ins(self) -> list[CheckInLogEntry]:
        """Return every check-in, flattened with its session name."""
        entries = []
        for session in self.repository.list_sessions():
            for record in self.repository.list_check_ins(session.token):
                entries.append(
                    CheckInLogEntry(
                        session_token=session.token,
                        session_name=session.title,
                        user_id=record.user_id,
                        check_in_time=record.check_in_time,
                    )
                )
        return entries

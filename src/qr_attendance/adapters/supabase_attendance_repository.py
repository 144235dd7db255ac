"""Supabase-backed attendance repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from qr_attendance.domain.sessions import CheckInRecord, Session
from qr_attendance.services.attendance import AttendanceRepository

_SESSION_COLUMNS = "session_token, session_name, section, created_at, expires_at"


@dataclass
class SupabaseAttendanceRepository(AttendanceRepository):
    """Supabase implementation for sessions and check-ins."""

    client: Client

    def create_session(self, session: Session, created_by: str) -> None:
        """Insert a session row."""
        response = (
            self.client.table("attendance_sessions")
            .insert(
                {
                    "session_token": session.token,
                    "session_name": session.title,
                    "section": session.eligible_scope,
                    "created_by": created_by,
                    "created_at": session.created_at.isoformat(),
                    "expires_at": session.expires_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")

    def get_session(self, token: str) -> Session | None:
        """Return a session by token, if present."""
        response = (
            self.client.table("attendance_sessions")
            .select(_SESSION_COLUMNS)
            .eq("session_token", token)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _session_from_row(response.data[0])

    def list_sessions(self) -> list[Session]:
        """Return all sessions, newest first."""
        response = (
            self.client.table("attendance_sessions")
            .select(_SESSION_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        return [_session_from_row(row) for row in response.data or []]

    def add_check_in(self, token: str, user_id: str, checked_in_at: datetime) -> bool:
        """Insert a check-in unless the user already has one for the session."""
        existing = (
            self.client.table("check_ins")
            .select("id")
            .eq("session_token", token)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if existing.data:
            return False
        response = (
            self.client.table("check_ins")
            .insert(
                {
                    "session_token": token,
                    "user_id": user_id,
                    "check_in_time": checked_in_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to record check-in")
        return True

    def list_check_ins(self, token: str) -> list[CheckInRecord]:
        """Return the check-ins for a session."""
        response = (
            self.client.table("check_ins")
            .select("user_id, session_token, check_in_time")
            .eq("session_token", token)
            .order("check_in_time")
            .execute()
        )
        return [
            CheckInRecord(
                user_id=row["user_id"],
                session_token=row["session_token"],
                check_in_time=(
                    _parse_time(row["check_in_time"])
                    if row.get("check_in_time")
                    else None
                ),
            )
            for row in response.data or []
        ]


def _session_from_row(row: dict[str, object]) -> Session:
    return Session(
        token=str(row["session_token"]),
        title=str(row["session_name"]),
        eligible_scope=str(row["section"]),
        created_at=_parse_time(row["created_at"]),
        expires_at=_parse_time(row["expires_at"]),
    )


def _parse_time(value: object) -> datetime:
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed

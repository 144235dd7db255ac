"""Domain models for the check-in flow."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from qr_attendance.domain.errors import AttendanceError


class CheckInState(str, Enum):
    """Lifecycle of a single check-in attempt."""

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    SUBMITTING = "SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    REJECTED = "REJECTED"
    EXPIRED_AUTH = "EXPIRED_AUTH"


@dataclass(frozen=True)
class Identity:
    """The signed-in user attached to outbound requests."""

    user_id: str
    token: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class PendingSubmission:
    """A check-in that has been sent and not yet settled."""

    token: str
    submitted_at: datetime


@dataclass(frozen=True)
class CheckInOutcome:
    """Settled result of a check-in attempt."""

    state: CheckInState
    message: str
    error: AttendanceError | None = None

    @property
    def requires_login(self) -> bool:
        return self.state is CheckInState.EXPIRED_AUTH


@dataclass(frozen=True)
class SessionHistoryEntry:
    """One line of a subject's attendance history."""

    date: date
    status: str
    topic: str


@dataclass(frozen=True)
class SubjectAttendance:
    """Locally cached attendance summary for a subject."""

    subject: str
    attended: int
    total: int
    percentage: int
    instructor: str | None = None
    sessions: list[SessionHistoryEntry] = field(default_factory=list)

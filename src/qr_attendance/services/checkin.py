"""Check-in coordinator turning decoded symbols into submissions."""

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from http import HTTPStatus
from typing import Protocol

from qr_attendance.domain.checkin import (
    CheckInOutcome,
    CheckInState,
    Identity,
    PendingSubmission,
    SessionHistoryEntry,
    SubjectAttendance,
)
from qr_attendance.domain.decoding import DecodeEvent, parse_decoded_text
from qr_attendance.domain.errors import (
    AttendanceError,
    AuthExpiredError,
    InputValidationError,
    ServerError,
)
from qr_attendance.domain.payloads import CheckInReceipt, SessionSummary

_IN_FLIGHT = {CheckInState.VALIDATING, CheckInState.SUBMITTING}
_LOCAL_HANDLE_PREFIX = "blob:"
_INVALID_SCAN = "Invalid QR code detected. Please scan a valid attendance QR."
_RELOGIN = "Session expired. Please log in again."

_logger = logging.getLogger(__name__)


class CheckInClient(Protocol):
    """Server endpoint for check-in submissions."""

    async def submit_check_in(self, token: str, identity: Identity) -> CheckInReceipt:
        """Submit a check-in and return the server's receipt."""


class IdentityStore(Protocol):
    """Storage for the signed-in user."""

    def load(self) -> Identity | None:
        """Return the current identity, if any."""

    def clear(self) -> None:
        """Forget the current identity."""


class Scanner(Protocol):
    """Anything holding a camera that should stop after a submission."""

    async def close(self) -> None:
        """Release the scanner."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CheckInCoordinator:
    """Validates scans and submits at most one check-in at a time."""

    client: CheckInClient
    identity_store: IdentityStore
    summary: list[SubjectAttendance] = field(default_factory=list)
    min_token_length: int = 10
    scanner: Scanner | None = None
    clock: Callable[[], datetime] = _utc_now
    state: CheckInState = field(default=CheckInState.IDLE, init=False)
    pending: PendingSubmission | None = field(default=None, init=False)
    _tasks: "set[asyncio.Task[CheckInOutcome | None]]" = field(
        default_factory=set, init=False, repr=False
    )

    def on_decode(self, event: DecodeEvent) -> None:
        """Decoder callback: handle the scan without blocking the scan loop."""
        task = asyncio.create_task(self.handle_scan(event.text))
        self._tasks.add(task)
        task.add_done_callback(self._collect)

    async def handle_scan(self, text: str) -> CheckInOutcome | None:
        """Validate and submit a decoded symbol.

        Returns None when a submission is already in flight.
        """
        if self.state in _IN_FLIGHT:
            _logger.info("Scan ignored: a check-in is already in flight")
            return None

        self.state = CheckInState.VALIDATING
        try:
            token = self.validate(text)
        except InputValidationError as exc:
            return self._settle(CheckInState.REJECTED, str(exc), exc)

        identity = self.identity_store.load()
        if identity is None:
            return self._expire_identity(_RELOGIN)

        self.state = CheckInState.SUBMITTING
        self.pending = PendingSubmission(token=token, submitted_at=self.clock())
        try:
            receipt = await self.client.submit_check_in(token, identity)
        except ServerError as exc:
            if exc.status == HTTPStatus.FORBIDDEN:
                outcome = self._expire_identity(exc.message or _RELOGIN)
            else:
                outcome = self._settle(
                    CheckInState.REJECTED,
                    exc.message or "Failed to record attendance",
                    exc,
                )
        except AttendanceError as exc:
            outcome = self._settle(
                CheckInState.REJECTED,
                "Failed to record attendance. Please try again.",
                exc,
            )
        else:
            if receipt.session is not None:
                self._record_present(receipt.session)
            outcome = self._settle(
                CheckInState.SUCCEEDED,
                receipt.message or "Attendance recorded successfully!",
            )
        finally:
            self.pending = None
            if self.state is CheckInState.SUBMITTING:
                self.state = CheckInState.REJECTED

        if self.scanner is not None:
            await self.scanner.close()
        return outcome

    def validate(self, text: str) -> str:
        """Reject obviously invalid symbols and return the token."""
        if not text or not text.strip():
            raise InputValidationError(_INVALID_SCAN)
        if text.startswith(_LOCAL_HANDLE_PREFIX):
            raise InputValidationError(_INVALID_SCAN)
        if len(text) < self.min_token_length:
            raise InputValidationError(_INVALID_SCAN)
        token = parse_decoded_text(text).token
        if not token.strip():
            raise InputValidationError(_INVALID_SCAN)
        return token

    def _collect(self, task: "asyncio.Task[CheckInOutcome | None]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            _logger.error("Check-in task failed", exc_info=task.exception())

    def _settle(
        self,
        state: CheckInState,
        message: str,
        error: AttendanceError | None = None,
    ) -> CheckInOutcome:
        self.state = state
        if error is None:
            _logger.info("Check-in %s: %s", state.value, message)
        else:
            _logger.warning("Check-in %s: %s", state.value, message)
        return CheckInOutcome(state=state, message=message, error=error)

    def _expire_identity(self, message: str) -> CheckInOutcome:
        self.identity_store.clear()
        return self._settle(
            CheckInState.EXPIRED_AUTH, message, AuthExpiredError(message)
        )

    def _record_present(self, session: SessionSummary) -> None:
        today = self.clock().date()
        self.summary = [
            record_present(subject, session.topic, today)
            if subject.subject == session.subject
            else subject
            for subject in self.summary
        ]


def record_present(
    subject: SubjectAttendance, topic: str | None, day: date
) -> SubjectAttendance:
    """Project a successful check-in onto a cached subject summary."""
    attended = subject.attended + 1
    entry = SessionHistoryEntry(
        date=day, status="Present", topic=topic or "Current Session"
    )
    return replace(
        subject,
        attended=attended,
        percentage=_percentage(attended, subject.total),
        sessions=[entry, *subject.sessions],
    )


def _percentage(attended: int, total: int) -> int:
    if total <= 0:
        return 0
    return math.floor(attended / total * 100 + 0.5)

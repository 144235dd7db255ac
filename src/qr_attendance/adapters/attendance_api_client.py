"""Attendance API client built on the request executor."""

import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import TypeVar

from pydantic import ValidationError

from qr_attendance.adapters.request_executor import HttpxRequestExecutor
from qr_attendance.domain.checkin import Identity
from qr_attendance.domain.errors import ServerError
from qr_attendance.domain.payloads import (
    CheckInLogEntry,
    CheckInReceipt,
    CheckInRecordPayload,
    IssuedSession,
    SessionListing,
    WireModel,
)
from qr_attendance.domain.sessions import CheckInRecord

_Model = TypeVar("_Model", bound=WireModel)


@dataclass
class HttpxAttendanceClient:
    """Client for the session, check-in and attendance endpoints."""

    executor: HttpxRequestExecutor
    admin_user_id: str
    user_id_header: str = "X-User-Id"

    async def issue_session(
        self, title: str, scope: str, duration_minutes: int
    ) -> IssuedSession:
        """Create a session on the server. Attempted once."""
        payload = await self.executor.execute(
            "/api/admin/generate-token",
            method="POST",
            headers=self._admin_headers(),
            params={
                "section": scope,
                "sessionName": title,
                "durationMinutes": duration_minutes,
            },
        )
        return _parse(IssuedSession, _as_json(payload))

    async def list_sessions(self) -> list[SessionListing]:
        """Return all sessions known to the server."""
        payload = await self.executor.execute(
            "/api/admin/sessions", headers=self._admin_headers()
        )
        return [_parse(SessionListing, row) for row in _as_list(payload)]

    async def list_check_ins(self, token: str) -> list[CheckInRecord]:
        """Return the check-ins recorded for a session token."""
        payload = await self.executor.execute(
            f"/api/admin/attendance/{token}", headers=self._admin_headers()
        )
        records = []
        for row in _as_list(payload):
            record = _parse(CheckInRecordPayload, row)
            records.append(
                CheckInRecord(
                    user_id=record.user_id,
                    session_token=token,
                    check_in_time=record.check_in_time,
                )
            )
        return records

    async def list_all_check_ins(self) -> list[CheckInLogEntry]:
        """Return every check-in across all sessions."""
        payload = await self.executor.execute(
            "/api/admin/attendance", headers=self._admin_headers()
        )
        return [_parse(CheckInLogEntry, row) for row in _as_list(payload)]

    async def submit_check_in(self, token: str, identity: Identity) -> CheckInReceipt:
        """Submit a check-in for the given identity. Attempted once."""
        headers = {self.user_id_header: identity.user_id}
        if identity.token:
            headers["Authorization"] = f"Bearer {identity.token}"
        payload = await self.executor.execute(
            "/api/attendance/check-in",
            method="POST",
            body={"token": token},
            headers=headers,
        )
        if isinstance(payload, dict):
            return _parse(CheckInReceipt, payload)
        return CheckInReceipt(message="Attendance recorded successfully!")

    def _admin_headers(self) -> dict[str, str]:
        return {self.user_id_header: self.admin_user_id}


def _as_json(payload: object) -> object:
    """Parse text payloads that carry JSON without the right content type."""
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except ValueError:
            return {}
    return payload


def _as_list(payload: object) -> list[object]:
    parsed = _as_json(payload)
    return parsed if isinstance(parsed, list) else []


def _parse(model: type[_Model], data: object) -> _Model:
    """Validate a response body, reporting malformed data as a server error."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ServerError(
            HTTPStatus.BAD_GATEWAY, f"Malformed {model.__name__} response"
        ) from exc

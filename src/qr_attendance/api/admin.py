"""Admin API endpoints for sessions and attendance records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, Request

if TYPE_CHECKING:
    from qr_attendance.containers import AppContainer

router = APIRouter(prefix="/api/admin", tags=["admin"])

_DEFAULT_ADMIN = "admin"


def _admin_id(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return request.headers.get(container.settings.user_id_header) or _DEFAULT_ADMIN


@router.get("/sessions")
async def list_sessions(request: Request) -> list[dict[str, object]]:
    """Return every session with its expiry."""
    container: AppContainer = request.app.state.container
    return [
        session.to_wire() for session in container.attendance_service.list_sessions()
    ]


@router.post("/generate-token")
async def generate_token(
    request: Request,
    section: str,
    session_name: str = Query(alias="sessionName"),
    duration_minutes: int | None = Query(default=None, alias="durationMinutes", gt=0),
) -> dict[str, object]:
    """Create a session and return its token."""
    container: AppContainer = request.app.state.container
    issued = container.attendance_service.generate_token(
        admin_id=_admin_id(request),
        section=section,
        session_name=session_name,
        duration_minutes=duration_minutes,
    )
    return issued.to_wire()


@router.get("/attendance/{token}")
async def session_attendance(token: str, request: Request) -> list[dict[str, object]]:
    """Return who has checked in to a session."""
    container: AppContainer = request.app.state.container
    return [
        record.to_wire()
        for record in container.attendance_service.check_in_records(token)
    ]


@router.get("/attendance")
async def all_attendance(request: Request) -> list[dict[str, object]]:
    """Return all check-ins across sessions."""
    container: AppContainer = request.app.state.container
    return [entry.to_wire() for entry in container.attendance_service.all_check_ins()]

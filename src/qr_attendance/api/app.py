"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from qr_attendance.api.admin import router as admin_router
from qr_attendance.app_logging import configure_logging
from qr_attendance.containers import AppContainer
from qr_attendance.domain.payloads import CheckInRequest


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/attendance/check-in")
    async def check_in(payload: CheckInRequest, request: Request) -> JSONResponse:
        """Record the caller's attendance for a session token."""
        state_container: AppContainer = request.app.state.container
        user_id = request.headers.get(state_container.settings.user_id_header)
        if not user_id:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"message": "User must be logged in to check attendance."},
            )
        decision = state_container.attendance_service.check_in(payload.token, user_id)
        if decision.status >= status.HTTP_400_BAD_REQUEST:
            logger.info("Check-in rejected for %s: %s", user_id, decision.message)
        return JSONResponse(
            status_code=decision.status, content={"message": decision.message}
        )

    return app

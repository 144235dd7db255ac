"""End-to-end check-in through the HTTP client."""

import asyncio

import httpx

from qr_attendance.adapters.attendance_api_client import HttpxAttendanceClient
from qr_attendance.adapters.request_executor import HttpxRequestExecutor
from qr_attendance.api.app import create_app
from qr_attendance.containers import AppContainer
from qr_attendance.domain.checkin import CheckInOutcome, CheckInState, Identity
from qr_attendance.services.checkin import CheckInCoordinator
from tests.conftest import FakeClock, InMemoryIdentityStore

TOKEN = "3f0c9a7e-1111-2222-3333-444455556666"


async def _no_sleep(_seconds: float) -> None:
    return None


def _coordinator(
    transport: httpx.AsyncBaseTransport, store: InMemoryIdentityStore
) -> CheckInCoordinator:
    executor = HttpxRequestExecutor(
        http_client=httpx.AsyncClient(
            base_url="http://attendance.test", transport=transport
        ),
        sleep=_no_sleep,
    )
    client = HttpxAttendanceClient(executor=executor, admin_user_id="admin_user_001")
    return CheckInCoordinator(client=client, identity_store=store)


def test_acknowledgement_without_message_succeeds() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok"})

    store = InMemoryIdentityStore(Identity("student-7"))
    coordinator = _coordinator(httpx.MockTransport(handler), store)

    outcome = asyncio.run(coordinator.handle_scan(TOKEN))

    assert outcome is not None
    assert outcome.state is CheckInState.SUCCEEDED
    assert outcome.message == "Attendance recorded successfully!"


def test_unreadable_response_is_rejected_and_next_scan_submits() -> None:
    bodies = [b"{broken", b'{"message": "Attendance recorded"}']
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(
            200,
            content=bodies[len(calls) - 1],
            headers={"content-type": "application/json"},
        )

    store = InMemoryIdentityStore(Identity("student-7"))
    coordinator = _coordinator(httpx.MockTransport(handler), store)

    async def scenario() -> tuple[CheckInOutcome | None, CheckInOutcome | None]:
        first = await coordinator.handle_scan(TOKEN)
        second = await coordinator.handle_scan(TOKEN)
        return first, second

    first, second = asyncio.run(scenario())

    assert first is not None
    assert first.state is CheckInState.REJECTED
    assert coordinator.pending is None
    assert second is not None
    assert second.state is CheckInState.SUCCEEDED
    assert calls == ["POST", "POST"]


def test_expired_session_is_rejected_without_logout(
    container: AppContainer, clock: FakeClock
) -> None:
    container.attendance_service.clock = clock
    issued = container.attendance_service.generate_token(
        "admin_user_001", "All", "Lecture 1", duration_minutes=1
    )
    clock.advance(120)
    store = InMemoryIdentityStore(Identity("student-7"))
    coordinator = _coordinator(
        httpx.ASGITransport(app=create_app(container)), store
    )

    outcome = asyncio.run(coordinator.handle_scan(issued.token))

    assert outcome is not None
    assert outcome.state is CheckInState.REJECTED
    assert outcome.message == "Session has expired."
    assert store.clears == 0
    assert store.identity == Identity("student-7")


def test_live_session_is_recorded_through_the_api(
    container: AppContainer, clock: FakeClock
) -> None:
    container.attendance_service.clock = clock
    issued = container.attendance_service.generate_token(
        "admin_user_001", "All", "Lecture 1"
    )
    store = InMemoryIdentityStore(Identity("student-7"))
    coordinator = _coordinator(
        httpx.ASGITransport(app=create_app(container)), store
    )

    outcome = asyncio.run(coordinator.handle_scan(issued.token))

    assert outcome is not None
    assert outcome.state is CheckInState.SUCCEEDED
    assert outcome.message == "Attendance recorded successfully for Lecture 1"

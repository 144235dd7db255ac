"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import numpy as np
import pytest

from qr_attendance.config import Settings
from qr_attendance.containers import AppContainer, build_container
from qr_attendance.domain.checkin import Identity
from qr_attendance.domain.decoding import CaptureDevice
from qr_attendance.domain.errors import DeviceError
from qr_attendance.domain.payloads import (
    CheckInReceipt,
    IssuedSession,
    SessionListing,
)
from qr_attendance.domain.sessions import CheckInRecord, Session
from qr_attendance.services.attendance import AttendanceRepository

T0 = datetime(2024, 9, 2, 9, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryAttendanceRepository(AttendanceRepository):
    """In-memory sessions and check-ins for tests."""

    sessions: dict[str, Session] = field(default_factory=dict)
    creators: dict[str, str] = field(default_factory=dict)
    check_ins: list[CheckInRecord] = field(default_factory=list)

    def create_session(self, session: Session, created_by: str) -> None:
        self.sessions[session.token] = session
        self.creators[session.token] = created_by

    def get_session(self, token: str) -> Session | None:
        return self.sessions.get(token)

    def list_sessions(self) -> list[Session]:
        return sorted(
            self.sessions.values(), key=lambda item: item.created_at, reverse=True
        )

    def add_check_in(self, token: str, user_id: str, checked_in_at: datetime) -> bool:
        for record in self.check_ins:
            if record.session_token == token and record.user_id == user_id:
                return False
        self.check_ins.append(CheckInRecord(user_id, token, checked_in_at))
        return True

    def list_check_ins(self, token: str) -> list[CheckInRecord]:
        return [record for record in self.check_ins if record.session_token == token]


@dataclass
class InMemoryIdentityStore:
    """Identity store that records clears."""

    identity: Identity | None = None
    clears: int = 0

    def load(self) -> Identity | None:
        return self.identity

    def save(self, identity: Identity) -> None:
        self.identity = identity

    def clear(self) -> None:
        self.identity = None
        self.clears += 1


@dataclass
class FakeSessionClient:
    """Session endpoints returning canned data."""

    issued: IssuedSession | None = None
    listings: list[SessionListing] = field(default_factory=list)
    records: dict[str, list[CheckInRecord]] = field(default_factory=dict)
    issue_calls: list[tuple[str, str, int]] = field(default_factory=list)

    async def issue_session(
        self, title: str, scope: str, duration_minutes: int
    ) -> IssuedSession:
        self.issue_calls.append((title, scope, duration_minutes))
        if self.issued is not None:
            return self.issued
        return IssuedSession(
            token=f"token-{len(self.issue_calls):04d}",
            expires_in_minutes=duration_minutes,
        )

    async def list_sessions(self) -> list[SessionListing]:
        return list(self.listings)

    async def list_check_ins(self, token: str) -> list[CheckInRecord]:
        return self.records.get(token, [])


@dataclass
class FakeCheckInClient:
    """Check-in endpoint that returns a receipt or raises a preset error."""

    receipt: CheckInReceipt = field(
        default_factory=lambda: CheckInReceipt(message="Attendance recorded")
    )
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: list[tuple[str, Identity]] = field(default_factory=list)

    async def submit_check_in(self, token: str, identity: Identity) -> CheckInReceipt:
        self.calls.append((token, identity))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.receipt


@dataclass
class FakeScanner:
    closes: int = 0

    async def close(self) -> None:
        self.closes += 1


@dataclass
class FakeCaptureHandle:
    """Camera handle producing blank frames."""

    device_id: int | None
    releases: int = 0
    read_error: Exception | None = None

    def read_frame(self) -> np.ndarray | None:
        if self.releases:
            return None
        if self.read_error is not None:
            raise self.read_error
        return np.zeros((8, 8, 3), dtype=np.uint8)

    def release(self) -> None:
        self.releases += 1


@dataclass
class FakeCaptureBackend:
    """Camera backend with scripted permission and device failures."""

    devices: list[CaptureDevice] = field(default_factory=list)
    deny_permission: bool = False
    fail_acquire: bool = False
    read_error: Exception | None = None
    permission_requests: int = 0
    handles: list[FakeCaptureHandle] = field(default_factory=list)

    async def request_permission(self) -> None:
        self.permission_requests += 1
        if self.deny_permission:
            raise DeviceError("Camera access denied.")

    async def list_devices(self) -> list[CaptureDevice]:
        return list(self.devices)

    async def acquire(self, device_id: int | None) -> FakeCaptureHandle:
        if self.fail_acquire:
            raise DeviceError("Failed to start camera scanner.")
        handle = FakeCaptureHandle(device_id=device_id, read_error=self.read_error)
        self.handles.append(handle)
        return handle

    @property
    def open_handles(self) -> list[FakeCaptureHandle]:
        return [handle for handle in self.handles if not handle.releases]


@dataclass
class FakeSymbolReader:
    """Reader returning preset texts."""

    frame_text: str | None = None
    image_text: str | None = None
    images: list[bytes] = field(default_factory=list)

    def decode_frame(
        self, frame: np.ndarray, region_size: int | None = None
    ) -> str | None:
        return self.frame_text

    def decode_image(self, image_bytes: bytes) -> str | None:
        self.images.append(image_bytes)
        return self.image_text


@dataclass
class FakeRasterizer:
    error: Exception | None = None
    calls: list[tuple[bytes, int]] = field(default_factory=list)

    def rasterize(self, svg_bytes: bytes, default_size: int) -> bytes:
        self.calls.append((svg_bytes, default_size))
        if self.error is not None:
            raise self.error
        return b"PNG:" + svg_bytes


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="http://attendance.test",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        identity_file="identity.json",
    )


@pytest.fixture
def repository() -> InMemoryAttendanceRepository:
    return InMemoryAttendanceRepository()


@pytest.fixture
def container(
    settings: Settings, repository: InMemoryAttendanceRepository
) -> AppContainer:
    return build_container(settings, repository=repository)

"""Tests for container wiring."""

import asyncio
from pathlib import Path

import httpx
import pytest

from qr_attendance.adapters.request_executor import HttpxRequestExecutor
from qr_attendance.config import Settings
from qr_attendance.containers import build_client_container, build_container
from tests.conftest import FakeCaptureBackend, FakeSymbolReader


def test_build_container_creates_service(settings, repository) -> None:
    container = build_container(settings, repository=repository)

    assert container.attendance_service.repository is repository
    assert container.attendance_service.default_duration_minutes == 5
    asyncio.run(container.close_resources())


def test_build_container_requires_supabase() -> None:
    with pytest.raises(RuntimeError):
        build_container(Settings(supabase_url=None, supabase_service_key=None))


def test_build_client_container_wires_scanner(settings, tmp_path: Path) -> None:
    executor = HttpxRequestExecutor(
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda _request: httpx.Response(200))
        )
    )
    container = build_client_container(
        settings,
        executor=executor,
        capture_backend=FakeCaptureBackend(),
        symbol_reader=FakeSymbolReader(),
        identity_path=tmp_path / "identity.json",
    )

    assert container.decoder.on_decode == container.coordinator.on_decode
    assert container.coordinator.scanner is container.decoder
    assert container.registry.client is container.attendance_client
    assert container.identity_store.path == tmp_path / "identity.json"
    asyncio.run(container.close_resources())

"""Dependency container wiring for the server and the scanning client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from qr_attendance.adapters.attendance_api_client import HttpxAttendanceClient
from qr_attendance.adapters.cairosvg_rasterizer import CairoSvgRasterizer
from qr_attendance.adapters.file_identity_store import FileIdentityStore
from qr_attendance.adapters.opencv_capture import OpenCvCaptureBackend
from qr_attendance.adapters.opencv_qr_reader import OpenCvSymbolReader
from qr_attendance.adapters.qr_render_client import HttpxQrRenderClient
from qr_attendance.adapters.qrcode_encoder import QrcodeSvgEncoder
from qr_attendance.adapters.request_executor import HttpxRequestExecutor
from qr_attendance.adapters.supabase_attendance_repository import (
    SupabaseAttendanceRepository,
)
from qr_attendance.config import Settings
from qr_attendance.services.attendance import AttendanceRepository, AttendanceService
from qr_attendance.services.checkin import CheckInCoordinator
from qr_attendance.services.decoder import CaptureBackend, DecoderEngine, SymbolReader
from qr_attendance.services.qr_render import QrRenderService
from qr_attendance.services.registry import SessionRegistry


@dataclass
class AppContainer:
    """Holds server-wide dependencies."""

    settings: Settings
    attendance_service: AttendanceService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class ClientContainer:
    """Holds the scanning client's dependencies."""

    settings: Settings
    attendance_client: HttpxAttendanceClient
    registry: SessionRegistry
    qr_render: QrRenderService
    identity_store: FileIdentityStore
    decoder: DecoderEngine
    coordinator: CheckInCoordinator
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    repository: AttendanceRepository | None = None,
) -> AppContainer:
    """Create the server container backed by Supabase."""
    resolved_settings = settings or Settings()
    if repository is None:
        url = resolved_settings.supabase_url
        key = resolved_settings.supabase_service_key
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        supabase_client = create_client(url, key)
        repository = SupabaseAttendanceRepository(supabase_client)
    attendance_service = AttendanceService(
        repository=repository,
        default_duration_minutes=resolved_settings.session_duration_minutes,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        attendance_service=attendance_service,
        close_resources=close_resources,
    )


def build_client_container(  # noqa: PLR0913
    settings: Settings | None = None,
    executor: HttpxRequestExecutor | None = None,
    capture_backend: CaptureBackend | None = None,
    symbol_reader: SymbolReader | None = None,
    identity_path: Path | None = None,
) -> ClientContainer:
    """Create the client container talking to the attendance server."""
    resolved_settings = settings or Settings()
    executor = executor or HttpxRequestExecutor.create(
        base_url=resolved_settings.api_base_url,
        headers={resolved_settings.user_id_header: resolved_settings.admin_user_id},
        retry_attempts=resolved_settings.retry_attempts,
        backoff_seconds=resolved_settings.retry_backoff_seconds,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    attendance_client = HttpxAttendanceClient(
        executor=executor,
        admin_user_id=resolved_settings.admin_user_id,
        user_id_header=resolved_settings.user_id_header,
    )
    registry = SessionRegistry(attendance_client)
    qr_render = QrRenderService(
        remote=HttpxQrRenderClient(executor, resolved_settings.qr_render_url),
        encoder=QrcodeSvgEncoder(),
        size=resolved_settings.qr_size,
        margin=resolved_settings.qr_margin,
    )
    identity_store = FileIdentityStore(
        identity_path or Path(resolved_settings.identity_file)
    )
    decoder = DecoderEngine(
        backend=capture_backend
        or OpenCvCaptureBackend(probe_limit=resolved_settings.camera_probe_limit),
        reader=symbol_reader or OpenCvSymbolReader(),
        rasterizer=CairoSvgRasterizer(),
        scan_fps=resolved_settings.scan_fps,
        region_size=resolved_settings.scan_region_size,
        raster_default_size=resolved_settings.raster_default_size,
    )
    coordinator = CheckInCoordinator(
        client=attendance_client,
        identity_store=identity_store,
        min_token_length=resolved_settings.min_token_length,
        scanner=decoder,
    )
    decoder.on_decode = coordinator.on_decode

    async def close_resources() -> None:
        await decoder.close()
        await executor.close()

    return ClientContainer(
        settings=resolved_settings,
        attendance_client=attendance_client,
        registry=registry,
        qr_render=qr_render,
        identity_store=identity_store,
        decoder=decoder,
        coordinator=coordinator,
        close_resources=close_resources,
    )

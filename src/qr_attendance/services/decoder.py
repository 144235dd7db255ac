"""Decoder engine for camera and still-image QR scanning.

The engine owns the camera exclusively: starting the camera, stopping it and
decoding a still image are serialized by one lock, and no capture is started
before the previous one has been released.
"""

import asyncio
import contextlib
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import numpy as np

from qr_attendance.domain.decoding import (
    CaptureDevice,
    DecodeEvent,
    DecodeFailure,
    DecodeSource,
)
from qr_attendance.domain.errors import DeviceError, ImageConversionError

_BACK_CAMERA = re.compile(r"back|rear|environment", re.IGNORECASE)
_SVG_CONTENT_TYPE = "image/svg+xml"

_logger = logging.getLogger(__name__)


class CaptureHandle(Protocol):
    """An acquired camera."""

    def read_frame(self) -> np.ndarray | None:
        """Return the next frame, or None if none is available."""

    def release(self) -> None:
        """Release the camera. Must tolerate repeated calls."""


class CaptureBackend(Protocol):
    """Access to the platform's cameras."""

    async def request_permission(self) -> None:
        """Ask for camera access, raising DeviceError when denied."""

    async def list_devices(self) -> list[CaptureDevice]:
        """Return the available cameras."""

    async def acquire(self, device_id: int | None) -> CaptureHandle:
        """Open a camera, raising DeviceError if it cannot start."""


class SymbolReader(Protocol):
    """Decodes QR symbols from pixel data."""

    def decode_frame(
        self, frame: np.ndarray, region_size: int | None = None
    ) -> str | None:
        """Decode a camera frame."""

    def decode_image(self, image_bytes: bytes) -> str | None:
        """Decode an encoded raster image."""


class Rasterizer(Protocol):
    """Converts vector images to raster images."""

    def rasterize(self, svg_bytes: bytes, default_size: int) -> bytes:
        """Return PNG bytes for an SVG document."""


class DecoderMode(str, Enum):
    """Input mode selected by the user."""

    CAMERA = "camera"
    IMAGE = "image"


class DecoderState(str, Enum):
    """Observable state of the decoder."""

    IDLE = "IDLE"
    INITIALIZING = "INITIALIZING"
    SCANNING = "SCANNING"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DEVICE_FAILED = "DEVICE_FAILED"
    IMAGE_READY = "IMAGE_READY"
    PROCESSING_FILE = "PROCESSING_FILE"
    CLOSED = "CLOSED"


def choose_device(devices: list[CaptureDevice]) -> int | None:
    """Prefer a back-facing camera, else the first one."""
    if not devices:
        return None
    for device in devices:
        if _BACK_CAMERA.search(device.label):
            return device.id
    return devices[0].id


def is_vector_image(filename: str, content_type: str | None) -> bool:
    """Return True for SVG uploads."""
    return content_type == _SVG_CONTENT_TYPE or filename.lower().endswith(".svg")


@dataclass
class DecoderEngine:
    """Turns camera frames or still images into decode events."""

    backend: CaptureBackend
    reader: SymbolReader
    rasterizer: Rasterizer
    on_decode: Callable[[DecodeEvent], None] | None = None
    scan_fps: int = 10
    region_size: int = 250
    raster_default_size: int = 512
    mode: DecoderMode = field(default=DecoderMode.CAMERA, init=False)
    state: DecoderState = field(default=DecoderState.IDLE, init=False)
    permission_granted: bool = field(default=False, init=False)
    last_error: str | None = field(default=None, init=False)
    _handle: CaptureHandle | None = field(default=None, init=False, repr=False)
    _loop_task: "asyncio.Task[None] | None" = field(
        default=None, init=False, repr=False
    )
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def is_scanning(self) -> bool:
        """True while the camera loop is running."""
        return self._loop_task is not None

    async def __aenter__(self) -> "DecoderEngine":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def start_camera(self) -> DecoderState:
        """Enter camera mode and start scanning."""
        async with self._lock:
            self.mode = DecoderMode.CAMERA
            await self._start_capture()
            return self.state

    async def retry_permission(self) -> DecoderState:
        """Ask for camera access again after a denial or start failure."""
        async with self._lock:
            self.mode = DecoderMode.CAMERA
            self.permission_granted = False
            await self._start_capture()
            return self.state

    async def switch_to_image(self) -> None:
        """Stop the camera and wait for a still image."""
        async with self._lock:
            await self._teardown()
            self.mode = DecoderMode.IMAGE
            self.state = DecoderState.IMAGE_READY

    async def switch_to_camera(self) -> DecoderState:
        """Return to camera mode."""
        return await self.start_camera()

    async def scan_file(
        self, filename: str, data: bytes, content_type: str | None = None
    ) -> DecodeEvent | DecodeFailure:
        """Decode a single still image.

        A running camera is stopped first and restarted afterwards.
        """
        async with self._lock:
            resume_camera = self.mode is DecoderMode.CAMERA and self.is_scanning
            await self._teardown()
            self.state = DecoderState.PROCESSING_FILE
            try:
                raster = self._prepare_image(filename, data, content_type)
                text = self.reader.decode_image(raster)
            finally:
                if resume_camera:
                    await self._start_capture()
                elif self.mode is DecoderMode.IMAGE:
                    self.state = DecoderState.IMAGE_READY
                else:
                    self.state = DecoderState.IDLE

        if text is None:
            _logger.info("No QR code found in %s", filename)
            return DecodeFailure(message="No QR code detected in the provided image.")
        event = DecodeEvent(text=text, source=DecodeSource.IMAGE)
        self._emit(event)
        return event

    async def close(self) -> None:
        """Release the camera. Safe to call repeatedly."""
        async with self._lock:
            await self._teardown()
            self.state = DecoderState.CLOSED

    async def _start_capture(self) -> None:
        if self._loop_task is not None:
            return
        self.state = DecoderState.INITIALIZING
        try:
            if not self.permission_granted:
                await self.backend.request_permission()
                self.permission_granted = True
            devices = await self.backend.list_devices()
            handle = await self.backend.acquire(choose_device(devices))
        except DeviceError as exc:
            self.last_error = str(exc)
            if self.permission_granted:
                self.state = DecoderState.DEVICE_FAILED
            else:
                self.state = DecoderState.PERMISSION_DENIED
            _logger.warning("Camera unavailable: %s", exc)
            return
        self.last_error = None
        self._handle = handle
        self._loop_task = asyncio.create_task(self._scan_loop(handle))
        self._loop_task.add_done_callback(self._on_loop_done)
        self.state = DecoderState.SCANNING

    async def _teardown(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()
        if self.state in {DecoderState.SCANNING, DecoderState.INITIALIZING}:
            self.state = DecoderState.IDLE

    def _on_loop_done(self, task: "asyncio.Task[None]") -> None:
        if task.cancelled() or task is not self._loop_task:
            return
        exc = task.exception()
        _logger.error("Camera scan loop stopped", exc_info=exc)
        self._loop_task = None
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()
        self.last_error = str(exc)
        self.state = DecoderState.DEVICE_FAILED

    async def _scan_loop(self, handle: CaptureHandle) -> None:
        interval = 1 / self.scan_fps
        while True:
            frame = handle.read_frame()
            if frame is not None:
                text = self.reader.decode_frame(frame, self.region_size)
                if text:
                    self._emit(DecodeEvent(text=text, source=DecodeSource.CAMERA))
            await asyncio.sleep(interval)

    def _prepare_image(
        self, filename: str, data: bytes, content_type: str | None
    ) -> bytes:
        if not is_vector_image(filename, content_type):
            return data
        try:
            return self.rasterizer.rasterize(data, self.raster_default_size)
        except ImageConversionError as exc:
            _logger.warning("Failed to convert SVG to PNG for scanning: %s", exc)
            return data

    def _emit(self, event: DecodeEvent) -> None:
        if self.on_decode is not None:
            self.on_decode(event)

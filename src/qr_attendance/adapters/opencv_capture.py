"""Camera capture backend using OpenCV."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import cv2
import numpy as np

from qr_attendance.domain.decoding import CaptureDevice
from qr_attendance.domain.errors import DeviceError

_SYSFS_VIDEO = Path("/sys/class/video4linux")


@dataclass
class OpenCvCaptureHandle:
    """An opened camera. Release is idempotent."""

    capture: cv2.VideoCapture
    device_id: int
    released: bool = field(default=False, init=False)

    def read_frame(self) -> np.ndarray | None:
        """Grab the next frame, or None if the camera returned nothing."""
        if self.released:
            return None
        ok, frame = self.capture.read()
        return frame if ok else None

    def release(self) -> None:
        """Release the camera if it is still held."""
        if self.released:
            return
        self.released = True
        self.capture.release()


@dataclass
class OpenCvCaptureBackend:
    """Opens local cameras through cv2.VideoCapture."""

    probe_limit: int = 4
    sysfs_root: Path = _SYSFS_VIDEO

    async def request_permission(self) -> None:
        """Open and release the default camera to confirm access."""
        capture = await asyncio.to_thread(cv2.VideoCapture, 0)
        try:
            if not capture.isOpened():
                raise DeviceError(
                    "Camera access denied. Please check your system settings."
                )
        finally:
            capture.release()

    async def list_devices(self) -> list[CaptureDevice]:
        """Probe camera indexes and return the ones that open."""
        return await asyncio.to_thread(self._probe_devices)

    async def acquire(self, device_id: int | None) -> OpenCvCaptureHandle:
        """Open a camera for continuous scanning."""
        index = 0 if device_id is None else device_id
        capture = await asyncio.to_thread(cv2.VideoCapture, index)
        if not capture.isOpened():
            capture.release()
            raise DeviceError("Failed to start camera scanner.")
        return OpenCvCaptureHandle(capture=capture, device_id=index)

    def _probe_devices(self) -> list[CaptureDevice]:
        devices = []
        for index in range(self.probe_limit):
            capture = cv2.VideoCapture(index)
            try:
                if capture.isOpened():
                    devices.append(CaptureDevice(id=index, label=self._label(index)))
            finally:
                capture.release()
        return devices

    def _label(self, index: int) -> str:
        name_file = self.sysfs_root / f"video{index}" / "name"
        if name_file.is_file():
            return name_file.read_text(encoding="utf-8").strip()
        return f"Camera {index}"

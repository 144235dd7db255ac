"""QR symbol reader using OpenCV's detector."""

import logging
from dataclasses import dataclass, field

import cv2
import numpy as np

_logger = logging.getLogger(__name__)


@dataclass
class OpenCvSymbolReader:
    """Decodes QR codes from camera frames and encoded still images."""

    detector: cv2.QRCodeDetector = field(default_factory=cv2.QRCodeDetector)

    def decode_frame(
        self, frame: np.ndarray, region_size: int | None = None
    ) -> str | None:
        """Decode the first QR code inside the central region of a frame."""
        if region_size:
            frame = _center_region(frame, region_size)
        try:
            text, _points, _straight = self.detector.detectAndDecode(frame)
        except cv2.error as exc:
            _logger.debug("Frame decode failed: %s", exc)
            return None
        return text or None

    def decode_image(self, image_bytes: bytes) -> str | None:
        """Decode a PNG/JPEG image holding exactly one distinct QR code."""
        buffer = np.frombuffer(image_bytes, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            _logger.info("Image could not be read (%s bytes)", len(image_bytes))
            return None
        try:
            found, decoded, _points, _straight = self.detector.detectAndDecodeMulti(
                image
            )
        except cv2.error as exc:
            _logger.debug("Image decode failed: %s", exc)
            return None
        if not found:
            return None
        texts = {text for text in decoded if text}
        if len(texts) != 1:
            if len(texts) > 1:
                _logger.info("Ignoring image with %s distinct QR codes", len(texts))
            return None
        return texts.pop()


def _center_region(frame: np.ndarray, size: int) -> np.ndarray:
    """Crop a centered square of at most size pixels."""
    height, width = frame.shape[:2]
    side = min(size, height, width)
    top = (height - side) // 2
    left = (width - side) // 2
    return frame[top : top + side, left : left + side]

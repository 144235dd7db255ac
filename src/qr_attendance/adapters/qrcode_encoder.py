"""In-process QR encoder backed by the qrcode library."""

from dataclasses import dataclass

import qrcode
from qrcode.exceptions import DataOverflowError
from qrcode.image.svg import SvgPathImage

from qr_attendance.domain.errors import SymbolEncodingError


@dataclass
class QrcodeSvgEncoder:
    """Encodes text as an SVG QR code."""

    error_correction: int = qrcode.constants.ERROR_CORRECT_M

    def encode_svg(self, data: str, margin: int) -> str:
        """Return an SVG document for the given data."""
        qr = qrcode.QRCode(
            error_correction=self.error_correction,
            border=margin,
            image_factory=SvgPathImage,
        )
        qr.add_data(data)
        try:
            qr.make(fit=True)
        except DataOverflowError as exc:
            raise SymbolEncodingError(f"Token too long to encode: {exc}") from exc
        image = qr.make_image()
        return image.to_string(encoding="unicode")

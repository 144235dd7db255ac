"""Remote QR rendering client used when local encoding fails."""

from dataclasses import dataclass

from qr_attendance.adapters.request_executor import HttpxRequestExecutor
from qr_attendance.domain.errors import SymbolEncodingError


@dataclass
class HttpxQrRenderClient:
    """Fetches SVG QR codes from a qrserver-compatible endpoint."""

    executor: HttpxRequestExecutor
    render_url: str = "https://api.qrserver.com/v1/create-qr-code/"

    async def render_svg(self, data: str, size: int, margin: int) -> str:
        """Return an SVG document encoding the given data."""
        payload = await self.executor.execute(
            self.render_url,
            params={
                "size": f"{size}x{size}",
                "margin": margin,
                "data": data,
                "format": "svg",
            },
        )
        if not isinstance(payload, str) or "<svg" not in payload:
            raise SymbolEncodingError("Invalid SVG response")
        return payload

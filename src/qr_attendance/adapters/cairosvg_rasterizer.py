"""SVG to PNG rasterization via cairosvg."""

import re
from dataclasses import dataclass

from qr_attendance.domain.errors import ImageConversionError

_ROOT_WIDTH = re.compile(rb"<svg\b[^>]*\swidth=", re.IGNORECASE)


@dataclass
class CairoSvgRasterizer:
    """Renders SVG documents to PNG bytes."""

    def rasterize(self, svg_bytes: bytes, default_size: int) -> bytes:
        """Render at the document's natural size, or default_size if it has none."""
        # cairo is a system library; load it only when an SVG is actually scanned
        import cairosvg  # noqa: PLC0415

        size: dict[str, int] = {}
        if not _ROOT_WIDTH.search(svg_bytes):
            size = {"output_width": default_size, "output_height": default_size}
        try:
            return cairosvg.svg2png(
                bytestring=svg_bytes, background_color="white", **size
            )
        except Exception as exc:
            raise ImageConversionError(f"Failed to rasterize SVG: {exc}") from exc

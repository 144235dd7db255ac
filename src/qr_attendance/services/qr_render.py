"""QR rendering and SVG export for session tokens."""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from qr_attendance.domain.errors import AttendanceError, SymbolEncodingError

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
EXPORT_ELEMENT_ID = "qr-svg-export"
_SVG_PREFIX = f"{{{SVG_NAMESPACE}}}"
_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/]")

_logger = logging.getLogger(__name__)


class SymbolEncoder(Protocol):
    """In-process QR encoder."""

    def encode_svg(self, data: str, margin: int) -> str:
        """Return an SVG document for the data."""


class QrRenderClient(Protocol):
    """Remote QR rendering endpoint."""

    async def render_svg(self, data: str, size: int, margin: int) -> str:
        """Return an SVG document for the data."""


class RenderState(str, Enum):
    """Progress of a QR rendering."""

    IDLE = "IDLE"
    GENERATING = "GENERATING"
    READY = "READY"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RenderedSymbol:
    """A QR code rendered as an SVG document."""

    token: str
    svg: str
    source: str


@dataclass(frozen=True)
class RenderResult:
    """Outcome of a rendering attempt."""

    state: RenderState
    symbol: RenderedSymbol | None = None
    error: str | None = None


@dataclass
class QrRenderService:
    """Renders tokens locally, falling back to the remote renderer."""

    remote: QrRenderClient
    encoder: SymbolEncoder | None = None
    size: int = 256
    margin: int = 2
    state: RenderState = field(default=RenderState.IDLE, init=False)

    async def render(self, token: str) -> RenderResult:
        """Render a token as a QR code."""
        if not token:
            self.state = RenderState.IDLE
            return RenderResult(state=RenderState.IDLE)

        self.state = RenderState.GENERATING
        if self.encoder is not None:
            try:
                svg = self.encoder.encode_svg(token, self.margin)
                return self._ready(
                    RenderedSymbol(
                        token=token,
                        svg=normalize_svg(svg, self.size, force_size=True),
                        source="local",
                    )
                )
            except SymbolEncodingError as exc:
                _logger.warning("Local QR encoding failed, using remote: %s", exc)

        try:
            svg = await self.remote.render_svg(token, self.size, self.margin)
            symbol = RenderedSymbol(
                token=token, svg=normalize_svg(svg, self.size), source="remote"
            )
        except AttendanceError as exc:
            _logger.error("Failed to render QR code: %s", exc)
            self.state = RenderState.FAILED
            return RenderResult(state=RenderState.FAILED, error="QR generation failed")
        return self._ready(symbol)

    def export(self, symbol: RenderedSymbol, title: str, directory: Path) -> Path:
        """Write the symbol as an SVG file and return its path."""
        path = directory / export_filename(title, symbol.token)
        path.write_text(normalize_svg(symbol.svg, self.size), encoding="utf-8")
        _logger.info("Exported QR code to %s", path)
        return path

    def _ready(self, symbol: RenderedSymbol) -> RenderResult:
        self.state = RenderState.READY
        return RenderResult(state=RenderState.READY, symbol=symbol)


def export_filename(title: str, token: str) -> str:
    """Build `{title}_{token prefix}_QR.svg`."""
    safe_title = _UNSAFE_FILENAME_CHARS.sub("_", title).strip() or "session"
    return f"{safe_title}_{token[:8]}_QR.svg"


def normalize_svg(svg: str, size: int, force_size: bool = False) -> str:
    """Give the root element the export id and a pixel size."""
    try:
        root = ET.fromstring(svg)
    except ET.ParseError as exc:
        raise SymbolEncodingError(f"Invalid SVG document: {exc}") from exc
    if root.tag.rpartition("}")[2] != "svg":
        raise SymbolEncodingError("Document root is not an <svg> element")

    root.set("id", EXPORT_ELEMENT_ID)
    for dimension in ("width", "height"):
        if force_size or not root.get(dimension):
            root.set(dimension, str(size))

    # serialize SVG elements unprefixed under a single default namespace
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith(_SVG_PREFIX):
            element.tag = element.tag[len(_SVG_PREFIX) :]
    root.set("xmlns", SVG_NAMESPACE)
    return ET.tostring(root, encoding="unicode")

"""Decoded symbol values."""

import json
from dataclasses import dataclass
from enum import Enum


class DecodeSource(str, Enum):
    """Where a decoded symbol came from."""

    CAMERA = "camera"
    IMAGE = "image"


@dataclass(frozen=True)
class DecodeEvent:
    """A single successfully decoded symbol."""

    text: str
    source: DecodeSource


@dataclass(frozen=True)
class DecodeFailure:
    """No symbol could be decoded from a still image."""

    message: str


@dataclass(frozen=True)
class CaptureDevice:
    """A camera that can be opened for scanning."""

    id: int
    label: str


@dataclass(frozen=True)
class StructuredPayload:
    """Decoded text that was a JSON token object."""

    token: str


@dataclass(frozen=True)
class RawPayload:
    """Decoded text used verbatim as the token."""

    token: str


DecodedPayload = StructuredPayload | RawPayload


def parse_decoded_text(text: str) -> DecodedPayload:
    """Interpret decoded text as a token object, falling back to the raw text."""
    try:
        data = json.loads(text)
    except ValueError:
        return RawPayload(token=text)
    if isinstance(data, dict) and isinstance(data.get("token"), str):
        return StructuredPayload(token=data["token"])
    return RawPayload(token=text)

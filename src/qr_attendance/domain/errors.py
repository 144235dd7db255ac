"""Error taxonomy for attendance operations."""


class AttendanceError(Exception):
    """Base exception for attendance operations."""


class TransportError(AttendanceError):
    """Raised when the network is unreachable or a request times out."""


class ServerError(AttendanceError):
    """Raised when the server answers with a non-success status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class InputValidationError(AttendanceError):
    """Raised when input is rejected locally before any network call."""


class AuthExpiredError(AttendanceError):
    """Raised when the caller's identity is no longer accepted."""


class DeviceError(AttendanceError):
    """Raised when the camera is unavailable or access is denied."""


class ImageConversionError(AttendanceError):
    """Raised when a vector image cannot be rasterized."""


class SymbolEncodingError(AttendanceError):
    """Raised when a token cannot be turned into a QR symbol."""

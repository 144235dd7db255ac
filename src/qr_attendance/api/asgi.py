"""ASGI entrypoint for the attendance API."""

from qr_attendance.api.app import create_app
from qr_attendance.containers import build_container

app = create_app(build_container())

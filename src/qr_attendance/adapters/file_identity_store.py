"""JSON file storage for the signed-in identity."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from qr_attendance.domain.checkin import Identity

_logger = logging.getLogger(__name__)


@dataclass
class FileIdentityStore:
    """Keeps the current user in a small JSON document."""

    path: Path

    def load(self) -> Identity | None:
        """Return the stored identity, or None if absent or unreadable."""
        if not self.path.is_file():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            _logger.warning("Invalid identity data in %s", self.path)
            return None
        if not isinstance(raw, dict) or not raw.get("id"):
            return None
        return Identity(
            user_id=str(raw["id"]),
            token=raw.get("token"),
            name=raw.get("name"),
        )

    def save(self, identity: Identity) -> None:
        """Persist the identity."""
        payload = {"id": identity.user_id, "token": identity.token, "name": identity.name}
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        """Forget the stored identity."""
        self.path.unlink(missing_ok=True)

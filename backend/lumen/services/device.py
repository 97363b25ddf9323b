"""Per-install device identity with JSON persistence."""

from __future__ import annotations

import json
import logging
import secrets
import uuid
from pathlib import Path

from lumen.schemas.playlist import Device

logger = logging.getLogger(__name__)

# No I, O, 0, 1: easy to misread from across a room
PAIRING_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
PAIRING_CODE_LENGTH = 6


def generate_pairing_code() -> str:
    return "".join(secrets.choice(PAIRING_ALPHABET) for _ in range(PAIRING_CODE_LENGTH))


def is_valid_pairing_code(code: object) -> bool:
    return (
        isinstance(code, str)
        and len(code) == PAIRING_CODE_LENGTH
        and all(c in PAIRING_ALPHABET for c in code)
    )


class DeviceIdentityStore:
    """Loads the device id and pairing code, creating whatever is missing.

    Both values are immutable once written; only a missing or unreadable
    field is regenerated.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._device: Device | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Device:
        """Return the persisted identity, generating and saving it if needed."""
        if self._device is not None:
            return self._device

        data = self._read()
        device_id = data.get("device_id")
        code = data.get("pairing_code")
        changed = False

        try:
            device_id = str(uuid.UUID(str(device_id)))
        except ValueError:
            device_id = str(uuid.uuid4())
            changed = True
            logger.info("Generated new device id %s", device_id)

        if not is_valid_pairing_code(code):
            code = generate_pairing_code()
            changed = True
            logger.info("Generated new pairing code %s", code)

        self._device = Device(device_id=device_id, pairing_code=code)
        if changed:
            self._save(self._device)
        return self._device

    def _read(self) -> dict:
        if not self._path.exists():
            logger.info("No device file at %s, creating identity", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load device identity, regenerating: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, device: Device) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(device.model_dump(), indent=2), encoding="utf-8"
        )

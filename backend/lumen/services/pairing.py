"""One-shot pairing bootstrap: make sure the backend knows this screen."""

from __future__ import annotations

import logging

from lumen.errors import Result
from lumen.schemas.playlist import Device, Screen
from lumen.services.backend_client import BackendClient
from lumen.services.device import DeviceIdentityStore

logger = logging.getLogger(__name__)


class PairingClient:
    """Looks the screen up by pairing code and registers it when absent."""

    def __init__(self, identity: DeviceIdentityStore, backend: BackendClient):
        self._identity = identity
        self._backend = backend

    @property
    def device(self) -> Device:
        return self._identity.load()

    async def bootstrap(self) -> Result[Screen]:
        device = self._identity.load()
        logger.info("Device %s, pairing code %s", device.device_id, device.pairing_code)

        lookup = await self._backend.get_screen_by_code(device.pairing_code)
        if not lookup.ok:
            logger.warning("Screen lookup failed: %s", lookup.error)
            return lookup
        if lookup.value is not None:
            logger.info("Screen %s already registered (%s)", lookup.value.id, lookup.value.status)
            return lookup

        registered = await self._backend.upsert_screen(device.device_id, device.pairing_code)
        if registered.ok:
            logger.info("Registered pending screen %s", registered.value.id)
        else:
            logger.warning("Screen registration failed: %s", registered.error)
        return registered

"""BLE GATT link implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from homelight.core.errors import (
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)
from homelight.core.model import LightConfig
from homelight.transports.base import ChunkHandler

LOGGER = logging.getLogger(__name__)


class BLELinkTransport:
    def __init__(
        self,
        address: str,
        *,
        notify_char_uuid: str,
        write_char_uuid: str,
        timeout_s: float = 10.0,
    ) -> None:
        self.address = address
        self.notify_char_uuid = notify_char_uuid
        self.write_char_uuid = write_char_uuid
        self.timeout_s = timeout_s
        self._client: Any = None

    @classmethod
    def for_light(cls, light: LightConfig) -> BLELinkTransport:
        return cls(
            light.address,
            notify_char_uuid=light.notify_char_uuid,
            write_char_uuid=light.write_char_uuid,
            timeout_s=light.connect_timeout_s,
        )

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    async def connect(self, on_chunk: ChunkHandler) -> None:
        try:
            from bleak import BleakClient
        except ImportError as exc:  # pragma: no cover - import failure path
            raise TransportConnectError(
                "BLE link requires 'bleak'. Install dependency and retry."
            ) from exc

        def _notify_handler(_: Any, data: bytearray) -> None:
            on_chunk(bytes(data))

        client = BleakClient(self.address, timeout=self.timeout_s)
        try:
            await client.connect()
        except asyncio.TimeoutError as exc:
            raise TransportTimeoutError(f"BLE connect timed out for {self.address}") from exc
        except Exception as exc:
            raise TransportConnectError(f"BLE connect failed for {self.address}: {exc}") from exc

        if not client.is_connected:
            raise TransportConnectError(f"BLE connect failed for {self.address}")

        try:
            await client.start_notify(self.notify_char_uuid, _notify_handler)
        except Exception as exc:
            await client.disconnect()
            raise TransportConnectError(
                f"Could not subscribe to {self.notify_char_uuid} on {self.address}: {exc}"
            ) from exc

        LOGGER.info("Connected to %s, listening on %s", self.address, self.notify_char_uuid)
        self._client = client

    async def write(self, payload: bytes) -> None:
        if not self.is_connected:
            raise TransportSendError(f"BLE link to {self.address} is not connected")
        LOGGER.debug("Writing %s to %s", payload.hex(), self.address)
        try:
            await self._client.write_gatt_char(self.write_char_uuid, payload, response=False)
        except Exception as exc:
            raise TransportSendError(f"BLE GATT write failed: {exc}") from exc

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.stop_notify(self.notify_char_uuid)
        except Exception as exc:
            LOGGER.debug("stop_notify failed for %s: %s", self.address, exc)
        await client.disconnect()

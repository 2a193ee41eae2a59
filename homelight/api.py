"""Stable public API for building tooling on top of homelight.

This module is the supported integration surface for third-party callers such
as a web frontend. Avoid importing from internal modules unless intentionally
depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from homelight.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    DeviceSelectionError,
    HomelightError,
    InvalidValueError,
    PayloadDecodeError,
    StateUnavailableError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
)
from homelight.core.model import (
    CacheSettings,
    Command,
    GetDeviceInfo,
    HSVColor,
    LightConfig,
    LightField,
    LightInfo,
    LoadedConfig,
    Message,
    MessageType,
    SetBrightness,
    SetLEDColor,
)
from homelight.core.service import LightService, TransportFactory, parse_power_state
from homelight.transports.base import LinkTransport
from homelight.transports.ble_gatt import BLELinkTransport

__all__ = [
    "HomelightError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceSelectionError",
    "InvalidValueError",
    "PayloadDecodeError",
    "StateUnavailableError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportTimeoutError",
    "CacheSettings",
    "Command",
    "GetDeviceInfo",
    "HSVColor",
    "LightConfig",
    "LightField",
    "LightInfo",
    "LoadedConfig",
    "Message",
    "MessageType",
    "SetBrightness",
    "SetLEDColor",
    "BLELinkTransport",
    "LinkTransport",
    "parse_power_state",
    "Client",
]


class Client:
    """Public async client for reading and controlling configured lights.

    A `Client` wraps configuration loading, the per-light links and the
    freshness cache. Use it as an async context manager so links are started
    and drained around the calls::

        async with Client() as client:
            info = await client.get_state(1)
    """

    def __init__(
        self,
        config: LoadedConfig | None = None,
        *,
        config_path: Path | None = None,
        transport_factory: TransportFactory | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        kwargs = {"clock": clock} if clock is not None else {}
        self._service = LightService(
            config,
            config_path=config_path,
            transport_factory=transport_factory,
            **kwargs,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_lights(self) -> list[LightConfig]:
        return self._service.list_lights()

    async def start(self, light_ids: list[int] | None = None) -> None:
        await self._service.start(light_ids)

    async def stop(self) -> None:
        await self._service.stop()

    async def __aenter__(self) -> Client:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def enqueue(self, light_id: int, command: Command) -> None:
        self._service.enqueue(light_id, command)

    async def get_state(self, light_id: int, *, force: bool = False) -> LightInfo:
        return await self._service.get_state(light_id, force=force)

    async def apply_local_patch(self, light_id: int, light_field: LightField, value: float | bool) -> None:
        await self._service.cache.apply_local_patch(light_id, light_field, value)

    async def get_power(self, light_id: int) -> bool:
        return await self._service.get_power(light_id)

    async def set_power(self, light_id: int, on: bool) -> None:
        await self._service.set_power(light_id, on)

    async def get_brightness(self, light_id: int) -> int:
        return await self._service.get_brightness(light_id)

    async def set_brightness(self, light_id: int, percent: float) -> float:
        return await self._service.set_brightness(light_id, percent)

    async def get_hue(self, light_id: int) -> int:
        return await self._service.get_hue(light_id)

    async def set_hue(self, light_id: int, degrees: float) -> float:
        return await self._service.set_hue(light_id, degrees)

    async def get_saturation(self, light_id: int) -> int:
        return await self._service.get_saturation(light_id)

    async def set_saturation(self, light_id: int, percent: float) -> float:
        return await self._service.set_saturation(light_id, percent)

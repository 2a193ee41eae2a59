"""Service layer used by the CLI and future web frontends."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from homelight.core.cache import LightStateCache
from homelight.core.config import load_config
from homelight.core.errors import DeviceSelectionError, InvalidValueError
from homelight.core.link import DeviceLink
from homelight.core.model import (
    Command,
    LightConfig,
    LightField,
    LightInfo,
    LoadedConfig,
    SetBrightness,
    SetLEDColor,
)
from homelight.transports.base import LinkTransport
from homelight.transports.ble_gatt import BLELinkTransport

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[LightConfig], LinkTransport]


def parse_power_state(value: str) -> bool:
    normalized = value.strip().upper()
    if normalized == "ON":
        return True
    if normalized == "OFF":
        return False
    raise InvalidValueError(f'Unexpected power state {value!r}, requires "ON" or "OFF"')


def _percent(normalized: float) -> int:
    return int(min(max(round(normalized * 100), 0), 100))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class LightService:
    def __init__(
        self,
        config: LoadedConfig | None = None,
        *,
        config_path: Path | None = None,
        transport_factory: TransportFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        loaded = config or load_config(config_path)
        self.lights = loaded.lights
        self.settings = loaded.cache
        self.load_warnings = loaded.warnings
        self.cache = LightStateCache(self.enqueue, ttl_s=self.settings.ttl_s, clock=clock)
        self._transport_factory = transport_factory or BLELinkTransport.for_light
        self._links: dict[int, DeviceLink] = {}

    def list_lights(self) -> list[LightConfig]:
        return sorted(self.lights.values(), key=lambda light: light.id)

    def resolve_light(self, light_id: int) -> LightConfig:
        light = self.lights.get(light_id)
        if light is None:
            known = ", ".join(str(i) for i in sorted(self.lights)) or "none"
            raise DeviceSelectionError(f"Unknown light {light_id}. Configured lights: {known}")
        return light

    async def start(self, light_ids: Iterable[int] | None = None) -> None:
        ids = list(light_ids) if light_ids is not None else sorted(self.lights)
        for light_id in ids:
            light = self.resolve_light(light_id)
            link = self._links.get(light_id)
            if link is None:
                link = DeviceLink(light, self._transport_factory(light), self.cache)
                self._links[light_id] = link
            await link.start()
            LOGGER.info("Link to light %d (%s) started", light.id, light.name)

    async def stop(self) -> None:
        links, self._links = self._links, {}
        for link in links.values():
            await link.stop()

    async def __aenter__(self) -> LightService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def enqueue(self, light_id: int, command: Command) -> None:
        link = self._links.get(light_id)
        if link is None:
            self.resolve_light(light_id)
            raise DeviceSelectionError(f"Light {light_id} has no running link. Start it first.")
        link.enqueue(command)

    async def get_state(self, light_id: int, *, force: bool = False) -> LightInfo:
        self.resolve_light(light_id)
        return await self.cache.get_fresh(
            light_id,
            force=force,
            timeout_s=self.settings.query_timeout_s,
        )

    async def get_power(self, light_id: int) -> bool:
        return (await self.get_state(light_id)).is_on

    async def set_power(self, light_id: int, on: bool) -> None:
        self.enqueue(light_id, SetBrightness(1.0 if on else 0.0))
        await self.cache.apply_local_patch(light_id, LightField.POWER, on)

    async def get_brightness(self, light_id: int) -> int:
        return _percent((await self.get_state(light_id)).color.v)

    async def set_brightness(self, light_id: int, percent: float) -> float:
        value = _clamp(percent / 100, 0.0, 1.0)
        await self._set_color_component(light_id, LightField.BRIGHTNESS, value)
        return value

    async def get_hue(self, light_id: int) -> int:
        return int(_clamp(round((await self.get_state(light_id)).color.h), 0, 360))

    async def set_hue(self, light_id: int, degrees: float) -> float:
        value = _clamp(degrees, 0.0, 360.0)
        await self._set_color_component(light_id, LightField.HUE, value)
        return value

    async def get_saturation(self, light_id: int) -> int:
        return _percent((await self.get_state(light_id)).color.s)

    async def set_saturation(self, light_id: int, percent: float) -> float:
        value = _clamp(percent / 100, 0.0, 1.0)
        await self._set_color_component(light_id, LightField.SATURATION, value)
        return value

    async def _set_color_component(self, light_id: int, light_field: LightField, value: float) -> None:
        # The device only accepts whole colours, so unchanged components come
        # from the cached (or freshly queried) state.
        current = (await self.get_state(light_id)).color
        if light_field is LightField.HUE:
            color = dataclasses.replace(current, h=value)
        elif light_field is LightField.SATURATION:
            color = dataclasses.replace(current, s=value)
        else:
            color = dataclasses.replace(current, v=value)
        self.enqueue(light_id, SetLEDColor(color))
        await self.cache.apply_local_patch(light_id, light_field, value)

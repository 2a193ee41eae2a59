"""Core data models used across protocol, cache, service, and CLI."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Union


class MessageType(IntEnum):
    DEVICE_INFO = 0x01
    DEVICE_COLOR = 0x02


@dataclass(frozen=True)
class Message:
    message_type: MessageType
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Message(type={self.message_type.name}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


@dataclass(frozen=True)
class HSVColor:
    h: float = 0.0
    s: float = 0.0
    v: float = 0.0


@dataclass(frozen=True)
class LightInfo:
    name: str = ""
    is_on: bool = False
    color: HSVColor = field(default_factory=HSVColor)


@dataclass(frozen=True)
class SetLEDColor:
    color: HSVColor


@dataclass(frozen=True)
class SetBrightness:
    value: float


@dataclass(frozen=True)
class GetDeviceInfo:
    pass


Command = Union[SetLEDColor, SetBrightness, GetDeviceInfo]


class LightField(str, Enum):
    """Fields of a cached LightInfo that a write may patch locally."""

    POWER = "power"
    HUE = "hue"
    SATURATION = "saturation"
    BRIGHTNESS = "brightness"


@dataclass
class CacheEntry:
    last_known: LightInfo | None = None
    observed_at: float | None = None
    in_flight: bool = False
    queried_at: float | None = None
    updated: asyncio.Condition = field(default_factory=asyncio.Condition, repr=False, compare=False)


@dataclass(frozen=True)
class LightConfig:
    id: int
    name: str
    address: str
    notify_char_uuid: str
    write_char_uuid: str
    connect_timeout_s: float = 10.0


@dataclass(frozen=True)
class CacheSettings:
    ttl_s: float = 300.0
    query_timeout_s: float | None = None


@dataclass(frozen=True)
class LoadedConfig:
    lights: dict[int, LightConfig]
    cache: CacheSettings
    warnings: tuple[str, ...]

"""Outbound command frame builder.

Commands share the notification framing:
``0xFE | command code | data length | data... | 0xFF``.
"""

from __future__ import annotations

import math

from homelight.core.model import Command, GetDeviceInfo, SetBrightness, SetLEDColor
from homelight.protocol.decoder import FRAME_END, FRAME_START

SET_LED_COLOR = 0x02
SET_BRIGHTNESS = 0x03
GET_DEVICE_INFO = 0x04

HUE_MAX = 360.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _to_byte(value: float, maximum: float) -> int:
    # Round half away from zero; inputs are non-negative after clamping.
    scaled = _clamp(value, 0.0, maximum) * 255 / maximum
    return int(_clamp(math.floor(scaled + 0.5), 0, 255))


def command_code(command: Command) -> int:
    if isinstance(command, SetLEDColor):
        return SET_LED_COLOR
    if isinstance(command, SetBrightness):
        return SET_BRIGHTNESS
    if isinstance(command, GetDeviceInfo):
        return GET_DEVICE_INFO
    raise TypeError(f"Unsupported command {command!r}")


def command_data(command: Command) -> bytes:
    if isinstance(command, SetLEDColor):
        color = command.color
        return bytes(
            [
                _to_byte(color.h, HUE_MAX),
                _to_byte(color.s, 1.0),
                _to_byte(color.v, 1.0),
            ]
        )
    if isinstance(command, SetBrightness):
        return bytes([_to_byte(command.value, 1.0)])
    return b""


def encode_command(command: Command) -> bytes:
    """Build the raw frame for a command, ready to write to the link."""
    data = command_data(command)
    return bytes([FRAME_START, command_code(command), len(data)]) + data + bytes([FRAME_END])

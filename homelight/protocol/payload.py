"""Payload decoders that turn message bytes into light state."""

from __future__ import annotations

from homelight.core.errors import PayloadDecodeError
from homelight.core.model import HSVColor, LightInfo, Message, MessageType

COLOR_STATE_SOLID = 0x00
COLOR_STATE_ANIMATING = 0x01


def decode_device_info(payload: bytes) -> LightInfo:
    """Decode a DeviceInfo payload.

    Layout: ``name | 0x00 | is_on | color_state | [h s v]``. Anything past the
    solid colour bytes is animation/schedule data and is ignored.
    """
    name_bytes, _, rest = payload.partition(b"\x00")
    try:
        name = name_bytes.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"Device name is not valid UTF-8: {name_bytes.hex()}") from exc

    is_on = False
    if len(rest) >= 1:
        is_on = rest[0] != 0

    color = HSVColor()
    if len(rest) >= 2 and rest[1] == COLOR_STATE_SOLID and len(rest) >= 5:
        hue, saturation, value = rest[2:5]
        color = HSVColor(
            h=hue / 255 * 360,
            s=saturation / 255,
            v=value / 255,
        )

    return LightInfo(name=name, is_on=is_on, color=color)


def decode_message(message: Message) -> LightInfo | None:
    """Decode a message into light state.

    Returns ``None`` for message types that carry no decodable state yet.
    """
    if message.message_type is MessageType.DEVICE_INFO:
        return decode_device_info(message.payload)
    return None

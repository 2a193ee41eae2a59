from __future__ import annotations

import pytest

from homelight.core.errors import PayloadDecodeError
from homelight.core.model import HSVColor, LightInfo, Message, MessageType
from homelight.protocol.payload import decode_device_info, decode_message


def test_solid_color_payload() -> None:
    info = decode_device_info(bytes([0x41, 0x00, 0x01, 0x00, 0xFF, 0x66, 0x19]))
    assert info.name == "A"
    assert info.is_on is True
    assert info.color.h == pytest.approx(360.0)
    assert info.color.s == pytest.approx(0.4)
    assert info.color.v == pytest.approx(0.098, abs=1e-3)


def test_empty_payload_uses_defaults() -> None:
    assert decode_device_info(b"") == LightInfo(name="", is_on=False, color=HSVColor())


def test_name_without_terminator() -> None:
    assert decode_device_info(b"Lamp") == LightInfo(name="Lamp")


def test_missing_power_byte_leaves_light_off() -> None:
    info = decode_device_info(b"Lamp\x00")
    assert info.name == "Lamp"
    assert info.is_on is False


def test_any_nonzero_power_byte_means_on() -> None:
    assert decode_device_info(b"Lamp\x00\x7f").is_on is True
    assert decode_device_info(b"Lamp\x00\x00").is_on is False


def test_animating_state_keeps_default_color() -> None:
    info = decode_device_info(b"Lamp\x00\x01\x01\x10\x20\x30")
    assert info.is_on is True
    assert info.color == HSVColor()


def test_unknown_color_state_is_ignored() -> None:
    assert decode_device_info(b"Lamp\x00\x01\x07\x10\x20\x30").color == HSVColor()


def test_solid_state_with_short_color_keeps_default() -> None:
    assert decode_device_info(b"Lamp\x00\x01\x00\x10\x20").color == HSVColor()


def test_trailing_schedule_bytes_are_ignored() -> None:
    info = decode_device_info(b"Lamp\x00\x01\x00\x00\xff\xff" + bytes(range(40)))
    assert info.color.h == pytest.approx(0.0)
    assert info.color.s == pytest.approx(1.0)
    assert info.color.v == pytest.approx(1.0)


def test_multibyte_utf8_name() -> None:
    name = "Küche"
    info = decode_device_info(name.encode("utf-8") + b"\x00\x01")
    assert info.name == name
    assert info.is_on is True


def test_invalid_utf8_name_raises() -> None:
    with pytest.raises(PayloadDecodeError):
        decode_device_info(b"\xc3\x28\x00\x01")


def test_decode_message_dispatches_by_type() -> None:
    info = decode_message(Message(MessageType.DEVICE_INFO, b"Lamp\x00\x01"))
    assert info == LightInfo(name="Lamp", is_on=True)

    assert decode_message(Message(MessageType.DEVICE_COLOR, b"\x01\x02\x03")) is None

from __future__ import annotations

from homelight.core.model import GetDeviceInfo, HSVColor, SetBrightness, SetLEDColor
from homelight.protocol.encoder import command_code, command_data, encode_command
from homelight.protocol.payload import decode_device_info


def test_get_device_info_frame() -> None:
    assert encode_command(GetDeviceInfo()).hex() == "fe0400ff"


def test_set_brightness_rounds_half_away_from_zero() -> None:
    assert encode_command(SetBrightness(0.5)).hex() == "fe030180ff"


def test_set_brightness_is_clamped() -> None:
    assert command_data(SetBrightness(1.7)) == b"\xff"
    assert command_data(SetBrightness(-0.3)) == b"\x00"
    assert command_data(SetBrightness(0.0)) == b"\x00"
    assert command_data(SetBrightness(1.0)) == b"\xff"


def test_set_led_color_frame() -> None:
    frame = encode_command(SetLEDColor(HSVColor(h=180.0, s=0.5, v=1.0)))
    assert frame.hex() == "fe02038080ffff"


def test_set_led_color_clamps_every_component() -> None:
    assert command_data(SetLEDColor(HSVColor(h=400.0, s=2.0, v=-1.0))) == b"\xff\xff\x00"
    assert command_data(SetLEDColor(HSVColor(h=-10.0, s=-0.5, v=3.0))) == b"\x00\x00\xff"
    assert command_data(SetLEDColor(HSVColor(h=360.0, s=1.0, v=1.0))) == b"\xff\xff\xff"


def test_command_codes() -> None:
    assert command_code(SetLEDColor(HSVColor())) == 0x02
    assert command_code(SetBrightness(0.0)) == 0x03
    assert command_code(GetDeviceInfo()) == 0x04


def test_color_survives_encode_and_decode_within_quantization() -> None:
    original = HSVColor(h=180.0, s=0.9, v=1.0)
    data = command_data(SetLEDColor(original))

    info = decode_device_info(b"A\x00\x01\x00" + data)

    assert abs(info.color.h - original.h) <= 360 / 255
    assert abs(info.color.s - original.s) <= 1 / 255
    assert abs(info.color.v - original.v) <= 1 / 255

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from homelight.core.cache import LightStateCache
from homelight.core.errors import StateUnavailableError, TransportSendError
from homelight.core.link import DeviceLink
from homelight.core.model import (
    GetDeviceInfo,
    HSVColor,
    LightConfig,
    LightInfo,
    SetBrightness,
    SetLEDColor,
)

LIGHT = LightConfig(
    id=7,
    name="Desk Lamp",
    address="AA:BB:CC:DD:EE:FF",
    notify_char_uuid="0000dfb1-0000-1000-8000-00805f9b34fb",
    write_char_uuid="0000dfb1-0000-1000-8000-00805f9b34fb",
)
INFO_FRAME = bytes([0xFE, 0x01, 0x0A]) + b"Desk\x00\x01\x00\x80\xff\xff" + b"\xff"
QUERY_FRAME = bytes([0xFE, 0x04, 0x00, 0xFF])


class FakeTransport:
    def __init__(self, reply: bytes | None = None, fail_writes: int = 0) -> None:
        self.reply = reply
        self.fail_writes = fail_writes
        self.on_chunk: Callable[[bytes], None] | None = None
        self.writes: list[bytes] = []
        self.connected = False

    async def connect(self, on_chunk: Callable[[bytes], None]) -> None:
        self.on_chunk = on_chunk
        self.connected = True

    async def write(self, payload: bytes) -> None:
        self.writes.append(payload)
        if self.fail_writes:
            self.fail_writes -= 1
            raise TransportSendError("write failed")
        if self.reply is not None and payload == QUERY_FRAME:
            # Notifications are split arbitrarily by the radio.
            self.on_chunk(self.reply[:4])
            self.on_chunk(self.reply[4:])

    async def disconnect(self) -> None:
        self.connected = False


def _wire(transport: FakeTransport) -> tuple[DeviceLink, LightStateCache]:
    links: dict[int, DeviceLink] = {}
    cache = LightStateCache(lambda device_id, command: links[device_id].enqueue(command))
    link = DeviceLink(LIGHT, transport, cache)
    links[LIGHT.id] = link
    return link, cache


async def _until(condition: Callable[[], object]) -> None:
    for _ in range(1000):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def test_notifications_update_cache() -> None:
    transport = FakeTransport()
    link, cache = _wire(transport)

    async def scenario() -> None:
        await link.start()
        transport.on_chunk(b"\x00\x01" + INFO_FRAME[:5])
        transport.on_chunk(INFO_FRAME[5:])
        await _until(lambda: cache.peek(LIGHT.id).last_known is not None)
        await link.stop()

    asyncio.run(scenario())
    info = cache.peek(LIGHT.id).last_known
    assert info.name == "Desk"
    assert info.is_on is True
    assert info.color.s == 1.0


def test_get_fresh_round_trip_through_link() -> None:
    transport = FakeTransport(reply=INFO_FRAME)
    link, cache = _wire(transport)

    async def scenario() -> list[LightInfo]:
        await link.start()
        results = await asyncio.gather(*(cache.get_fresh(LIGHT.id) for _ in range(4)))
        await link.stop()
        return results

    results = asyncio.run(scenario())
    assert len(set(results)) == 1
    assert results[0].name == "Desk"
    assert transport.writes == [QUERY_FRAME]


def test_commands_are_written_in_order() -> None:
    transport = FakeTransport()
    link, _ = _wire(transport)

    async def scenario() -> None:
        await link.start()
        link.enqueue(SetBrightness(1.0))
        link.enqueue(SetLEDColor(HSVColor(h=0.0, s=0.0, v=0.0)))
        link.enqueue(GetDeviceInfo())
        await link.flush()
        await link.stop()

    asyncio.run(scenario())
    assert [w.hex() for w in transport.writes] == [
        "fe0301ffff",
        "fe0203000000ff",
        "fe0400ff",
    ]
    assert transport.connected is False


def test_undecodable_payload_is_skipped() -> None:
    transport = FakeTransport()
    link, cache = _wire(transport)

    async def scenario() -> None:
        await link.start()
        transport.on_chunk(bytes([0xFE, 0x01, 0x03, 0xC3, 0x28, 0x00, 0xFF]))
        transport.on_chunk(bytes([0xFE, 0x02, 0x03, 0x01, 0x02, 0x03, 0xFF]))
        transport.on_chunk(INFO_FRAME)
        await _until(lambda: cache.peek(LIGHT.id).last_known is not None)
        await link.stop()

    asyncio.run(scenario())
    assert cache.peek(LIGHT.id).last_known.name == "Desk"


def test_waiter_outlives_failed_query_write() -> None:
    transport = FakeTransport(reply=INFO_FRAME, fail_writes=1)
    link, cache = _wire(transport)

    async def scenario() -> LightInfo:
        await link.start()
        info = await asyncio.wait_for(cache.get_fresh(LIGHT.id), 2.0)
        await link.stop()
        return info

    assert asyncio.run(scenario()).name == "Desk"
    assert transport.writes == [QUERY_FRAME, QUERY_FRAME]


def test_persistent_write_failure_requeries_until_timeout() -> None:
    transport = FakeTransport(fail_writes=1000)
    link, cache = _wire(transport)

    async def scenario() -> None:
        await link.start()
        try:
            await cache.get_fresh(LIGHT.id, timeout_s=0.3)
        finally:
            await link.stop()

    with pytest.raises(StateUnavailableError):
        asyncio.run(scenario())
    assert 1 < len(transport.writes) < 20
    assert set(transport.writes) == {QUERY_FRAME}


def test_start_releases_query_from_previous_connection() -> None:
    transport = FakeTransport(reply=INFO_FRAME)
    link, cache = _wire(transport)

    async def scenario() -> LightInfo:
        reader = asyncio.create_task(cache.get_fresh(LIGHT.id, timeout_s=2.0))
        await _until(lambda: cache.peek(LIGHT.id).in_flight)
        await link.start()
        assert cache.peek(LIGHT.id).in_flight is False
        info = await reader
        await link.stop()
        return info

    assert asyncio.run(scenario()).name == "Desk"


def test_light_info_payload_matches_expected_color() -> None:
    transport = FakeTransport(reply=INFO_FRAME)
    link, cache = _wire(transport)

    async def scenario() -> LightInfo:
        await link.start()
        info = await cache.get_fresh(LIGHT.id, force=True)
        await link.stop()
        return info

    info = asyncio.run(scenario())
    assert info == LightInfo(name="Desk", is_on=True, color=HSVColor(h=0x80 / 255 * 360, s=1.0, v=1.0))

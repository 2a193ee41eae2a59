"""Per-device link: inbound decode pipeline and serialized command writes."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from homelight.core.cache import LightStateCache
from homelight.core.errors import PayloadDecodeError, TransportError
from homelight.core.model import Command, GetDeviceInfo, LightConfig, Message
from homelight.protocol.decoder import FrameDecoder
from homelight.protocol.encoder import encode_command
from homelight.protocol.payload import decode_message
from homelight.transports.base import LinkTransport

LOGGER = logging.getLogger(__name__)


class DeviceLink:
    """Owns one light's decoder, inbound chunk queue and outbound command queue.

    Chunks from the transport go through a single reader task, so the
    decoder never sees concurrent access. Commands from any number of
    producers are written by a single sender task, one at a time.
    """

    def __init__(self, light: LightConfig, transport: LinkTransport, cache: LightStateCache) -> None:
        self.light = light
        self._transport = transport
        self._cache = cache
        self._decoder = FrameDecoder()
        self._chunks: asyncio.Queue[bytes] = asyncio.Queue()
        self._outbox: asyncio.Queue[Command] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        await self._transport.connect(self._chunks.put_nowait)
        # Any query sent over a previous connection will never be answered.
        await self._cache.release_query(self.light.id)
        self._decoder.reset()
        self._tasks = [
            asyncio.create_task(self._read_loop(), name=f"homelight-read-{self.light.id}"),
            asyncio.create_task(self._send_loop(), name=f"homelight-send-{self.light.id}"),
        ]

    def enqueue(self, command: Command) -> None:
        self._outbox.put_nowait(command)

    async def flush(self) -> None:
        await self._outbox.join()

    async def stop(self, *, flush_timeout_s: float | None = 5.0) -> None:
        if not self.running:
            return
        try:
            await asyncio.wait_for(self.flush(), flush_timeout_s)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Dropping %d queued command(s) for light %d", self._outbox.qsize(), self.light.id
            )
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._transport.disconnect()

    async def _read_loop(self) -> None:
        while True:
            chunk = await self._chunks.get()
            for message in self._decoder.consume(chunk):
                await self.handle_message(message)

    async def handle_message(self, message: Message) -> None:
        LOGGER.debug("Light %d received %r", self.light.id, message)
        try:
            info = decode_message(message)
        except PayloadDecodeError as exc:
            LOGGER.warning("Skipping undecodable message from light %d: %s", self.light.id, exc)
            return
        if info is None:
            LOGGER.debug("Unhandled %s message from light %d", message.message_type.name, self.light.id)
            return
        await self._cache.observe(self.light.id, info)

    async def _send_loop(self) -> None:
        while True:
            command = await self._outbox.get()
            try:
                await self._transport.write(encode_command(command))
            except TransportError as exc:
                LOGGER.error("Could not send %r to light %d: %s", command, self.light.id, exc)
                if isinstance(command, GetDeviceInfo):
                    await self._cache.release_query(self.light.id)
            finally:
                self._outbox.task_done()

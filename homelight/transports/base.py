"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

ChunkHandler = Callable[[bytes], None]


class LinkTransport(Protocol):
    async def connect(self, on_chunk: ChunkHandler) -> None:
        """Connect and deliver every inbound notification chunk to ``on_chunk``."""

    async def write(self, payload: bytes) -> None:
        """Write one encoded command to the device."""

    async def disconnect(self) -> None:
        """Release the connection."""

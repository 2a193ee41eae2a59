"""Streaming frame decoder for light notifications.

Frame layout::

    +-------+------+--------+-------------------+-----+
    | Start | Type | Length |      Payload      | End |
    | 0xFE  | 1 B  |  1 B   |  ``Length`` bytes | 0xFF|
    +-------+------+--------+-------------------+-----+

Notifications arrive as arbitrary chunks: a chunk may hold half a frame,
several frames, or radio noise. The decoder walks bytes one at a time through
an explicit phase state so it can resume at any chunk boundary and silently
resynchronize on the next start byte after anything malformed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from homelight.core.model import Message, MessageType

FRAME_START = 0xFE
FRAME_END = 0xFF
DEVICE_COLOR_LENGTH = 3

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unsynchronized:
    pass


@dataclass(frozen=True)
class AwaitingType:
    pass


@dataclass(frozen=True)
class AwaitingLength:
    message_type: MessageType


@dataclass
class Accumulating:
    message_type: MessageType
    remaining: int
    buffer: bytearray = field(default_factory=bytearray)


DecoderState = Union[Unsynchronized, AwaitingType, AwaitingLength, Accumulating]


def _length_is_valid(message_type: MessageType, length: int) -> bool:
    if message_type is MessageType.DEVICE_COLOR:
        return length == DEVICE_COLOR_LENGTH
    return True


class FrameDecoder:
    """Recover ``Message`` values from a resynchronizing byte stream.

    A decoder instance must be owned by a single consumer; it keeps its
    cursor between ``consume`` calls.
    """

    def __init__(self) -> None:
        self._state: DecoderState = Unsynchronized()

    @property
    def state(self) -> DecoderState:
        return self._state

    def reset(self) -> None:
        self._state = Unsynchronized()

    def consume(self, data: bytes) -> list[Message]:
        messages: list[Message] = []
        for byte in data:
            message = self._step(byte)
            if message is not None:
                messages.append(message)
        return messages

    def _step(self, byte: int) -> Message | None:
        state = self._state

        if isinstance(state, Unsynchronized):
            if byte == FRAME_START:
                self._state = AwaitingType()
            return None

        if isinstance(state, AwaitingType):
            try:
                message_type = MessageType(byte)
            except ValueError:
                LOGGER.debug("Dropping frame with unknown message type 0x%02X", byte)
                self.reset()
                return None
            self._state = AwaitingLength(message_type)
            return None

        if isinstance(state, AwaitingLength):
            if not _length_is_valid(state.message_type, byte):
                LOGGER.debug(
                    "Dropping %s frame with invalid length %d",
                    state.message_type.name,
                    byte,
                )
                self.reset()
                return None
            self._state = Accumulating(state.message_type, remaining=byte)
            return None

        if state.remaining > 0:
            state.buffer.append(byte)
            state.remaining -= 1
            return None

        # Payload complete: this byte must terminate the frame.
        self.reset()
        if byte != FRAME_END:
            LOGGER.debug(
                "Dropping %s frame: expected end byte 0x%02X, got 0x%02X",
                state.message_type.name,
                FRAME_END,
                byte,
            )
            return None
        return Message(message_type=state.message_type, payload=bytes(state.buffer))

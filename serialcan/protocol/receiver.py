"""Receive loop: turns the open channel's byte stream into CAN frames.

The loop pulls one tag byte at a time:

- 't' / 'T': identifier, length digit, data digits, then a mandatory '\\r'
- '\\r': stray terminator, ignored
- anything else: ProtocolError

A frame is handed out only after its terminator has been read. The loop
never closes the transport, and it must not run while commands are being
issued over the same transport.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterator, Optional

from serialcan import metrics
from serialcan.adapters.interface import Transport
from serialcan.constants import CAN_FRAME_MAX_LENGTH, HEX_DIGITS, TERMINATOR
from serialcan.exceptions import ProtocolError, TransportTimeout
from serialcan.models.can_frame import CanFrame
from serialcan.protocol.frames import ID_DIGITS, KINDS

logger = logging.getLogger(__name__)


class ReceiveState(Enum):
    EXPECT_TAG = "expect_tag"
    DONE = "done"


def _hex_field(raw: bytes, name: str) -> int:
    if not raw or any(c not in HEX_DIGITS for c in raw):
        metrics.inc("lawicel_protocol_error")
        raise ProtocolError(f"invalid {name}: {raw!r}")
    return int(raw, 16)


class ReceiveLoop:
    """Blocking frame reader over a transport.

    Example (inspect the first 100 frames):
      for frame in ReceiveLoop(transport, count=100):
          print(hex(frame.identifier), frame.data.hex())

    Attributes:
        count: Optional number of frames after which the loop is DONE
        received: Frames emitted so far
        state: Current ReceiveState
    """

    def __init__(self, transport: Transport, count: Optional[int] = None) -> None:
        self.transport = transport
        self.count = count
        self.received = 0
        self.state = ReceiveState.EXPECT_TAG if count != 0 else ReceiveState.DONE

    def read_frame(self) -> CanFrame:
        """Read the next frame, skipping stray terminators."""
        while True:
            tag = self.transport.read(1)
            if tag == TERMINATOR:
                continue
            kind = KINDS.get(tag)
            if kind is None:
                metrics.inc("lawicel_protocol_error")
                raise ProtocolError(f"unexpected tag: {tag!r}", byte=tag)
            break

        seen = bytearray(tag)
        try:
            identifier = _hex_field(self._take(ID_DIGITS[kind], seen), "identifier")
            length = _hex_field(self._take(1, seen), "length")
            if length > CAN_FRAME_MAX_LENGTH:
                metrics.inc("lawicel_protocol_error")
                raise ProtocolError(f"invalid length ({length} != 0-8)")
            data = b""
            if length:
                data = _hex_field(self._take(2 * length, seen), "data").to_bytes(length, "big")
            end = self._take(1, seen)
        except TransportTimeout as e:
            partial = bytes(seen) + e.partial
            raise TransportTimeout(f"read timed out mid-frame after {partial!r}", partial=partial) from e

        if end != TERMINATOR:
            metrics.inc("lawicel_protocol_error")
            raise ProtocolError(f"expected terminator, got {end!r}", byte=end)

        metrics.inc("lawicel_recv")
        frame = CanFrame(kind=kind, identifier=identifier, length=length, data=data, timestamp=time.time())
        logger.debug("Received %s frame id=0x%x data=%s", kind.value, identifier, frame.data_hex)
        return frame

    def _take(self, size: int, seen: bytearray) -> bytes:
        raw = self.transport.read(size)
        seen += raw
        return raw

    @property
    def done(self) -> bool:
        return self.state is ReceiveState.DONE

    def next_frame(self) -> CanFrame:
        """Read one frame and account for it against the count bound."""
        frame = self.read_frame()
        self.received += 1
        if self.count is not None and self.received >= self.count:
            self.state = ReceiveState.DONE
        return frame

    def frames(self) -> Iterator[CanFrame]:
        while not self.done:
            yield self.next_frame()

    __iter__ = frames


def while_receiving(transport: Transport, callback: Callable[[CanFrame], None],
                    count: Optional[int] = None) -> int:
    """Pass received frames to `callback`; returns the number of frames seen."""
    loop = ReceiveLoop(transport, count=count)
    for frame in loop:
        callback(frame)
    return loop.received

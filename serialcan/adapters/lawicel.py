"""LAWICEL adapter implementing the Adapter protocol over a Transport.

open() runs the initialization sequence, send() transmits a frame and
recv()/iter_recv() run the receive loop. Command exchanges are serialized
with a lock since the transport carries one exchange at a time.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from serialcan.constants import (
    ACCEPTANCE_CODE_DEFAULT,
    ACCEPTANCE_MASK_DEFAULT,
    CAN_BITRATE_DEFAULT,
)
from serialcan.exceptions import TransportTimeout
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol import isotp
from serialcan.protocol.codec import ResponseStatus
from serialcan.protocol.commands import CloseChannel, Command, Request, StatusFlags
from serialcan.protocol.engine import Response, TransactionEngine
from serialcan.protocol.init_sequence import AdapterInitializer, InitState
from serialcan.protocol.receiver import ReceiveLoop

from .interface import TimeoutTransport, Transport


logger = logging.getLogger(__name__)


class LawicelAdapter:
    """CANUSB/CAN232 adapter driven through the LAWICEL ASCII protocol.

    Example:
      a = LawicelAdapter(SerialTransport('/dev/ttyUSB0', 19200), bitrate=125000)
      a.open()
      a.send(CanFrame.build(FrameKind.STANDARD, 0x7ff, 2, 0xbeef))
      for frame in a.iter_recv(count=20):
          print(hex(frame.identifier), frame.data.hex())
      a.close()

    It is recommended to close the channel when not receiving, a full
    adapter buffer prevents successful command replies.
    """

    def __init__(self, transport: Transport, bitrate: int = CAN_BITRATE_DEFAULT,
                 mask: int = ACCEPTANCE_MASK_DEFAULT, code: int = ACCEPTANCE_CODE_DEFAULT,
                 use_btr: bool = False) -> None:
        self.transport = transport
        self.bitrate = bitrate
        self.mask = mask
        self.code = code
        self.use_btr = use_btr
        self.engine = TransactionEngine(transport)
        self.initializer: Optional[AdapterInitializer] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.initializer is not None and self.initializer.state is InitState.READY

    def open(self) -> None:
        opener = getattr(self.transport, "open", None)
        if opener is not None:
            opener()
        with self._lock:
            self.initializer = AdapterInitializer(
                self.engine, bitrate=self.bitrate, mask=self.mask, code=self.code, use_btr=self.use_btr
            )
            self.initializer.run()

    def close(self) -> None:
        with self._lock:
            if self.is_open:
                logger.info("Closing CAN channel")
                self.engine.issue(CloseChannel())
            self.initializer = None
        self.transport.close()

    def issue(self, command: Union[str, Command, Request], **params) -> Response:
        with self._lock:
            return self.engine.issue(command, **params)

    def send(self, frame: CanFrame) -> ResponseStatus:
        logger.debug("Sending CAN frame: id=0x%x data=%s", frame.identifier, frame.data_hex)
        with self._lock:
            return self.engine.transmit(frame)

    def transmit_frame(self, kind: FrameKind = FrameKind.STANDARD, identifier: int = 0,
                       length: int = 0, data: Union[int, bytes] = 0) -> ResponseStatus:
        with self._lock:
            return self.engine.transmit_frame(kind, identifier, length, data)

    def send_isotp(self, kind: FrameKind, identifier: int, payload: bytes) -> List[ResponseStatus]:
        """Split `payload` and transmit each segment; stops at the first non-OK status."""
        statuses = []
        for segment in isotp.split(payload):
            data = segment.pack()
            status = self.transmit_frame(kind, identifier, len(data), data)
            statuses.append(status)
            if status is not ResponseStatus.OK:
                logger.warning("ISO-TP transfer to 0x%x stopped after %d segment(s)", identifier, len(statuses))
                break
        return statuses

    def version(self) -> Dict[str, str]:
        response = self.issue(Command.GET_VERSION)
        return {"hardware": response["hwv"], "software": response["swv"]}

    def serial_number(self) -> str:
        return self.issue(Command.GET_SERIAL)["serial"]

    def status_flags(self) -> StatusFlags:
        return self.issue(Command.STATUS_FLAG).flags

    def recv(self, timeout: Optional[float] = None) -> Optional[CanFrame]:
        """Receive a single frame, or None when no frame starts before the timeout.

        `timeout` is applied through the transport's set_timeout() when it has
        one; otherwise the transport's own timeout applies. The timeout is set
        and restored under the exchange lock.

        A timeout in the middle of a frame re-raises TransportTimeout: the
        partial bytes are consumed and the stream is out of sync, so the caller
        has to close and reopen the adapter.
        """
        adjustable = isinstance(self.transport, TimeoutTransport)
        with self._lock:
            if adjustable:
                previous = self.transport.timeout
                self.transport.set_timeout(timeout)
            try:
                return ReceiveLoop(self.transport).read_frame()
            except TransportTimeout as e:
                if e.partial:
                    logger.warning("Receive timed out mid-frame after %r", e.partial)
                    raise
                return None
            finally:
                if adjustable:
                    self.transport.set_timeout(previous)

    def iter_recv(self, count: Optional[int] = None) -> Iterable[CanFrame]:
        """Yield received frames; infinite unless `count` is given."""
        loop = ReceiveLoop(self.transport, count=count)
        while not loop.done:
            with self._lock:
                frame = loop.next_frame()
            yield frame

    def info(self) -> Dict[str, Any]:
        return {
            "open": self.is_open,
            "bitrate": self.bitrate,
            "mask": f"{self.mask:08X}",
            "code": f"{self.code:08X}",
            "use_btr": self.use_btr,
        }

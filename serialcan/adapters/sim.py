import logging
import threading
import time
from typing import Dict, List, Optional

from serialcan import metrics
from serialcan.constants import (
    BELL_BYTE,
    HEX_DIGITS,
    SIM_READ_TIMEOUT_DEFAULT,
    STANDARD_BITRATES,
    TERMINATOR,
    TERMINATOR_BYTE,
)
from serialcan.exceptions import DecodeError, TransportError, TransportTimeout
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol.frames import decode_frame, encode_frame

logger = logging.getLogger(__name__)

BELL = bytes([BELL_BYTE])
CR = bytes([TERMINATOR_BYTE])


class SimTransport:
    """An in-memory simulated LAWICEL adapter for testing.

    Commands written to the transport are parsed and answered the way a
    CANUSB does: setup commands are accepted only while the channel is
    closed, transmit only while it is open, and errors answer BELL.

    Usage:
      t = SimTransport()
      t.write(b"O\\r")
      t.read(1)              # b'\\r'
      t.inject_frame(frame)  # inbound traffic for the receive loop
    """

    def __init__(self, timeout: Optional[float] = SIM_READ_TIMEOUT_DEFAULT, serial: str = "A123",
                 hardware: str = "10", software: str = "12", status_flags: int = 0) -> None:
        self.timeout = timeout
        self.serial = serial
        self.hardware = hardware
        self.software = software
        self.status_flags = status_flags
        self.channel_open = False
        self.closed = False
        # every write() call, in order
        self.written: List[bytes] = []
        self.transmitted: List[CanFrame] = []
        # last accepted value per setup tag ('S', 's', 'm', 'M')
        self.registers: Dict[str, str] = {}
        # tag -> canned reply, replaces the simulated answer
        self._overrides: Dict[str, bytes] = {}
        self._pending = bytearray()
        self._rx = bytearray()
        self._cond = threading.Condition()

    # --- test helpers -----------------------------------------------------

    def override(self, tag: str, reply: bytes) -> None:
        """Answer every command starting with `tag` with `reply`."""
        self._overrides[tag] = reply

    def inject_bytes(self, data: bytes) -> None:
        with self._cond:
            self._rx += data
            self._cond.notify_all()

    def inject_frame(self, frame: CanFrame) -> None:
        self.inject_bytes(encode_frame(frame) + TERMINATOR)

    def commands(self) -> List[bytes]:
        """Written commands without terminators."""
        return [c for w in self.written for c in w.split(TERMINATOR) if c]

    # --- transport ----------------------------------------------------------

    def write(self, data: bytes) -> None:
        if self.closed:
            raise TransportError("sim transport closed", operation="write")
        self.written.append(bytes(data))
        metrics.inc("sim_write")
        self._pending += data
        while TERMINATOR in self._pending:
            idx = self._pending.index(TERMINATOR)
            cmd = bytes(self._pending[:idx])
            del self._pending[:idx + 1]
            self.inject_bytes(self._reply(cmd))

    def read(self, size: int) -> bytes:
        end = None if self.timeout is None else time.time() + self.timeout
        with self._cond:
            while len(self._rx) < size:
                if self.closed:
                    raise TransportError("sim transport closed", operation="read")
                remaining = None if end is None else end - time.time()
                if remaining is not None and remaining <= 0:
                    partial = bytes(self._rx)
                    self._rx.clear()
                    raise TransportTimeout(f"read timed out after {len(partial)}/{size} bytes", partial=partial)
                self._cond.wait(remaining)
            out = bytes(self._rx[:size])
            del self._rx[:size]
        metrics.inc("sim_read")
        return out

    def set_timeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    # --- simulated adapter ------------------------------------------------------

    def _reply(self, cmd: bytes) -> bytes:
        tag = cmd[:1].decode("ascii", errors="replace")
        if tag in self._overrides:
            return self._overrides[tag]
        if tag == "O":
            if self.channel_open:
                return BELL
            self.channel_open = True
            return CR
        if tag == "C":
            if not self.channel_open:
                return BELL
            self.channel_open = False
            return CR
        if tag == "N":
            return b"N" + self.serial.encode("ascii")
        if tag == "V":
            return b"V" + self.hardware.encode("ascii") + self.software.encode("ascii")
        if tag == "F":
            return b"F" + f"{self.status_flags:02X}".encode("ascii")
        if tag in ("S", "s", "m", "M"):
            return self._setup(tag, cmd[1:].decode("ascii", errors="replace"))
        if tag in ("t", "T"):
            return self._transmit(cmd)
        logger.debug("Sim: unknown command %r", cmd)
        return BELL

    def _setup(self, tag: str, value: str) -> bytes:
        if self.channel_open:
            return BELL
        widths = {"S": 1, "s": 4, "m": 8, "M": 8}
        if len(value) != widths[tag]:
            return BELL
        if tag == "S":
            if value not in STANDARD_BITRATES.values():
                return BELL
        elif any(c not in HEX_DIGITS for c in value.encode("ascii", errors="replace")):
            return BELL
        self.registers[tag] = value
        return CR

    def _transmit(self, cmd: bytes) -> bytes:
        if not self.channel_open:
            return BELL
        try:
            frame = decode_frame(cmd)
        except DecodeError:
            return BELL
        self.transmitted.append(frame)
        return (b"Z" if frame.kind is FrameKind.EXTENDED else b"z") + CR

"""Serial port transport using pyserial.

Configuration (via environment variables, see serialcan.config):
- SERIALCAN_DEVICE  (default: "/dev/ttyUSB0")
- SERIALCAN_SPEED   (default: 19200)
- SERIALCAN_TIMEOUT (optional read timeout in seconds, blocks forever when unset)
"""
from __future__ import annotations

import logging
import threading
from typing import Optional, Any

import serial

from serialcan.constants import SERIAL_DEVICE_DEFAULT, SERIAL_SPEED_DEFAULT
from serialcan.exceptions import TransportError, TransportTimeout


logger = logging.getLogger(__name__)


class SerialTransport:
    """Exact-size reads and writes over a pyserial port.

    Example:
      t = SerialTransport('/dev/ttyUSB0', 19200)
      t.open()
      t.write(b"V\\r")
      t.read(5)
      t.close()
    """

    def __init__(self, device: str = SERIAL_DEVICE_DEFAULT, speed: int = SERIAL_SPEED_DEFAULT,
                 timeout: Optional[float] = None) -> None:
        self.device = device
        self.speed = speed
        self.timeout = timeout
        # serial.Serial typing differs across pyserial versions
        self._port: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def open(self) -> None:
        with self._lock:
            if self._port is not None:
                return
            logger.info("Opening serial port %s at %d baud", self.device, self.speed)
            try:
                self._port = serial.Serial(self.device, self.speed, timeout=self.timeout)
            except serial.SerialException as e:
                logger.exception("Failed to open serial port %s", self.device)
                raise TransportError(f"cannot open {self.device}: {e}", operation="open", original_error=e) from e

    def close(self) -> None:
        with self._lock:
            if self._port is not None:
                logger.info("Closing serial port %s", self.device)
                try:
                    self._port.close()
                except serial.SerialException as e:
                    raise TransportError(f"cannot close {self.device}: {e}", operation="close", original_error=e) from e
                finally:
                    self._port = None

    def set_timeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout
        if self._port is not None:
            self._port.timeout = timeout

    def write(self, data: bytes) -> None:
        if self._port is None:
            raise TransportError("serial port not open", operation="write")
        try:
            self._port.write(data)
            self._port.flush()
        except serial.SerialException as e:
            logger.exception("Serial write failed")
            raise TransportError(f"write failed: {e}", operation="write", original_error=e) from e

    def read(self, size: int) -> bytes:
        if self._port is None:
            raise TransportError("serial port not open", operation="read")
        try:
            data = self._port.read(size)
        except serial.SerialException as e:
            logger.exception("Serial read failed")
            raise TransportError(f"read failed: {e}", operation="read", original_error=e) from e
        # pyserial returns short reads when the port timeout expires
        if len(data) < size:
            raise TransportTimeout(f"read timed out after {len(data)}/{size} bytes", partial=bytes(data))
        return bytes(data)

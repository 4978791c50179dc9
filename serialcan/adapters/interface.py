from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, runtime_checkable

from serialcan.models.can_frame import CanFrame

if TYPE_CHECKING:
    from serialcan.protocol.codec import ResponseStatus


class Transport(Protocol):
    """Byte channel to the adapter (serial port or simulator).

    The engine and the receive loop only ever ask for exact sizes; a
    transport that cannot deliver them raises TransportError (or
    TransportTimeout with the partial bytes).
    """

    def write(self, data: bytes) -> None:
        ...

    def read(self, size: int) -> bytes:
        """Return exactly `size` bytes, or raise TransportError."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class TimeoutTransport(Transport, Protocol):
    """Transport whose read timeout can be changed per call (used by recv())."""
    timeout: Optional[float]

    def set_timeout(self, timeout: Optional[float]) -> None:
        ...


class Adapter(Protocol):
    """Frame-level view of a CAN adapter: open the channel, send and receive."""

    def open(self) -> None:
        """Bring the channel up; raises InitializationError when a step fails."""
        ...

    def close(self) -> None:
        ...

    def send(self, frame: CanFrame) -> "ResponseStatus":
        ...

    def recv(self, timeout: Optional[float] = None) -> Optional[CanFrame]:
        """Receive a single frame, or None on timeout."""
        ...

    def iter_recv(self, count: Optional[int] = None) -> Iterable[CanFrame]:
        """Yield frames as they arrive, stopping after `count` when given."""
        ...

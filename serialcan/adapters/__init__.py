from .interface import Adapter, TimeoutTransport, Transport
from .sim import SimTransport
from .serial_port import SerialTransport

__all__ = ["Adapter", "Transport", "TimeoutTransport", "SimTransport", "SerialTransport"]

"""
Exception classes for the serialcan package.

Every error raised by the codec, the transaction engine, the initialization
sequence, the receive loop and the transports derives from SerialCanError so
callers can catch all package errors at once while still telling them apart.
"""

from typing import Any, Optional


class SerialCanError(Exception):
    """Base exception for all serialcan errors."""
    pass


class ValidationError(SerialCanError, ValueError):
    """Raised before any I/O when a value is outside its declared range.

    Attributes:
        field: Name of the offending field or parameter
        value: The rejected value
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class LengthError(ValidationError):
    """Raised for CAN frame lengths outside 0-8 and ISO-TP payloads over 4095 bytes."""
    pass


class UnknownCommandError(SerialCanError):
    """Raised when a command name does not match any catalog entry.

    Attributes:
        command: The unresolved command name
    """

    def __init__(self, message: str, command: Any = None):
        super().__init__(message)
        self.command = command


class DecodeError(SerialCanError):
    """Raised when a reply is shorter than its fixed width or is malformed.

    Attributes:
        expected: Number of bytes the descriptor requires
        received: The raw bytes that failed to decode
    """

    def __init__(self, message: str, expected: Optional[int] = None, received: Optional[bytes] = None):
        super().__init__(message)
        self.expected = expected
        self.received = received


class ProtocolError(SerialCanError):
    """Raised by the receive loop on an unexpected byte in the stream.

    Attributes:
        byte: The offending byte (None when the field was not a single byte)
    """

    def __init__(self, message: str, byte: Optional[bytes] = None):
        super().__init__(message)
        self.byte = byte


class InitializationError(SerialCanError):
    """Raised when an initialization step does not answer with a terminator.

    The adapter state after this error is undefined and needs a manual reset.

    Attributes:
        step: Step number (1-based) of the failing step
        step_name: Name of the failing step (e.g. 'set_acceptance_code')
        received: Raw status byte value received (None when nothing usable came back)
    """

    def __init__(self, message: str, step: int, step_name: str, received: Optional[int] = None):
        super().__init__(message)
        self.step = step
        self.step_name = step_name
        self.received = received


class TransportError(SerialCanError):
    """Raised by transports on write/read failures.

    Attributes:
        operation: Operation that failed ('open', 'write', 'read', 'close')
        original_error: The underlying exception, when there is one
    """

    def __init__(self, message: str, operation: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.operation = operation
        self.original_error = original_error


class TransportTimeout(TransportError):
    """Raised when a read does not complete within the transport timeout.

    Attributes:
        partial: Bytes received before the timeout expired
    """

    def __init__(self, message: str, partial: bytes = b"", operation: str = "read"):
        super().__init__(message, operation=operation)
        self.partial = partial

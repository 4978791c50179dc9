"""
CAN frame model for frames carried over the LAWICEL serial protocol.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import can

from serialcan.constants import CAN_FRAME_MAX_LENGTH, CAN_ID_MASK_EXTENDED, CAN_ID_MASK_STANDARD
from serialcan.exceptions import LengthError, ValidationError


class FrameKind(Enum):
    """CAN frame format."""
    STANDARD = "standard"  # 11-bit identifier
    EXTENDED = "extended"  # 29-bit identifier

    @property
    def id_mask(self) -> int:
        return CAN_ID_MASK_EXTENDED if self is FrameKind.EXTENDED else CAN_ID_MASK_STANDARD


@dataclass
class CanFrame:
    """Represents a CAN data frame.

    The identifier is kept as given; it is masked to the kind's bit width only
    when the frame is encoded for the wire.

    Attributes:
        kind: FrameKind.STANDARD or FrameKind.EXTENDED
        identifier: CAN identifier
        length: Data length (0-8)
        data: Frame data bytes, exactly `length` bytes
        timestamp: Optional timestamp when the frame was received (Unix timestamp)
    """
    kind: FrameKind
    identifier: int
    length: int
    data: bytes
    timestamp: Optional[float] = field(default=None, compare=False)

    def __post_init__(self):
        """Validate frame length and data after initialization."""
        if not isinstance(self.length, int) or not (0 <= self.length <= CAN_FRAME_MAX_LENGTH):
            raise LengthError(f"invalid length ({self.length} != 0-8)", field="length", value=self.length)
        if isinstance(self.data, (bytearray, memoryview)):
            self.data = bytes(self.data)
        if not isinstance(self.data, bytes):
            raise ValidationError(f"data must be bytes, got {type(self.data)}", field="data", value=self.data)
        if len(self.data) != self.length:
            raise ValidationError(
                f"data size {len(self.data)} does not match length {self.length}", field="data", value=self.data
            )

    @classmethod
    def build(cls, kind: FrameKind, identifier: int, length: int, data=0) -> "CanFrame":
        """Build a frame from an integer or bytes payload.

        Integer payloads are rendered big-endian on exactly `length` bytes, so
        build(FrameKind.STANDARD, 0x7ff, 2, 0xbeef) carries b'\\xbe\\xef'.
        """
        if not isinstance(length, int) or not (0 <= length <= CAN_FRAME_MAX_LENGTH):
            raise LengthError(f"invalid length ({length} != 0-8)", field="length", value=length)
        if isinstance(data, int):
            if data < 0 or data.bit_length() > length * 8:
                raise ValidationError(f"data 0x{data:x} does not fit in {length} bytes", field="data", value=data)
            data = data.to_bytes(length, "big")
        return cls(kind=kind, identifier=identifier, length=length, data=bytes(data))

    @property
    def is_extended(self) -> bool:
        return self.kind is FrameKind.EXTENDED

    @property
    def wire_identifier(self) -> int:
        """Identifier masked to the low 11 or 29 bits."""
        return self.identifier & self.kind.id_mask

    @property
    def data_hex(self) -> str:
        """Return frame data as hexadecimal string."""
        return self.data.hex()

    def to_message(self) -> can.Message:
        """Convert to a python-can Message (used by python-can log writers)."""
        return can.Message(
            arbitration_id=self.wire_identifier,
            data=self.data,
            dlc=self.length,
            is_extended_id=self.is_extended,
            timestamp=self.timestamp or 0.0,
        )

    @classmethod
    def from_message(cls, msg: can.Message) -> "CanFrame":
        kind = FrameKind.EXTENDED if msg.is_extended_id else FrameKind.STANDARD
        data = bytes(msg.data or b"")
        return cls(kind=kind, identifier=msg.arbitration_id, length=len(data), data=data,
                   timestamp=getattr(msg, "timestamp", None))

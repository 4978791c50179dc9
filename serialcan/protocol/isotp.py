"""ISO-TP (ISO-15765-2) segment definitions and payload segmentation.

Build the segments of a payload and send each one as a CAN frame:

    for segment in split(payload):
        data = segment.pack()
        engine.transmit_frame(FrameKind.STANDARD, 0x7ff, len(data), data)

Only the transmit direction is covered: segments are not reassembled and
Flow control replies are not parsed.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, List, Union

from serialcan.constants import (
    ISOTP_CONSECUTIVE_MAX_DATA,
    ISOTP_FIRST_MAX_DATA,
    ISOTP_FIRST_MIN_LENGTH,
    ISOTP_MAX_FLOW_FLAG,
    ISOTP_MAX_INDEX,
    ISOTP_MAX_PAYLOAD,
    ISOTP_SINGLE_MAX_DATA,
)
from serialcan.exceptions import LengthError


class SegmentType(IntEnum):
    SINGLE = 0x0
    FIRST = 0x1
    CONSECUTIVE = 0x2
    FLOW = 0x3


class FlowStatus(IntEnum):
    CONTINUE = 0x0
    WAIT = 0x1
    OVERFLOW = 0x2


@dataclass
class Single:
    """Single frame: the whole payload fits in one CAN frame."""
    header: ClassVar[SegmentType] = SegmentType.SINGLE
    dlength: int
    data: bytes = b""

    def errors(self) -> List[str]:
        errors = []
        if not (0 <= self.dlength <= ISOTP_SINGLE_MAX_DATA):
            errors.append(f"invalid length ({self.dlength} != 0-7)")
        if len(self.data) > ISOTP_SINGLE_MAX_DATA:
            errors.append(f"excessive data length ({len(self.data)} > 7)")
        elif self.dlength != len(self.data):
            errors.append(f"length mismatch ({self.dlength} != {len(self.data)})")
        return errors

    def pack(self) -> bytes:
        return bytes([(self.header << 4) | (self.dlength & 0xF)]) + self.data


@dataclass
class First:
    """First frame of a multi-frame payload; dlength is the total payload size."""
    header: ClassVar[SegmentType] = SegmentType.FIRST
    dlength: int
    data: bytes = b""

    def errors(self) -> List[str]:
        errors = []
        if not (ISOTP_FIRST_MIN_LENGTH <= self.dlength <= ISOTP_MAX_PAYLOAD):
            errors.append(f"invalid length ({self.dlength} != 8-4095)")
        if len(self.data) > ISOTP_FIRST_MAX_DATA:
            errors.append(f"excessive data length ({len(self.data)} > 6)")
        return errors

    def pack(self) -> bytes:
        dlength = self.dlength & ISOTP_MAX_PAYLOAD
        return bytes([(self.header << 4) | (dlength >> 8), dlength & 0xFF]) + self.data


@dataclass
class Consecutive:
    """Subsequent data of a multi-frame payload."""
    header: ClassVar[SegmentType] = SegmentType.CONSECUTIVE
    dindex: int
    data: bytes = b""

    def errors(self) -> List[str]:
        errors = []
        if not (0 <= self.dindex <= ISOTP_MAX_INDEX):
            errors.append(f"invalid index ({self.dindex} > 15)")
        if len(self.data) > ISOTP_CONSECUTIVE_MAX_DATA:
            errors.append(f"excessive data length ({len(self.data)} > 7)")
        return errors

    def pack(self) -> bytes:
        return bytes([(self.header << 4) | (self.dindex & 0xF)]) + self.data


@dataclass
class Flow:
    """Flow control segment (construction only)."""
    header: ClassVar[SegmentType] = SegmentType.FLOW
    fc: int = FlowStatus.CONTINUE
    block_size: int = 0
    separation_time: int = 0

    def errors(self) -> List[str]:
        errors = []
        if not (0 <= self.fc <= ISOTP_MAX_FLOW_FLAG):
            errors.append(f"invalid FC flag ({self.fc} > 2)")
        if not (0 <= self.block_size <= 0xFF):
            errors.append(f"invalid block size ({self.block_size} > 255)")
        if not (0 <= self.separation_time <= 0xFF):
            errors.append(f"invalid separation time ({self.separation_time} > 255)")
        return errors

    def pack(self) -> bytes:
        return bytes([(self.header << 4) | (int(self.fc) & 0xF), self.block_size & 0xFF, self.separation_time & 0xFF])


Segment = Union[Single, First, Consecutive, Flow]


def split(payload: bytes) -> List[Segment]:
    """Split a payload in one or more ISO-TP segments.

    Payloads up to 7 bytes give one Single segment. Longer payloads, up to
    4095 bytes, give a First segment with the first 6 bytes followed by
    Consecutive segments of up to 7 bytes whose index starts at 1 and wraps
    modulo 16.
    """
    payload = bytes(payload)
    dlength = len(payload)

    if dlength <= ISOTP_SINGLE_MAX_DATA:
        return [Single(dlength=dlength, data=payload)]
    if dlength > ISOTP_MAX_PAYLOAD:
        raise LengthError(f"invalid length ({dlength} != 0-4095)", field="payload", value=dlength)

    segments: List[Segment] = [First(dlength=dlength, data=payload[:ISOTP_FIRST_MAX_DATA])]
    rest = payload[ISOTP_FIRST_MAX_DATA:]
    for index, start in enumerate(range(0, len(rest), ISOTP_CONSECUTIVE_MAX_DATA), start=1):
        segments.append(Consecutive(dindex=index % 16, data=rest[start:start + ISOTP_CONSECUTIVE_MAX_DATA]))
    return segments

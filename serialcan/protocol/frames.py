"""Standard ('t') and Extended ('T') CAN frame encoding.

Wire shape: tag, identifier (3 or 8 hex digits), one length digit, then
2 * length hex digits of data. Digits are lowercase, the terminator is not
part of the frame.
"""
from __future__ import annotations

from serialcan.constants import (
    CAN_FRAME_MAX_LENGTH,
    CAN_ID_DIGITS_EXTENDED,
    CAN_ID_DIGITS_STANDARD,
    TAG_EXTENDED,
    TAG_STANDARD,
)
from serialcan.exceptions import DecodeError, LengthError
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol.codec import decode_hex, encode_hex

TAGS = {FrameKind.STANDARD: TAG_STANDARD, FrameKind.EXTENDED: TAG_EXTENDED}
KINDS = {tag: kind for kind, tag in TAGS.items()}
ID_DIGITS = {FrameKind.STANDARD: CAN_ID_DIGITS_STANDARD, FrameKind.EXTENDED: CAN_ID_DIGITS_EXTENDED}


def encode_frame(frame: CanFrame) -> bytes:
    """Encode a frame, masking the identifier to the kind's bit width."""
    if not (0 <= frame.length <= CAN_FRAME_MAX_LENGTH):
        raise LengthError(f"invalid length ({frame.length} != 0-8)", field="length", value=frame.length)
    return (
        TAGS[frame.kind]
        + encode_hex(frame.wire_identifier, ID_DIGITS[frame.kind], upper=False, name="identifier")
        + str(frame.length).encode("ascii")
        + frame.data.hex().encode("ascii")
    )


def frame_width(kind: FrameKind, length: int) -> int:
    """Number of wire bytes of an encoded frame, terminator excluded."""
    return 1 + ID_DIGITS[kind] + 1 + 2 * length


def decode_frame(raw: bytes) -> CanFrame:
    """Decode an encoded frame (without terminator)."""
    raw = bytes(raw)
    kind = KINDS.get(raw[:1])
    if kind is None:
        raise DecodeError(f"invalid frame kind: {raw[:1]!r}", received=raw)
    digits = ID_DIGITS[kind]
    header = 1 + digits + 1
    if len(raw) < header:
        raise DecodeError(f"frame header truncated: {raw!r}", expected=header, received=raw)
    identifier = decode_hex(raw[1:1 + digits], "identifier")
    length = decode_hex(raw[1 + digits:header], "length")
    if length > CAN_FRAME_MAX_LENGTH:
        raise DecodeError(f"invalid length ({length} != 0-8)", received=raw)
    if len(raw) < header + 2 * length:
        raise DecodeError(f"frame data truncated: {raw!r}", expected=header + 2 * length, received=raw)
    data = decode_hex(raw[header:header + 2 * length], "data") if length else 0
    return CanFrame(kind=kind, identifier=identifier, length=length, data=data.to_bytes(length, "big"))

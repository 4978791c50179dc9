"""Fixed-width ASCII field codec for LAWICEL requests and responses.

A Descriptor is an ordered list of Fields. Requests start with a one-byte
command tag followed by their fields; responses carry fields only. Widths
are counted in wire characters: an 8-character HEX field carries a 32-bit
value as 'FFFFFFFF'.
"""
from __future__ import annotations

import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from serialcan.constants import BELL_BYTE, HEX_DIGITS, STATUS_OK_LOWER, STATUS_OK_UPPER
from serialcan.exceptions import DecodeError, ValidationError


class FieldKind(Enum):
    HEX = "hex"  # integer, zero-padded uppercase hex
    TEXT = "text"  # ASCII text, verbatim
    BYTE = "byte"  # one raw unsigned byte
    REST = "rest"  # variable-length trailing bytes


class ResponseStatus(Enum):
    OK = "ok"
    ERROR = "error"
    UNKNOWN = "unknown"


def classify_status(value: Optional[int]) -> ResponseStatus:
    """Classify a status byte: BELL is an error, 'Z'/'z' are OK."""
    if value == BELL_BYTE:
        return ResponseStatus.ERROR
    if value in (STATUS_OK_UPPER, STATUS_OK_LOWER):
        return ResponseStatus.OK
    return ResponseStatus.UNKNOWN


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind
    width: int = 1
    default: Any = None


@dataclass(frozen=True)
class Descriptor:
    """Wire shape of one request or response."""
    name: str
    fields: Tuple[Field, ...] = ()
    tag: Optional[bytes] = None

    @property
    def width(self) -> int:
        """Fixed byte width (tag included, REST excluded)."""
        n = len(self.tag) if self.tag else 0
        return n + sum(f.width for f in self.fields if f.kind is not FieldKind.REST)

    @property
    def has_status(self) -> bool:
        return any(f.kind is FieldKind.BYTE for f in self.fields)


def encode_hex(value: int, width: int, upper: bool = True, name: str = "value") -> bytes:
    """Render `value` as exactly `width` zero-padded hex digits."""
    if not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}", field=name, value=value)
    text = format(value, "X" if upper else "x").rjust(width, "0")
    if len(text) > width:
        raise ValidationError(f"{name} 0x{value:X} does not fit in {width} hex digits", field=name, value=value)
    return text.encode("ascii")


def decode_hex(raw: bytes, name: str = "value") -> int:
    """Parse a field made of hex digits only."""
    raw = bytes(raw)
    if not raw or any(c not in HEX_DIGITS for c in raw):
        raise DecodeError(f"{name} is not valid hex: {raw!r}", received=raw)
    return int(raw, 16)


def _encode_field(f: Field, value: Any) -> bytes:
    if f.kind is FieldKind.HEX:
        return encode_hex(value, f.width, name=f.name)
    if f.kind is FieldKind.TEXT:
        raw = value.encode("ascii") if isinstance(value, str) else bytes(value)
        if len(raw) != f.width:
            raise ValidationError(f"{f.name} must be {f.width} characters, got {raw!r}", field=f.name, value=value)
        return raw
    if f.kind is FieldKind.BYTE:
        if not isinstance(value, int) or not (0 <= value <= 0xFF):
            raise ValidationError(f"{f.name} must be a byte, got {value!r}", field=f.name, value=value)
        return bytes([value])
    return bytes(value)


def encode(descriptor: Descriptor, values: Optional[Mapping[str, Any]] = None) -> bytes:
    """Encode `values` as tag || field1 || field2 ..., defaults filling the gaps."""
    values = values or {}
    unknown = set(values) - {f.name for f in descriptor.fields}
    if unknown:
        raise ValidationError(f"unknown fields for {descriptor.name}: {sorted(unknown)}", field=sorted(unknown)[0])
    out = bytearray(descriptor.tag or b"")
    for f in descriptor.fields:
        value = values.get(f.name, f.default)
        if value is None:
            if f.kind is FieldKind.REST:
                continue
            raise ValidationError(f"missing field {f.name} for {descriptor.name}", field=f.name)
        out += _encode_field(f, value)
    return bytes(out)


def decode(descriptor: Descriptor, raw: bytes) -> Dict[str, Any]:
    """Inverse of encode(). Raises DecodeError when `raw` is too short."""
    raw = bytes(raw)
    if len(raw) < descriptor.width:
        raise DecodeError(
            f"{descriptor.name}: expected {descriptor.width} bytes, got {len(raw)}",
            expected=descriptor.width, received=raw,
        )
    pos = 0
    if descriptor.tag:
        pos = len(descriptor.tag)
        if raw[:pos] != descriptor.tag:
            raise DecodeError(f"{descriptor.name}: unexpected tag {raw[:pos]!r}", received=raw)
    fields: Dict[str, Any] = {}
    for f in descriptor.fields:
        if f.kind is FieldKind.REST:
            fields[f.name] = raw[pos:]
            pos = len(raw)
            continue
        chunk = raw[pos:pos + f.width]
        pos += f.width
        if f.kind is FieldKind.HEX:
            fields[f.name] = decode_hex(chunk, f.name)
        elif f.kind is FieldKind.TEXT:
            fields[f.name] = chunk.decode("ascii", errors="replace")
        else:
            fields[f.name] = chunk[0]
    return fields


def hexlify(raw: bytes) -> str:
    """Printable hex dump for log lines."""
    return binascii.hexlify(raw).decode("ascii")

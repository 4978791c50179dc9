import pytest

from serialcan.exceptions import DecodeError, ValidationError
from serialcan.protocol.codec import (
    Descriptor,
    Field,
    FieldKind,
    ResponseStatus,
    classify_status,
    decode,
    decode_hex,
    encode,
    encode_hex,
)
from serialcan.protocol.commands import CATALOG, Command


MASK = Descriptor("acceptance_mask", (Field("value", FieldKind.HEX, 8),), tag=b"m")
VERSION = CATALOG[Command.GET_VERSION].response


def test_encode_hex_field_is_zero_padded():
    assert encode(MASK, {"value": 0x7FF}) == b"m000007FF"
    assert encode(MASK, {"value": 0xFFFFFFFF}) == b"mFFFFFFFF"


def test_encode_uses_field_default():
    d = Descriptor("btr", (Field("value", FieldKind.HEX, 4, 0x431C),), tag=b"s")
    assert encode(d) == b"s431C"


def test_encode_rejects_unknown_and_missing_fields():
    with pytest.raises(ValidationError):
        encode(MASK, {"value": 1, "bogus": 2})
    with pytest.raises(ValidationError) as exc:
        encode(MASK, {})
    assert exc.value.field == "value"


def test_encode_hex_overflow_and_negative():
    with pytest.raises(ValidationError):
        encode_hex(0x1FFFF, 4)
    with pytest.raises(ValidationError):
        encode_hex(-1, 2)
    assert encode_hex(0xab, 3, upper=False) == b"0ab"


def test_descriptor_width_counts_tag_and_fields():
    assert MASK.width == 9
    assert VERSION.width == 5
    assert CATALOG[Command.TRANSMIT].request.width == 0
    assert CATALOG[Command.OPEN_CHANNEL].response.has_status
    assert not VERSION.has_status


def test_decode_version_reply():
    fields = decode(VERSION, b"V1012")
    assert fields == {"cmd": "V", "hwv": "10", "swv": "12"}


def test_decode_status_byte():
    fields = decode(CATALOG[Command.OPEN_CHANNEL].response, b"\r")
    assert fields["return_code"] == 0x0D


def test_decode_short_input_raises():
    with pytest.raises(DecodeError) as exc:
        decode(VERSION, b"V10")
    assert exc.value.expected == 5
    assert exc.value.received == b"V10"


def test_decode_tag_mismatch_and_bad_hex():
    with pytest.raises(DecodeError):
        decode(MASK, b"M000007FF")
    with pytest.raises(DecodeError):
        decode(MASK, b"m0000ZZZZ")


@pytest.mark.parametrize("raw", [b" 7FF", b"7_FF", b"+7FF", b"7FF ", b""])
def test_decode_hex_rejects_non_hex_characters(raw):
    with pytest.raises(DecodeError):
        decode_hex(raw)


def test_decode_hex_accepts_both_cases():
    assert decode_hex(b"7fF") == 0x7FF


def test_classify_status():
    assert classify_status(0x07) is ResponseStatus.ERROR
    assert classify_status(0x5A) is ResponseStatus.OK
    assert classify_status(0x7A) is ResponseStatus.OK
    assert classify_status(0x0D) is ResponseStatus.UNKNOWN
    assert classify_status(None) is ResponseStatus.UNKNOWN

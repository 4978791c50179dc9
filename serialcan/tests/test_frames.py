import can
import pytest

from serialcan.exceptions import DecodeError, LengthError, ValidationError
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol.frames import decode_frame, encode_frame, frame_width


def test_encode_standard_frame():
    frame = CanFrame.build(FrameKind.STANDARD, 0x7ff, 2, 0xbeef)
    assert encode_frame(frame) == b"t7ff2beef"


def test_encode_masks_identifier():
    frame = CanFrame.build(FrameKind.STANDARD, 0x1FFF, 0)
    assert encode_frame(frame) == b"t7ff0"
    ext = CanFrame.build(FrameKind.EXTENDED, 0xFFFFFFFF, 1, 0x01)
    assert encode_frame(ext) == b"T1fffffff101"


def test_encode_extended_pads_identifier():
    frame = CanFrame.build(FrameKind.EXTENDED, 0x123, 3, b"\x01\x02\x03")
    assert encode_frame(frame) == b"T000001233010203"
    assert frame_width(FrameKind.EXTENDED, 3) == len(encode_frame(frame))


def test_length_out_of_range_raises_before_encoding():
    with pytest.raises(LengthError):
        CanFrame.build(FrameKind.STANDARD, 0x100, 9, 0)
    with pytest.raises(LengthError):
        CanFrame(kind=FrameKind.STANDARD, identifier=0x100, length=-1, data=b"")


def test_build_rejects_oversized_int_payload():
    with pytest.raises(ValidationError):
        CanFrame.build(FrameKind.STANDARD, 0x100, 1, 0x1234)


def test_data_must_match_length():
    with pytest.raises(ValidationError):
        CanFrame(kind=FrameKind.STANDARD, identifier=0x100, length=2, data=b"\x01")


def test_decode_frame():
    frame = decode_frame(b"t1233010203")
    assert frame.kind is FrameKind.STANDARD
    assert frame.identifier == 0x123
    assert frame.data == b"\x01\x02\x03"
    assert decode_frame(encode_frame(frame)) == frame


@pytest.mark.parametrize("kind, identifier", [
    (FrameKind.STANDARD, 0x7FF),
    (FrameKind.EXTENDED, 0x1FFFFFFF),
    (FrameKind.STANDARD, 0x0),
    (FrameKind.EXTENDED, 0x0),
])
@pytest.mark.parametrize("length", range(9))
def test_decode_inverts_encode(kind, identifier, length):
    frame = CanFrame.build(kind, identifier, length, bytes((0xA5 + i) & 0xFF for i in range(length)))
    raw = encode_frame(frame)
    assert len(raw) == frame_width(kind, length)
    assert decode_frame(raw) == frame


def test_decode_frame_rejects_non_hex():
    with pytest.raises(DecodeError):
        decode_frame(b"t7_f0")
    with pytest.raises(DecodeError):
        decode_frame(b"t7ff2 bef")


def test_decode_frame_errors():
    with pytest.raises(DecodeError):
        decode_frame(b"x1230")
    with pytest.raises(DecodeError):
        decode_frame(b"t12")
    with pytest.raises(DecodeError):
        decode_frame(b"t1239")
    with pytest.raises(DecodeError):
        decode_frame(b"t1232be")


def test_python_can_message_conversion():
    frame = CanFrame.build(FrameKind.EXTENDED, 0x18DAF110, 2, b"\x10\x20")
    msg = frame.to_message()
    assert isinstance(msg, can.Message)
    assert msg.arbitration_id == 0x18DAF110
    assert msg.is_extended_id
    assert bytes(msg.data) == b"\x10\x20"

    back = CanFrame.from_message(can.Message(arbitration_id=0x100, data=b"\xaa", is_extended_id=False))
    assert back.kind is FrameKind.STANDARD
    assert back.identifier == 0x100
    assert back.length == 1

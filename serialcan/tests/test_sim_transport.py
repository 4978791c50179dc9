import pytest

from serialcan import metrics
from serialcan.exceptions import TransportError, TransportTimeout
from serialcan.models.can_frame import CanFrame, FrameKind


def test_open_close_replies(sim):
    sim.write(b"O\r")
    assert sim.read(1) == b"\r"
    sim.write(b"O\r")
    assert sim.read(1) == b"\x07"
    sim.write(b"C\r")
    assert sim.read(1) == b"\r"
    assert not sim.channel_open


def test_setup_rejected_while_open(sim):
    sim.write(b"S4\r")
    assert sim.read(1) == b"\r"
    sim.write(b"O\r")
    sim.read(1)
    sim.write(b"m000007FF\r")
    assert sim.read(1) == b"\x07"
    assert "m" not in sim.registers


def test_setup_checks_width(sim):
    sim.write(b"m7FF\r")
    assert sim.read(1) == b"\x07"
    sim.write(b"S9\r")
    assert sim.read(1) == b"\x07"


def test_setup_rejects_non_hex_register(sim):
    sim.write(b"m0000_7FF\r")
    assert sim.read(1) == b"\x07"
    sim.write(b"s 31C\r")
    assert sim.read(1) == b"\x07"
    assert sim.registers == {}


def test_transmit_requires_open_channel(sim):
    sim.write(b"t7ff2beef\r")
    assert sim.read(1) == b"\x07"
    sim.write(b"O\r")
    sim.read(1)
    sim.write(b"t7ff2beef\r")
    assert sim.read(2) == b"z\r"
    sim.write(b"T000001230\r")
    assert sim.read(2) == b"Z\r"
    assert sim.transmitted[0] == CanFrame.build(FrameKind.STANDARD, 0x7ff, 2, 0xbeef)


def test_queries():
    from serialcan.adapters.sim import SimTransport
    t = SimTransport(timeout=0.1, serial="B777", hardware="01", software="02", status_flags=0x20)
    t.write(b"N\rV\rF\r")
    assert t.read(5) == b"NB777"
    assert t.read(5) == b"V0102"
    assert t.read(3) == b"F20"
    assert metrics.get_all().get("sim_write") == 1


def test_read_timeout_reports_partial(sim):
    sim.inject_bytes(b"t12")
    with pytest.raises(TransportTimeout) as exc:
        sim.read(5)
    assert exc.value.partial == b"t12"


def test_closed_transport_raises(sim):
    sim.close()
    with pytest.raises(TransportError):
        sim.write(b"O\r")


def test_inject_frame(sim):
    sim.inject_frame(CanFrame.build(FrameKind.STANDARD, 0x100, 1, 0xaa))
    assert sim.read(7) == b"t1001aa"
    assert sim.read(1) == b"\r"

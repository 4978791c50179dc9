import pytest
import serial

import serialcan.adapters.serial_port as serial_mod
from serialcan.adapters.lawicel import LawicelAdapter
from serialcan.exceptions import TransportError, TransportTimeout


class DummySerial:
    def __init__(self, port, baudrate, timeout=None):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.written = bytearray()
        self.incoming = bytearray()
        self.closed = False

    def write(self, data):
        self.written += data
        # every setup command and O/C answer a bare CR
        self.incoming += b"\r" * data.count(b"\r")
        return len(data)

    def flush(self):
        pass

    def read(self, size):
        out = bytes(self.incoming[:size])
        del self.incoming[:size]
        return out

    def close(self):
        self.closed = True


@pytest.fixture
def dummy(monkeypatch):
    created = []

    def fake_serial(port, baudrate, timeout=None):
        s = DummySerial(port, baudrate, timeout)
        created.append(s)
        return s

    monkeypatch.setattr(serial_mod.serial, "Serial", fake_serial)
    return created


def test_open_passes_port_settings(dummy):
    t = serial_mod.SerialTransport("/dev/ttyUSB3", 57600, timeout=0.5)
    t.open()
    assert dummy[0].port == "/dev/ttyUSB3"
    assert dummy[0].baudrate == 57600
    assert dummy[0].timeout == 0.5
    t.set_timeout(2.0)
    assert dummy[0].timeout == 2.0
    t.close()
    assert dummy[0].closed
    assert not t.is_open


def test_short_read_raises_timeout(dummy):
    t = serial_mod.SerialTransport()
    t.open()
    dummy[0].incoming += b"V1"
    with pytest.raises(TransportTimeout) as exc:
        t.read(5)
    assert exc.value.partial == b"V1"


def test_io_requires_open_port():
    t = serial_mod.SerialTransport()
    with pytest.raises(TransportError):
        t.write(b"O\r")
    with pytest.raises(TransportError):
        t.read(1)


def test_open_failure_is_wrapped(monkeypatch):
    def broken(*args, **kwargs):
        raise serial.SerialException("no such device")

    monkeypatch.setattr(serial_mod.serial, "Serial", broken)
    t = serial_mod.SerialTransport("/dev/missing")
    with pytest.raises(TransportError) as exc:
        t.open()
    assert exc.value.operation == "open"
    assert isinstance(exc.value.original_error, serial.SerialException)


def test_adapter_over_serial(dummy):
    a = LawicelAdapter(serial_mod.SerialTransport("/dev/ttyUSB0", 19200), bitrate=125000)
    a.open()
    assert bytes(dummy[0].written) == b"C\rS4\rmFFFFFFFF\rM00000000\rO\r"
    assert a.is_open

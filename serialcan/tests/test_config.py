import json

import pytest

from serialcan.adapters.lawicel import LawicelAdapter
from serialcan.adapters.serial_port import SerialTransport
from serialcan.adapters.sim import SimTransport
from serialcan.config import ConfigManager
from serialcan.exceptions import ValidationError


def test_defaults():
    config = ConfigManager(env={})
    assert config.serial.device == "/dev/ttyUSB0"
    assert config.serial.speed == 19200
    assert config.bus.bitrate == 125000
    assert config.bus.mask == 0xFFFFFFFF
    assert config.validate() == []


def test_env_overrides():
    env = {
        "SERIALCAN_TRANSPORT": "sim",
        "SERIALCAN_BITRATE": "500000",
        "SERIALCAN_MASK": "0x7FF",
        "SERIALCAN_USE_BTR": "yes",
        "SERIALCAN_TIMEOUT": "0.5",
    }
    config = ConfigManager(env=env)
    assert config.serial.transport == "sim"
    assert config.bus.bitrate == 500000
    assert config.bus.mask == 0x7FF
    assert config.bus.use_btr is True
    assert config.serial.timeout == 0.5


def test_bad_env_value():
    with pytest.raises(ValidationError) as exc:
        ConfigManager(env={"SERIALCAN_SPEED": "fast"})
    assert exc.value.field == "SERIALCAN_SPEED"


def test_file_then_env(tmp_path):
    path = tmp_path / "serialcan.json"
    path.write_text(json.dumps({"serial": {"device": "COM3", "bogus": 1}, "bus": {"bitrate": 250000}}))
    config = ConfigManager(env={"SERIALCAN_CONFIG": str(path), "SERIALCAN_BITRATE": "1000000"})
    assert config.serial.device == "COM3"
    assert config.bus.bitrate == 1000000


def test_save_round_trip(tmp_path):
    path = tmp_path / "out.json"
    config = ConfigManager(env={
        "SERIALCAN_TRANSPORT": "sim",
        "SERIALCAN_DEVICE": "COM7",
        "SERIALCAN_TIMEOUT": "0.25",
        "SERIALCAN_CODE": "0x100",
        "SERIALCAN_USE_BTR": "1",
        "SERIALCAN_LOG_LEVEL": "DEBUG",
    })
    config.save(str(path))
    assert json.loads(path.read_text())["bus"]["code"] == 0x100

    loaded = ConfigManager(config_path=str(path), env={})
    assert loaded.to_dict() == config.to_dict()
    assert loaded.serial.device == "COM7"
    assert loaded.bus.use_btr is True
    assert loaded.app.log_level == "DEBUG"


def test_validation_errors():
    config = ConfigManager(env={})
    config.serial.transport = "usb"
    config.bus.bitrate = 42
    config.app.log_level = "LOUD"
    errors = config.validate()
    assert len(errors) == 3
    with pytest.raises(ValidationError):
        config.create_adapter()


def test_create_adapter():
    sim = ConfigManager(env={"SERIALCAN_TRANSPORT": "sim"}).create_adapter()
    assert isinstance(sim, LawicelAdapter)
    assert isinstance(sim.transport, SimTransport)
    real = ConfigManager(env={"SERIALCAN_DEVICE": "/dev/ttyACM0"}).create_transport()
    assert isinstance(real, SerialTransport)
    assert real.device == "/dev/ttyACM0"
    assert not real.is_open

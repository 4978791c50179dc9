"""
Configuration management for serialcan.

This module provides centralized configuration management, supporting:
- Loading from JSON config files
- Environment variable overrides (SERIALCAN_*)
- Validation of all settings
- Building the configured transport and adapter
"""

import os
import json
import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, List

from serialcan.constants import (
    ACCEPTANCE_CODE_DEFAULT, ACCEPTANCE_MASK_DEFAULT, CAN_BITRATE_DEFAULT,
    SERIAL_DEVICE_DEFAULT, SERIAL_SPEED_DEFAULT, SIM_READ_TIMEOUT_DEFAULT,
    STANDARD_BITRATES, BTR_BITRATES,
)
from serialcan.exceptions import ValidationError

logger = logging.getLogger(__name__)

TRANSPORTS = ('serial', 'sim')


@dataclass
class SerialSettings:
    """Serial transport settings.

    Attributes:
        transport: 'serial' for a real adapter, 'sim' for the in-memory simulator
        device: Serial character device (e.g. '/dev/ttyUSB0', 'COM3')
        speed: Serial baud rate
        timeout: Read timeout in seconds (None blocks forever)
    """
    transport: str = 'serial'
    device: str = SERIAL_DEVICE_DEFAULT
    speed: int = SERIAL_SPEED_DEFAULT
    timeout: Optional[float] = None

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        if self.transport not in TRANSPORTS:
            errors.append(f"Transport must be one of {TRANSPORTS}")
        if not self.device or not isinstance(self.device, str):
            errors.append("Serial device must be a non-empty string")
        if not isinstance(self.speed, int) or self.speed <= 0:
            errors.append("Serial speed must be a positive integer")
        if self.timeout is not None and (not isinstance(self.timeout, (int, float)) or self.timeout <= 0):
            errors.append("Serial timeout must be a positive number or None")
        return errors


@dataclass
class BusSettings:
    """CAN bus settings applied by the initialization sequence.

    Attributes:
        bitrate: CAN bitrate in bps (one of the predefined rates)
        mask: Acceptance mask register (AMn)
        code: Acceptance code register (ACn)
        use_btr: Program BTR0/BTR1 instead of a predefined bitrate code
    """
    bitrate: int = CAN_BITRATE_DEFAULT
    mask: int = ACCEPTANCE_MASK_DEFAULT
    code: int = ACCEPTANCE_CODE_DEFAULT
    use_btr: bool = False

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        table = BTR_BITRATES if self.use_btr else STANDARD_BITRATES
        if self.bitrate not in table:
            errors.append(f"Bitrate must be one of {sorted(table)}")
        for name in ('mask', 'code'):
            value = getattr(self, name)
            if not isinstance(value, int) or not (0 <= value <= 0xFFFFFFFF):
                errors.append(f"Acceptance {name} must be a 32-bit unsigned integer")
        return errors


@dataclass
class AppSettings:
    """Application-level settings.

    Attributes:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
    """
    log_level: str = 'INFO'

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.log_level.upper() not in valid_levels:
            errors.append(f"Log level must be one of {valid_levels}")
        return errors


def _int(value: str) -> int:
    # accepts '125000' as well as '0x7FF'
    return int(value, 0)


def _bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _optional_float(value: str) -> Optional[float]:
    return float(value) if value.strip() else None


# env var -> (section, attribute, parser)
ENV_VARS = {
    'SERIALCAN_TRANSPORT': ('serial', 'transport', str),
    'SERIALCAN_DEVICE': ('serial', 'device', str),
    'SERIALCAN_SPEED': ('serial', 'speed', _int),
    'SERIALCAN_TIMEOUT': ('serial', 'timeout', _optional_float),
    'SERIALCAN_BITRATE': ('bus', 'bitrate', _int),
    'SERIALCAN_MASK': ('bus', 'mask', _int),
    'SERIALCAN_CODE': ('bus', 'code', _int),
    'SERIALCAN_USE_BTR': ('bus', 'use_btr', _bool),
    'SERIALCAN_LOG_LEVEL': ('app', 'log_level', str),
}


class ConfigManager:
    """Centralized configuration manager.

    Settings are loaded with priority (highest last):
    1. Dataclass defaults
    2. JSON config file (SERIALCAN_CONFIG or explicit path)
    3. Environment variables

    Example:
        >>> config = ConfigManager()
        >>> config.serial.device
        '/dev/ttyUSB0'
    """

    def __init__(self, config_path: Optional[str] = None, env: Optional[Dict[str, str]] = None):
        """Initialize the configuration manager.

        Args:
            config_path: Optional JSON config file path (defaults to $SERIALCAN_CONFIG)
            env: Environment mapping (defaults to os.environ)
        """
        self.env = os.environ if env is None else env
        self.config_path = config_path or self.env.get('SERIALCAN_CONFIG')
        self.serial = SerialSettings()
        self.bus = BusSettings()
        self.app = AppSettings()

        if self.config_path:
            self.load_file(self.config_path)
        self.load_env()

    def _section(self, name: str):
        return getattr(self, name)

    def load_file(self, path: str) -> None:
        """Load settings from a JSON file; unknown keys are ignored with a warning."""
        with open(path, 'r', encoding='utf-8') as fh:
            data = json.load(fh)
        for section_name in ('serial', 'bus', 'app'):
            section = self._section(section_name)
            for key, value in (data.get(section_name) or {}).items():
                if not hasattr(section, key):
                    logger.warning(f"Ignoring unknown setting {section_name}.{key} in {path}")
                    continue
                setattr(section, key, value)
        logger.debug(f"Loaded configuration from {path}")

    def load_env(self) -> None:
        """Apply SERIALCAN_* environment variables."""
        for var, (section_name, attr, parse) in ENV_VARS.items():
            raw = self.env.get(var)
            if raw is None:
                continue
            try:
                setattr(self._section(section_name), attr, parse(raw))
            except ValueError as e:
                raise ValidationError(f"Invalid value for {var}: {raw!r}", field=var, value=raw) from e

    def validate(self) -> List[str]:
        """Validate all settings and return a list of error messages."""
        return self.serial.validate() + self.bus.validate() + self.app.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {'serial': asdict(self.serial), 'bus': asdict(self.bus), 'app': asdict(self.app)}

    def save(self, path: str) -> None:
        """Write the current settings to a JSON file."""
        with open(path, 'w', encoding='utf-8') as fh:
            json.dump(self.to_dict(), fh, indent=2, sort_keys=True)
        logger.info(f"Configuration saved to {path}")

    def create_transport(self):
        """Build (but do not open) the configured transport."""
        if self.serial.transport == 'sim':
            from serialcan.adapters.sim import SimTransport
            return SimTransport(timeout=self.serial.timeout or SIM_READ_TIMEOUT_DEFAULT)
        from serialcan.adapters.serial_port import SerialTransport
        return SerialTransport(self.serial.device, self.serial.speed, timeout=self.serial.timeout)

    def create_adapter(self):
        """Build the LawicelAdapter for the configured transport and bus settings."""
        errors = self.validate()
        if errors:
            raise ValidationError("Invalid configuration: " + "; ".join(errors))
        from serialcan.adapters.lawicel import LawicelAdapter
        return LawicelAdapter(
            self.create_transport(), bitrate=self.bus.bitrate, mask=self.bus.mask,
            code=self.bus.code, use_btr=self.bus.use_btr,
        )

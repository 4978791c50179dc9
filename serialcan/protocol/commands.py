"""LAWICEL command catalog.

Each Command maps to a request Descriptor (tag + fields) and a response
Descriptor of fixed width. Request values are per-command dataclasses:

    issue(BtrSetup(bitrate=125000))
    issue("acceptance_mask", mask=0x7FF)

See the CANUSB manual for the command set.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union

from serialcan.constants import (
    ACCEPTANCE_CODE_DEFAULT,
    ACCEPTANCE_MASK_DEFAULT,
    BTR_BITRATES,
    CAN_BITRATE_DEFAULT,
    STANDARD_BITRATES,
)
from serialcan.exceptions import UnknownCommandError, ValidationError
from serialcan.models.can_frame import CanFrame
from serialcan.protocol.codec import Descriptor, Field, FieldKind
from serialcan.protocol.frames import encode_frame


class Command(Enum):
    OPEN_CHANNEL = "open_channel"
    CLOSE_CHANNEL = "close_channel"
    GET_SERIAL = "get_serial"
    GET_VERSION = "get_version"
    STATUS_FLAG = "status_flag"
    STANDARD_SETUP = "standard_setup"
    BTR_SETUP = "btr_setup"
    ACCEPTANCE_MASK = "acceptance_mask"
    ACCEPTANCE_CODE = "acceptance_code"
    TRANSMIT = "transmit"


@dataclass(frozen=True)
class CommandSpec:
    request: Descriptor
    response: Descriptor


_STATUS = (Field("return_code", FieldKind.BYTE),)


def _status_reply(name: str) -> Descriptor:
    return Descriptor(name, _STATUS)


CATALOG: Dict[Command, CommandSpec] = {
    Command.OPEN_CHANNEL: CommandSpec(
        Descriptor("open_channel", tag=b"O"), _status_reply("open_channel")),
    Command.CLOSE_CHANNEL: CommandSpec(
        Descriptor("close_channel", tag=b"C"), _status_reply("close_channel")),
    Command.GET_SERIAL: CommandSpec(
        Descriptor("get_serial", tag=b"N"),
        Descriptor("get_serial", (
            Field("cmd", FieldKind.TEXT, 1),
            Field("serial", FieldKind.TEXT, 4),
        ))),
    Command.GET_VERSION: CommandSpec(
        Descriptor("get_version", tag=b"V"),
        Descriptor("get_version", (
            Field("cmd", FieldKind.TEXT, 1),
            Field("hwv", FieldKind.TEXT, 2),
            Field("swv", FieldKind.TEXT, 2),
        ))),
    Command.STATUS_FLAG: CommandSpec(
        Descriptor("status_flag", tag=b"F"),
        Descriptor("status_flag", (
            Field("cmd", FieldKind.TEXT, 1),
            Field("status_flag", FieldKind.HEX, 2),
        ))),
    Command.STANDARD_SETUP: CommandSpec(
        Descriptor("standard_setup", (
            Field("value", FieldKind.TEXT, 1, STANDARD_BITRATES[CAN_BITRATE_DEFAULT]),
        ), tag=b"S"),
        _status_reply("standard_setup")),
    Command.BTR_SETUP: CommandSpec(
        Descriptor("btr_setup", (
            Field("value", FieldKind.HEX, 4, BTR_BITRATES[CAN_BITRATE_DEFAULT]),
        ), tag=b"s"),
        _status_reply("btr_setup")),
    Command.ACCEPTANCE_MASK: CommandSpec(
        Descriptor("acceptance_mask", (
            Field("value", FieldKind.HEX, 8, ACCEPTANCE_MASK_DEFAULT),
        ), tag=b"m"),
        _status_reply("acceptance_mask")),
    Command.ACCEPTANCE_CODE: CommandSpec(
        Descriptor("acceptance_code", (
            Field("value", FieldKind.HEX, 8, ACCEPTANCE_CODE_DEFAULT),
        ), tag=b"M"),
        _status_reply("acceptance_code")),
    # the encoded frame carries its own 't'/'T' tag
    Command.TRANSMIT: CommandSpec(
        Descriptor("transmit", (Field("frame", FieldKind.REST),)),
        _status_reply("transmit")),
}


# --- request values -----------------------------------------------------------

class Request:
    """Base class of request values."""
    command: ClassVar[Command]

    def values(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class OpenChannel(Request):
    command: ClassVar[Command] = Command.OPEN_CHANNEL


@dataclass(frozen=True)
class CloseChannel(Request):
    command: ClassVar[Command] = Command.CLOSE_CHANNEL


@dataclass(frozen=True)
class GetSerial(Request):
    command: ClassVar[Command] = Command.GET_SERIAL


@dataclass(frozen=True)
class GetVersion(Request):
    command: ClassVar[Command] = Command.GET_VERSION


@dataclass(frozen=True)
class StatusFlag(Request):
    command: ClassVar[Command] = Command.STATUS_FLAG


@dataclass(frozen=True)
class StandardSetup(Request):
    """Select one of the predefined bitrates (10k-1M)."""
    command: ClassVar[Command] = Command.STANDARD_SETUP
    bitrate: int = CAN_BITRATE_DEFAULT

    def __post_init__(self):
        if self.bitrate not in STANDARD_BITRATES:
            raise ValidationError(f"unsupported bitrate: {self.bitrate}", field="bitrate", value=self.bitrate)

    def values(self) -> Dict[str, Any]:
        return {"value": STANDARD_BITRATES[self.bitrate]}


@dataclass(frozen=True)
class BtrSetup(Request):
    """Program BTR0/BTR1 directly.

    `value` takes precedence over `bitrate` and allows arbitrary register
    values; `bitrate` is looked up in the BTR table.
    """
    command: ClassVar[Command] = Command.BTR_SETUP
    bitrate: Optional[int] = CAN_BITRATE_DEFAULT
    value: Optional[int] = None

    def __post_init__(self):
        if self.value is None and self.bitrate not in BTR_BITRATES:
            raise ValidationError(f"unsupported bitrate: {self.bitrate}", field="bitrate", value=self.bitrate)
        if self.value is not None and not (0 <= self.value <= 0xFFFF):
            raise ValidationError(f"BTR value 0x{self.value:X} out of range", field="value", value=self.value)

    def values(self) -> Dict[str, Any]:
        return {"value": self.value if self.value is not None else BTR_BITRATES[self.bitrate]}


def _check_register(name: str, value: int) -> None:
    if not isinstance(value, int) or not (0 <= value <= 0xFFFFFFFF):
        raise ValidationError(f"{name} must fit in 32 bits, got {value!r}", field=name, value=value)


@dataclass(frozen=True)
class AcceptanceMask(Request):
    """AMn register of the SJA1000, receive all frames by default."""
    command: ClassVar[Command] = Command.ACCEPTANCE_MASK
    mask: int = ACCEPTANCE_MASK_DEFAULT

    def __post_init__(self):
        _check_register("mask", self.mask)

    def values(self) -> Dict[str, Any]:
        return {"value": self.mask}


@dataclass(frozen=True)
class AcceptanceCode(Request):
    """ACn register of the SJA1000."""
    command: ClassVar[Command] = Command.ACCEPTANCE_CODE
    code: int = ACCEPTANCE_CODE_DEFAULT

    def __post_init__(self):
        _check_register("code", self.code)

    def values(self) -> Dict[str, Any]:
        return {"value": self.code}


@dataclass(frozen=True)
class Transmit(Request):
    command: ClassVar[Command] = Command.TRANSMIT
    frame: CanFrame

    def values(self) -> Dict[str, Any]:
        return {"frame": encode_frame(self.frame)}


REQUEST_TYPES = {
    Command.OPEN_CHANNEL: OpenChannel,
    Command.CLOSE_CHANNEL: CloseChannel,
    Command.GET_SERIAL: GetSerial,
    Command.GET_VERSION: GetVersion,
    Command.STATUS_FLAG: StatusFlag,
    Command.STANDARD_SETUP: StandardSetup,
    Command.BTR_SETUP: BtrSetup,
    Command.ACCEPTANCE_MASK: AcceptanceMask,
    Command.ACCEPTANCE_CODE: AcceptanceCode,
    Command.TRANSMIT: Transmit,
}


def resolve_command(command: Union[str, Command]) -> Command:
    if isinstance(command, Command):
        return command
    try:
        return Command(command)
    except ValueError:
        raise UnknownCommandError(f"invalid command: {command!r}", command=command) from None


def build_request(command: Union[str, Command, Request], **params) -> Request:
    """Return a request value for a name, Command or ready-made request."""
    if isinstance(command, Request):
        if params:
            raise ValidationError(f"parameters not allowed with a request instance: {sorted(params)}")
        return command
    kind = resolve_command(command)
    try:
        return REQUEST_TYPES[kind](**params)
    except TypeError as e:
        raise ValidationError(f"invalid parameters for {kind.value}: {e}") from e


# --- status flags -------------------------------------------------------------

@dataclass(frozen=True)
class StatusFlags:
    """Decoded reply of the 'F' command."""
    value: int

    def _bit(self, n: int) -> bool:
        return bool((self.value >> n) & 1)

    @property
    def rx_queue_full(self) -> bool:
        return self._bit(7)

    @property
    def tx_queue_full(self) -> bool:
        return self._bit(6)

    @property
    def error_warning(self) -> bool:
        return self._bit(5)

    @property
    def data_overrun(self) -> bool:
        return self._bit(4)

    @property
    def error_passive(self) -> bool:
        return self._bit(2)

    @property
    def arbitration_lost(self) -> bool:
        return self._bit(1)

    @property
    def bus_error(self) -> bool:
        return self._bit(0)

    def dump(self) -> Dict[str, Any]:
        return {
            "status_flag": f"{self.value:02X}",
            "rx_queue_full": self.rx_queue_full,
            "tx_queue_full": self.tx_queue_full,
            "error_warning": self.error_warning,
            "data_overrun": self.data_overrun,
            "error_passive": self.error_passive,
            "arbitration_lost": self.arbitration_lost,
            "bus_error": self.bus_error,
        }

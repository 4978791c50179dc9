"""Synchronous request/response exchanges with a LAWICEL adapter.

One call, one write, one read: the protocol has no request identifiers, so
a second exchange must not start before the previous reply has been read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from serialcan import metrics
from serialcan.adapters.interface import Transport
from serialcan.constants import TERMINATOR
from serialcan.exceptions import DecodeError, ValidationError
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol.codec import ResponseStatus, classify_status, decode, encode, hexlify
from serialcan.protocol.commands import CATALOG, Command, Request, StatusFlags, Transmit, build_request

logger = logging.getLogger(__name__)


@dataclass
class Response:
    """Decoded reply of one command."""
    command: Command
    fields: Dict[str, Any]
    raw: bytes = field(repr=False, default=b"")

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    @property
    def return_code(self) -> Optional[int]:
        """Raw trailing status byte, None for replies without one."""
        return self.fields.get("return_code")

    @property
    def status(self) -> Optional[ResponseStatus]:
        if self.return_code is None:
            return None
        return classify_status(self.return_code)

    @property
    def flags(self) -> Optional[StatusFlags]:
        if self.command is not Command.STATUS_FLAG:
            return None
        return StatusFlags(self.fields["status_flag"])


class TransactionEngine:
    """Drives request/response exchanges over a transport.

    Example:
      engine = TransactionEngine(transport)
      engine.issue("btr_setup", bitrate=125000)
      engine.transmit_frame(FrameKind.STANDARD, 0x7ff, 2, 0xbeef)
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def issue(self, command: Union[str, Command, Request], **params) -> Response:
        request = build_request(command, **params)
        spec = CATALOG[request.command]
        payload = encode(spec.request, request.values()) + TERMINATOR
        width = spec.response.width

        logger.debug("-> %s %r", request.command.value, payload)
        self.transport.write(payload)
        reply = self.transport.read(width)
        logger.debug("<- %s %s", request.command.value, hexlify(reply))
        metrics.inc("lawicel_command")

        if len(reply) < width:
            raise DecodeError(
                f"{request.command.value}: expected {width} bytes, got {len(reply)}",
                expected=width, received=reply,
            )
        return Response(command=request.command, fields=decode(spec.response, reply), raw=bytes(reply))

    def transmit(self, frame: CanFrame) -> ResponseStatus:
        """Transmit a frame; on OK the adapter's extra trailing byte is drained."""
        response = self.issue(Transmit(frame))
        status = response.status
        if status is ResponseStatus.OK:
            self.transport.read(1)
            metrics.inc("lawicel_send")
        else:
            metrics.inc("lawicel_send_error")
            logger.warning("Transmit of id=0x%x returned %r (%s)", frame.identifier, response.return_code, status.value)
        return status

    def transmit_frame(self, kind: FrameKind = FrameKind.STANDARD, identifier: int = 0,
                       length: int = 0, data: Union[int, bytes] = 0) -> ResponseStatus:
        """Build a Standard or Extended frame and transmit it.

        Length and data are validated before anything is written.
        """
        if not isinstance(kind, FrameKind):
            try:
                kind = FrameKind(kind)
            except ValueError:
                raise ValidationError(f"invalid frame kind: {kind!r}", field="kind", value=kind) from None
        return self.transmit(CanFrame.build(kind, identifier, length, data))

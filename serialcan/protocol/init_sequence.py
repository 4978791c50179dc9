"""Adapter initialization sequence.

Brings the adapter to a known, open state:

    CLOSE_CHANNEL -> SET_BITRATE -> SET_ACCEPTANCE_MASK -> SET_ACCEPTANCE_CODE
    -> OPEN_CHANNEL -> READY

The close reply is not checked (an already closed channel answers BELL).
Every other step must answer with a bare terminator; the first one that
does not aborts the sequence with InitializationError and nothing after it
is sent. There is no rollback: the adapter needs a manual reset.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Tuple

from serialcan.constants import (
    ACCEPTANCE_CODE_DEFAULT,
    ACCEPTANCE_MASK_DEFAULT,
    CAN_BITRATE_DEFAULT,
    TERMINATOR_BYTE,
)
from serialcan.exceptions import InitializationError
from serialcan.protocol.commands import (
    AcceptanceCode,
    AcceptanceMask,
    BtrSetup,
    CloseChannel,
    OpenChannel,
    Request,
    StandardSetup,
)
from serialcan.protocol.engine import TransactionEngine

logger = logging.getLogger(__name__)


class InitState(Enum):
    CLOSE_CHANNEL = "close_channel"
    SET_BITRATE = "set_bitrate"
    SET_ACCEPTANCE_MASK = "set_acceptance_mask"
    SET_ACCEPTANCE_CODE = "set_acceptance_code"
    OPEN_CHANNEL = "open_channel"
    READY = "ready"
    FAILED = "failed"


# checked steps, numbered from 1 in this order
CHECKED_STEPS = (
    InitState.SET_BITRATE,
    InitState.SET_ACCEPTANCE_MASK,
    InitState.SET_ACCEPTANCE_CODE,
    InitState.OPEN_CHANNEL,
)


class AdapterInitializer:
    """Runs the initialization sequence through a TransactionEngine.

    Attributes:
        state: Current InitState (READY on success, FAILED after an abort)
        failed_step: Step number that aborted the sequence, or None
    """

    def __init__(self, engine: TransactionEngine, bitrate: int = CAN_BITRATE_DEFAULT,
                 mask: int = ACCEPTANCE_MASK_DEFAULT, code: int = ACCEPTANCE_CODE_DEFAULT,
                 use_btr: bool = False) -> None:
        self.engine = engine
        self.bitrate = bitrate
        self.mask = mask
        self.code = code
        self.use_btr = use_btr
        self.state = InitState.CLOSE_CHANNEL
        self.failed_step = None

    def _steps(self) -> List[Tuple[InitState, Request]]:
        bitrate = BtrSetup(bitrate=self.bitrate) if self.use_btr else StandardSetup(bitrate=self.bitrate)
        return [
            (InitState.SET_BITRATE, bitrate),
            (InitState.SET_ACCEPTANCE_MASK, AcceptanceMask(mask=self.mask)),
            (InitState.SET_ACCEPTANCE_CODE, AcceptanceCode(code=self.code)),
            (InitState.OPEN_CHANNEL, OpenChannel()),
        ]

    def run(self) -> None:
        # requests are built up front so a bad bitrate fails before any I/O
        steps = self._steps()

        self.state = InitState.CLOSE_CHANNEL
        self.engine.issue(CloseChannel())

        for number, (state, request) in enumerate(steps, start=1):
            self.state = state
            response = self.engine.issue(request)
            if response.return_code != TERMINATOR_BYTE:
                self.state = InitState.FAILED
                self.failed_step = number
                received = response.return_code
                logger.error("Initialization failed at step %d (%s): received %r", number, state.value, received)
                raise InitializationError(
                    f"initialization failed at step {number} ({state.value}): "
                    f"received {received!r}, expected {TERMINATOR_BYTE!r}, please reset adapter",
                    step=number, step_name=state.value, received=received,
                )
            logger.debug("Initialization step %d (%s) ok", number, state.value)

        self.state = InitState.READY
        logger.info("Adapter initialized: bitrate=%d mask=0x%08X code=0x%08X", self.bitrate, self.mask, self.code)


def initialize(engine: TransactionEngine, **kwargs) -> AdapterInitializer:
    """Run the sequence and return the (READY) initializer."""
    initializer = AdapterInitializer(engine, **kwargs)
    initializer.run()
    return initializer

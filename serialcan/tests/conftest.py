"""Pytest config: puts the repository root on sys.path and provides transports.

Some environments run pytest with a different working directory which can
lead to "No module named 'serialcan'" import errors.
"""
import os
import sys

import pytest

_HERE = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, "..", ".."))  # repo root

# Insert project root at front of sys.path if not already present
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from serialcan import metrics  # noqa: E402
from serialcan.adapters.sim import SimTransport  # noqa: E402


class ScriptedTransport:
    """Transport that replays canned reply bytes and records writes.

    Unlike a serial port it returns short reads instead of blocking, which
    lets tests exercise the engine's width check.
    """

    def __init__(self, replies: bytes = b""):
        self.replies = bytearray(replies)
        self.written = []
        self.reads = []
        self.closed = False

    def write(self, data):
        self.written.append(bytes(data))

    def read(self, size):
        out = bytes(self.replies[:size])
        del self.replies[:size]
        self.reads.append(size)
        return out

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset_all()
    yield


@pytest.fixture
def scripted():
    return ScriptedTransport


@pytest.fixture
def sim():
    t = SimTransport(timeout=0.2)
    yield t
    t.close()

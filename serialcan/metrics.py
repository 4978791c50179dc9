"""Process-local event counters for the protocol engine, transports and API.

Counter names are prefixed by their source (`lawicel_`, `sim_`) so a
snapshot can be narrowed to one component:

    metrics.get_all(prefix="lawicel_")
"""
from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, Optional

_c = Counter()
# the API thread pool and the receive loop update counters concurrently
_lock = threading.Lock()


def inc(name: str, n: int = 1) -> None:
    with _lock:
        _c[name] += n


def get(name: str) -> int:
    with _lock:
        return _c[name]


def get_all(prefix: Optional[str] = None) -> Dict[str, int]:
    with _lock:
        if prefix is None:
            return dict(_c)
        return {k: v for k, v in _c.items() if k.startswith(prefix)}


def reset_all() -> None:
    with _lock:
        _c.clear()

#!/usr/bin/env python3
"""
r2bridge core: framing, decoding, events and the session itself.

R2Session and its factories are resolved lazily so that modules which only
need the wire constants (config, transports) can import this package without
pulling in the session and creating an import cycle.
"""

from typing import Any

from .decode import decode_into, decode_json
from .events import EventCallback, EventSubscription
from .framing import FrameReader, decode_response

__all__ = [
    "FrameReader",
    "decode_response",
    "decode_json",
    "decode_into",
    "EventCallback",
    "EventSubscription",
    "R2Session",
    "SessionState",
    "open_pipe",
    "open_native",
    "open_api",
]

_SESSION_EXPORTS = {"R2Session", "SessionState", "open_pipe", "open_native", "open_api"}


def __getattr__(name: str) -> Any:
    if name in _SESSION_EXPORTS:
        from . import r2_session

        return getattr(r2_session, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

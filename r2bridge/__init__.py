#!/usr/bin/env python3
"""
r2bridge - drive radare2 from Python over its pipe protocol or libr_core

Example:
    >>> from r2bridge import open_pipe
    >>> with open_pipe("malloc://256") as r2:
    ...     _ = r2.cmd("w Hello World")
    ...     print(r2.cmd("ps"))
    Hello World
"""

from .__version__ import __author__, __license__, __version__
from .config import BridgeConfig, load_config
from .context import open_session
from .core.r2_session import R2Session, SessionState, open_api, open_native, open_pipe
from .errors import (
    CapabilityError,
    ConstructionError,
    DecodeError,
    ErrorCategory,
    MisuseError,
    R2BridgeError,
    SessionClosedError,
    StreamError,
)

__description__ = "Drive radare2 from Python over its pipe protocol or libr_core"

__all__ = [
    "R2Session",
    "SessionState",
    "open_pipe",
    "open_native",
    "open_api",
    "open_session",
    "BridgeConfig",
    "load_config",
    "ErrorCategory",
    "R2BridgeError",
    "ConstructionError",
    "StreamError",
    "DecodeError",
    "CapabilityError",
    "MisuseError",
    "SessionClosedError",
    "__version__",
    "__author__",
    "__license__",
    "__description__",
]

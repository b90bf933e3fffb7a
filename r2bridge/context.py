#!/usr/bin/env python3
"""Context helpers for r2bridge sessions."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from .config import BridgeConfig
from .core.r2_session import R2Session, open_api, open_native, open_pipe

OPENERS: dict[str, Callable[..., R2Session]] = {
    "pipe": open_pipe,
    "native": open_native,
    "api": open_api,
}


@contextmanager
def open_session(
    target: str = "",
    transport: str = "pipe",
    config: BridgeConfig | None = None,
    force: bool = False,
) -> Iterator[R2Session]:
    """
    Open a session and close it when the block exits.

    Args:
        target: File path or URI, "" to attach to inherited descriptors
        transport: One of "pipe", "native" or "api"
        config: Configuration, defaults to load_config()
        force: Use force_close() instead of close() on exit
    """
    try:
        opener = OPENERS[transport]
    except KeyError:
        raise ValueError(f"Unknown transport {transport!r}; expected one of {sorted(OPENERS)}") from None

    session = opener(target, config)
    try:
        yield session
    finally:
        if force:
            session.force_close()
        else:
            session.close()

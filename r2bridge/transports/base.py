#!/usr/bin/env python3
"""
Transport interface shared by every r2bridge backend.

A transport knows how to send one command string and get one response string
back, and how to release whatever backs it (a process, inherited descriptors
or a native core handle). R2Session holds exactly one transport and never
needs to know which kind it is.

Implementations:
    PipeTransport  - radare2 subprocess or inherited R2PIPE_IN/R2PIPE_OUT fds
    CoreTransport  - libr_core through ctypes (linked or dynamically loaded)
"""

from typing import Protocol


class Transport(Protocol):
    """Contract between R2Session and a backend."""

    #: Whether the backend exposes the ``===stderr`` side channel
    supports_events: bool

    def execute(self, command: str) -> str:
        """Send one command and return its complete response."""
        ...

    def shutdown(self, force: bool = False) -> None:
        """Release the backend. Must be safe to call more than once."""
        ...


__all__ = ["Transport"]

#!/usr/bin/env python3
"""
Native transport: run commands through libr_core in-process.

Each command is a single foreign call that returns the complete output as a
C string, so no framing is involved. The ``===stderr`` side channel only
exists for the pipe protocol; this transport reports supports_events = False.
"""

import ctypes
import threading
from typing import Any

from ..core.constants import OPEN_FILE_COMMAND, RESPONSE_ENCODING
from ..core.framing import decode_response
from ..errors import ConstructionError, StreamError
from ..utils.logger import get_logger
from .bindings import CoreBindings, linked_bindings, load_native_library

logger = get_logger(__name__)


class CoreTransport:
    """
    Transport backed by an RCore instance.

    Attributes:
        bindings: Resolved libr_core entry points
        target: File or URI opened with ``o`` after the core is created
        core: Opaque RCore pointer, None once shut down
    """

    supports_events = False

    def __init__(self, bindings: CoreBindings, target: str = ""):
        self.bindings = bindings
        self.target = target
        self._core_lock = threading.Lock()
        core = bindings.core_new()
        if not core:
            raise ConstructionError(f"r_core_new() returned NULL ({bindings.origin})")
        self.core: Any | None = core
        logger.debug(f"Created RCore from {bindings.origin}")

        if target:
            # Output of the open command is ignored; a bad target shows up on
            # the first real command instead.
            self.execute(f"{OPEN_FILE_COMMAND} {target}")

    @classmethod
    def dynamic(cls, target: str = "", library: str | None = None) -> "CoreTransport":
        """Create a transport on a dynamically loaded libr_core."""
        bindings = load_native_library(library) if library else load_native_library()
        return cls(bindings, target)

    @classmethod
    def linked(cls, target: str = "") -> "CoreTransport":
        """Create a transport on the libr_core linked into this process."""
        return cls(linked_bindings(), target)

    def execute(self, command: str) -> str:
        """Run ``command`` through r_core_cmd_str and return its output."""
        with self._core_lock:
            if self.core is None:
                raise StreamError("RCore has been freed")
            result = self.bindings.core_cmd_str(self.core, command.encode(RESPONSE_ENCODING))
            if not result:
                return ""
            try:
                return decode_response(ctypes.string_at(result))
            finally:
                self.bindings.free_str(result)

    def shutdown(self, force: bool = False) -> None:
        """
        Free the RCore. There is no graceful/forced distinction in-process.

        Waits for a command running on another thread to finish first.
        """
        with self._core_lock:
            if self.core is None:
                return
            core, self.core = self.core, None
            self.bindings.core_free(core)
        logger.debug("Freed RCore")

    def __repr__(self) -> str:
        return f"CoreTransport(origin={self.bindings.origin!r}, target={self.target!r})"


__all__ = ["CoreTransport"]

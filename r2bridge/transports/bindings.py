#!/usr/bin/env python3
"""
ctypes bindings for libr_core.

Only three entry points are needed to drive radare2 in-process:

    void *r_core_new(void);
    void  r_core_free(void *core);
    char *r_core_cmd_str(void *core, const char *cmd);

plus libc ``free`` for the strings r_core_cmd_str returns.

Two ways to get them:

    load_native_library() - dlopen ``libr_core.<so|dylib|dll>`` at runtime.
        The library and its resolved symbols are a process-wide singleton:
        libr_core is not designed to be loaded more than once, so after the
        first success every call returns the same CoreBindings and the library
        is never unloaded.

    linked_bindings() - resolve the symbols from the running process image,
        for hosts that already link libr_core (e.g. Python embedded in r2).
"""

import ctypes
import ctypes.util
import os
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.constants import (
    DEFAULT_NATIVE_LIBRARY,
    SYMBOL_CORE_CMD_STR,
    SYMBOL_CORE_FREE,
    SYMBOL_CORE_NEW,
)
from ..errors import ConstructionError
from ..utils.logger import get_logger

logger = get_logger(__name__)

_LIBRARY_LOCK = threading.Lock()
_NATIVE_BINDINGS: "CoreBindings | None" = None


@dataclass(frozen=True)
class CoreBindings:
    """Resolved libr_core entry points."""

    origin: str
    core_new: Callable[[], Any]
    core_free: Callable[[Any], None]
    core_cmd_str: Callable[[Any, bytes], Any]
    free_str: Callable[[Any], None]


def library_filename(name: str = DEFAULT_NATIVE_LIBRARY, platform: str | None = None) -> str:
    """Append the shared library suffix for ``platform`` to ``name``."""
    platform = platform or sys.platform
    if platform == "darwin":
        return f"{name}.dylib"
    if platform.startswith("win"):
        return f"{name}.dll"
    # linux and the BSDs
    return f"{name}.so"


def _symbol(lib: Any, name: str, origin: str) -> Any:
    try:
        return getattr(lib, name)
    except AttributeError as e:
        raise ConstructionError(
            f"failed to load '{name}' from '{origin}': {e}", symbol=name, library=origin
        ) from e


def _libc_free() -> Callable[[Any], None]:
    libc_name = ctypes.util.find_library("c") or ("msvcrt" if sys.platform.startswith("win") else None)
    libc = ctypes.CDLL(libc_name)
    free = libc.free
    free.argtypes = [ctypes.c_void_p]
    free.restype = None
    return free


def resolve_bindings(lib: Any, origin: str) -> CoreBindings:
    """
    Resolve the libr_core entry points from a loaded library.

    Raises:
        ConstructionError: Naming the first symbol that is missing
    """
    core_new = _symbol(lib, SYMBOL_CORE_NEW, origin)
    core_new.argtypes = []
    core_new.restype = ctypes.c_void_p

    core_free = _symbol(lib, SYMBOL_CORE_FREE, origin)
    core_free.argtypes = [ctypes.c_void_p]
    core_free.restype = None

    core_cmd_str = _symbol(lib, SYMBOL_CORE_CMD_STR, origin)
    core_cmd_str.argtypes = [ctypes.c_void_p, ctypes.c_char_p]
    # c_void_p rather than c_char_p so the buffer can be freed afterwards
    core_cmd_str.restype = ctypes.c_void_p

    return CoreBindings(
        origin=origin,
        core_new=core_new,
        core_free=core_free,
        core_cmd_str=core_cmd_str,
        free_str=_libc_free(),
    )


def load_native_library(name: str = DEFAULT_NATIVE_LIBRARY) -> CoreBindings:
    """
    Load libr_core dynamically, once per process.

    Raises:
        ConstructionError: If the library cannot be opened or a symbol is missing.
            The singleton stays unset so a later call can retry.
    """
    global _NATIVE_BINDINGS
    with _LIBRARY_LOCK:
        if _NATIVE_BINDINGS is not None:
            return _NATIVE_BINDINGS

        path = library_filename(name)
        logger.debug(f"Loading native library {path}")
        try:
            mode = ctypes.RTLD_GLOBAL | getattr(os, "RTLD_NOW", 0)
            lib = ctypes.CDLL(path, mode=mode)
        except OSError as e:
            raise ConstructionError(f"failed to open {path}: {e}", library=path) from e

        _NATIVE_BINDINGS = resolve_bindings(lib, path)
        return _NATIVE_BINDINGS


def linked_bindings() -> CoreBindings:
    """
    Resolve libr_core from the current process image.

    Raises:
        ConstructionError: If the host process does not link libr_core
    """
    try:
        image = ctypes.CDLL(None)
    except (OSError, TypeError) as e:
        raise ConstructionError(f"cannot inspect the process image: {e}") from e
    return resolve_bindings(image, "<process>")


def native_library_loaded() -> bool:
    """Return True once load_native_library() has succeeded."""
    return _NATIVE_BINDINGS is not None


__all__ = [
    "CoreBindings",
    "library_filename",
    "resolve_bindings",
    "load_native_library",
    "linked_bindings",
    "native_library_loaded",
]

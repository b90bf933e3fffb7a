#!/usr/bin/env python3
"""
r2bridge Transports

Backends that carry commands to radare2 and bring responses back.

Key Components:
    Transport: Protocol every backend satisfies
    PipeTransport: radare2 subprocess or inherited pipe descriptors
    CoreTransport: libr_core through ctypes, linked or dynamically loaded
"""

from .base import Transport
from .bindings import CoreBindings, linked_bindings, load_native_library
from .native import CoreTransport
from .pipe import PipeTransport

__all__ = [
    "Transport",
    "PipeTransport",
    "CoreTransport",
    "CoreBindings",
    "load_native_library",
    "linked_bindings",
]

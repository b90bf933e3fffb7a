#!/usr/bin/env python3
"""
Error types raised by r2bridge

Every failure surfaced to callers derives from R2BridgeError and carries an
ErrorCategory so callers can branch on the kind of failure without matching
on exception classes:

    CONSTRUCTION - launch, handshake or symbol resolution failed; no session exists
    STREAM       - read/write failure on an established stream; the session is unusable
    DECODE       - JSON parse or shape mismatch; transport state is unaffected
    CAPABILITY   - feature not supported by the bound transport
    MISUSE       - command issued on a closed or unbound session
"""

from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification"""

    CONSTRUCTION = "construction"
    STREAM = "stream"
    DECODE = "decode"
    CAPABILITY = "capability"
    MISUSE = "misuse"


class R2BridgeError(Exception):
    """Base class for all r2bridge errors"""

    category = ErrorCategory.MISUSE

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization"""
        cause = self.__cause__
        return {
            "exception_type": type(self).__name__,
            "exception_message": str(self),
            "category": self.category.value,
            "context": self.context,
            "cause": repr(cause) if cause is not None else None,
        }


class ConstructionError(R2BridgeError):
    """The session could not be created."""

    category = ErrorCategory.CONSTRUCTION


class StreamError(R2BridgeError):
    """Reading or writing the command streams failed mid-session."""

    category = ErrorCategory.STREAM


class DecodeError(R2BridgeError):
    """A response could not be decoded as JSON or into the requested shape."""

    category = ErrorCategory.DECODE

    def __init__(self, message: str, response: str = "", **context: Any):
        super().__init__(message, **context)
        self.response = response


class CapabilityError(R2BridgeError):
    """The bound transport does not support the requested feature."""

    category = ErrorCategory.CAPABILITY


class MisuseError(R2BridgeError):
    """The session was used outside of its valid lifecycle."""

    category = ErrorCategory.MISUSE


class SessionClosedError(MisuseError):
    """A command was issued after the session was closed."""


__all__ = [
    "ErrorCategory",
    "R2BridgeError",
    "ConstructionError",
    "StreamError",
    "DecodeError",
    "CapabilityError",
    "MisuseError",
    "SessionClosedError",
]

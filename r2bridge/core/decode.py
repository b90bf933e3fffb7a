#!/usr/bin/env python3
"""
Structured decoding of radare2 responses.

Dynamic values are parsed with the standard ``json`` module. Typed shapes
(pydantic models, dataclasses, TypedDicts, ``list[int]`` and so on) are
validated through a cached ``pydantic.TypeAdapter``.

Empty output is never treated as JSON ``null``: a command that printed nothing
raises DecodeError. Only the literal text ``null`` decodes to ``None``.
"""

import json
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from ..errors import DecodeError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@lru_cache(maxsize=128)
def _adapter_for(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def _require_payload(response: str, command: str | None) -> None:
    if not response.strip():
        raise DecodeError(
            "Empty response cannot be decoded as JSON",
            response=response,
            command=command,
        )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def _parse(response: str, command: str | None) -> Any:
    _require_payload(response, command)
    try:
        return json.loads(response, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        logger.debug(f"Invalid JSON from '{command}': {e}")
        raise DecodeError(
            f"Invalid JSON response: {e.msg} at position {e.pos}",
            response=response,
            command=command,
        ) from e
    except ValueError as e:
        logger.debug(f"Invalid JSON from '{command}': {e}")
        raise DecodeError(f"Invalid JSON response: {e}", response=response, command=command) from e


def decode_json(response: str, command: str | None = None) -> Any:
    """
    Parse a response into a dynamically typed value.

    Args:
        response: Raw response text
        command: Command that produced the response, for error context

    Returns:
        The decoded dict/list/str/int/float/bool/None value

    Raises:
        DecodeError: If the response is empty or not valid JSON (including
            the non-standard NaN and Infinity literals)
    """
    return _parse(response, command)


def decode_into(response: str, shape: type[T], command: str | None = None) -> T:
    """
    Parse a response and validate it against a caller supplied shape.

    Validation is strict: ``"16"`` does not become an int and ``"true"`` does
    not become a bool.

    Raises:
        DecodeError: If the response is empty, not valid JSON, or does not
            match the shape
    """
    _parse(response, command)
    try:
        adapter = _adapter_for(shape)
    except TypeError:
        # Unhashable shape such as an Annotated with a list; skip the cache
        adapter = TypeAdapter(shape)
    try:
        return adapter.validate_json(response, strict=True)
    except ValidationError as e:
        logger.debug(f"Response from '{command}' does not match {shape!r}: {e.error_count()} errors")
        raise DecodeError(
            f"Response does not match {getattr(shape, '__name__', shape)!s}: {e}",
            response=response,
            command=command,
        ) from e


__all__ = ["decode_json", "decode_into"]

#!/usr/bin/env python3
"""
NUL-terminated response framing for the radare2 pipe protocol.

radare2 started with ``-q0`` writes every response followed by a single 0x00
byte. There is no length prefix and no escaping, so the only way to find a
message boundary is to scan for the terminator.

The reader is stateless between calls: it never keeps bytes of its own after a
frame has been returned. When the stream supports ``peek()`` (any
``io.BufferedReader``, which is what ``subprocess.Popen`` hands out) only the
bytes up to and including the terminator are consumed; anything after it stays
in the stream's buffer. Streams without ``peek()`` are read one byte at a time.

The protocol is strictly call-and-response. Writing a second command before the
first response has been read is not supported.
"""

from typing import BinaryIO

from ..errors import StreamError
from ..utils.logger import get_logger
from .constants import (
    FRAME_CHUNK_SIZE,
    FRAME_TERMINATOR,
    RESPONSE_ENCODING,
    RESPONSE_TRIM_CHARS,
)

logger = get_logger(__name__)


def decode_response(payload: bytes) -> str:
    """
    Turn a raw frame payload into the response handed to callers.

    Trailing newlines and NUL bytes are stripped from the right edge only;
    anything embedded in the middle is left untouched.
    """
    return payload.decode(RESPONSE_ENCODING, errors="replace").rstrip(RESPONSE_TRIM_CHARS)


class FrameReader:
    """Read NUL-terminated frames from a binary stream."""

    def __init__(self, stream: BinaryIO, chunk_size: int = FRAME_CHUNK_SIZE):
        if stream is None:
            raise ValueError("stream cannot be None")
        self._stream = stream
        self._chunk_size = chunk_size
        self._can_peek = callable(getattr(stream, "peek", None))

    def read_frame(self) -> bytes:
        """
        Block until a full frame is available and return its payload.

        Returns:
            The bytes preceding the terminator, terminator excluded.

        Raises:
            StreamError: If the stream ends or fails before a terminator is seen.
                No partial payload is ever returned.
        """
        try:
            if self._can_peek:
                return self._read_buffered()
            return self._read_bytewise()
        except OSError as e:
            raise StreamError(f"Failed to read response frame: {e}") from e

    def read_response(self) -> str:
        """Read one frame and decode it into a response string."""
        return decode_response(self.read_frame())

    def _read_buffered(self) -> bytes:
        payload = bytearray()
        stream = self._stream
        while True:
            available = stream.peek(self._chunk_size)  # type: ignore[attr-defined]
            if not available:
                self._raise_eof(payload)
            index = available.find(FRAME_TERMINATOR)
            if index >= 0:
                consumed = stream.read(index + 1)
                payload += consumed[:-1]
                return bytes(payload)
            payload += stream.read(len(available))

    def _read_bytewise(self) -> bytes:
        payload = bytearray()
        while True:
            byte = self._stream.read(1)
            if not byte:
                self._raise_eof(payload)
            if byte == FRAME_TERMINATOR:
                return bytes(payload)
            payload += byte

    @staticmethod
    def _raise_eof(payload: bytearray) -> None:
        logger.debug(f"Stream closed with {len(payload)} unterminated bytes pending")
        raise StreamError(
            "Stream closed before response terminator was received",
            pending_bytes=len(payload),
        )


__all__ = ["FrameReader", "decode_response"]

import io

import pytest

from r2bridge.core.framing import FrameReader, decode_response
from r2bridge.errors import ErrorCategory, StreamError


class TrickleStream(io.RawIOBase):
    """Raw stream handing out at most ``step`` bytes per read."""

    def __init__(self, data: bytes, step: int = 3):
        self._data = data
        self._step = step
        self.reads = 0

    def readable(self):
        return True

    def readinto(self, buffer):
        self.reads += 1
        chunk = self._data[: min(self._step, len(buffer))]
        self._data = self._data[len(chunk) :]
        buffer[: len(chunk)] = chunk
        return len(chunk)


class FailingStream(io.RawIOBase):
    def readable(self):
        return True

    def readinto(self, buffer):
        raise OSError("broken pipe")


def buffered(data: bytes, step: int = 3) -> io.BufferedReader:
    return io.BufferedReader(TrickleStream(data, step))


def test_read_frame_stops_at_terminator():
    reader = FrameReader(buffered(b"Hello World\n\x00"))
    assert reader.read_frame() == b"Hello World\n"


def test_read_frame_assembles_partial_reads():
    raw = TrickleStream(b"a" * 50 + b"\x00", step=4)
    reader = FrameReader(io.BufferedReader(raw, buffer_size=8))
    assert reader.read_frame() == b"a" * 50
    assert raw.reads > 1


def test_read_frame_leaves_following_frames_in_stream():
    stream = buffered(b"first\x00second\n\x00", step=64)
    reader = FrameReader(stream)
    assert reader.read_frame() == b"first"
    assert reader.read_frame() == b"second\n"


def test_read_frame_empty_payload():
    assert FrameReader(buffered(b"\x00")).read_frame() == b""


def test_read_frame_without_peek_reads_bytewise():
    stream = io.BytesIO(b"abc\x00rest")
    reader = FrameReader(stream)
    assert reader.read_frame() == b"abc"
    assert stream.read() == b"rest"


def test_eof_before_terminator_raises_stream_error():
    reader = FrameReader(buffered(b"partial output"))
    with pytest.raises(StreamError) as exc_info:
        reader.read_frame()
    assert exc_info.value.category is ErrorCategory.STREAM
    assert exc_info.value.context["pending_bytes"] == len(b"partial output")


def test_eof_bytewise_raises_stream_error():
    with pytest.raises(StreamError):
        FrameReader(io.BytesIO(b"no terminator")).read_frame()


def test_os_error_is_wrapped():
    reader = FrameReader(io.BufferedReader(FailingStream()))
    with pytest.raises(StreamError) as exc_info:
        reader.read_frame()
    assert isinstance(exc_info.value.__cause__, OSError)


def test_reader_requires_stream():
    with pytest.raises(ValueError):
        FrameReader(None)


def test_decode_response_strips_only_right_edge():
    assert decode_response(b"Hello World\n") == "Hello World"
    assert decode_response(b"line one\nline two\n\n") == "line one\nline two"
    assert decode_response(b"\nleading kept") == "\nleading kept"
    assert decode_response(b"mid\x00dle\x00\n") == "mid\x00dle"
    assert decode_response(b"") == ""


def test_decode_response_replaces_invalid_utf8():
    assert decode_response(b"ok\xff\n") == "ok\ufffd"


def test_read_response_decodes_frame():
    reader = FrameReader(buffered(b"value\n\x00"))
    assert reader.read_response() == "value"

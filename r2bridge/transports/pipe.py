#!/usr/bin/env python3
"""
Byte-stream transport: talk to radare2 over stdin/stdout.

Two ways to obtain one:

    PipeTransport.spawn(target)      - launch ``radare2 -q0 <target>``
    PipeTransport.from_environment() - reuse the R2PIPE_IN / R2PIPE_OUT file
                                       descriptors radare2 passes to scripts
                                       it runs itself (target == "")

Requests are ``<command>\\n`` and responses are NUL-terminated frames read by
FrameReader. The transport is call-and-response only; R2Session serialises
access to it.
"""

import os
import subprocess
import threading
from collections import deque
from collections.abc import Mapping, Sequence
from typing import IO, BinaryIO

from ..core.constants import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_R2_EXECUTABLE,
    DEFAULT_R2_FLAGS,
    FORCE_QUIT_COMMAND,
    MAX_DIAGNOSTIC_LINES,
    QUIT_COMMAND,
    R2PIPE_IN_ENV,
    R2PIPE_OUT_ENV,
    REQUEST_NEWLINE,
    RESPONSE_ENCODING,
)
from ..core.framing import FrameReader
from ..errors import ConstructionError, StreamError
from ..utils.logger import get_logger
from ..utils.process import terminate_process_tree

logger = get_logger(__name__)


class PipeTransport:
    """
    Transport over a request stream and a NUL-framed response stream.

    Attributes:
        target: File path or URI passed to radare2, "" in inherited mode
        process: The radare2 child, None in inherited mode
        supports_events: True; radare2 answers ``===stderr`` on this transport
    """

    supports_events = True

    def __init__(
        self,
        requests: BinaryIO,
        responses: BinaryIO,
        process: subprocess.Popen | None = None,
        target: str = "",
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ):
        self.target = target
        self.process = process
        self.close_timeout = close_timeout
        self._requests = requests
        self._responses = responses
        self._reader = FrameReader(responses)
        self._closed = False
        self._diagnostics: deque[str] = deque(maxlen=MAX_DIAGNOSTIC_LINES)
        self._diagnostics_lock = threading.Lock()
        self._stderr_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def spawn(
        cls,
        target: str,
        executable: str = DEFAULT_R2_EXECUTABLE,
        flags: Sequence[str] = DEFAULT_R2_FLAGS,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> "PipeTransport":
        """
        Launch radare2 on ``target`` and consume its startup frame.

        Raises:
            ConstructionError: If radare2 cannot be launched or exits before
                completing the handshake. No process or pipe is leaked.
        """
        if not target:
            raise ConstructionError("spawn() requires a target; use from_environment()")

        argv = [executable, *flags, target]
        logger.debug(f"Launching radare2: {' '.join(argv)}")
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ConstructionError(
                f"Failed to start {executable}: {e}", executable=executable, target=target
            ) from e

        if process.stdin is None or process.stdout is None or process.stderr is None:
            terminate_process_tree(process)
            raise ConstructionError("Failed to wire radare2 standard streams", target=target)

        transport = cls(
            process.stdin,
            process.stdout,
            process=process,
            target=target,
            close_timeout=close_timeout,
        )
        transport._start_stderr_drain(process.stderr)

        try:
            banner = transport.read_frame()
        except StreamError as e:
            diagnostics = transport._abort()
            raise ConstructionError(
                f"radare2 exited before handshake for '{target}': {diagnostics or e}",
                target=target,
                returncode=process.returncode,
            ) from e

        if banner:
            logger.debug(f"Discarded {len(banner)} bytes of startup output")
        return transport

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None
    ) -> "PipeTransport":
        """
        Attach to the descriptors radare2 hands to scripts it launches.

        R2PIPE_IN is the descriptor responses are read from and R2PIPE_OUT the
        one requests are written to.

        Raises:
            ConstructionError: If either variable is missing or not an integer
        """
        environ = os.environ if environ is None else environ
        raw_in = environ.get(R2PIPE_IN_ENV, "")
        raw_out = environ.get(R2PIPE_OUT_ENV, "")
        if not raw_in or not raw_out:
            raise ConstructionError(f"missing {R2PIPE_IN_ENV}/{R2PIPE_OUT_ENV} vars")

        try:
            fd_in = int(raw_in)
        except ValueError as e:
            raise ConstructionError(f"failed to convert {R2PIPE_IN_ENV} into file descriptor: {e}") from e
        try:
            fd_out = int(raw_out)
        except ValueError as e:
            raise ConstructionError(f"failed to convert {R2PIPE_OUT_ENV} into file descriptor: {e}") from e

        try:
            responses = os.fdopen(fd_in, "rb")
        except OSError as e:
            raise ConstructionError(f"Cannot open {R2PIPE_IN_ENV} descriptor {fd_in}: {e}") from e
        try:
            requests = os.fdopen(fd_out, "wb", buffering=0)
        except OSError as e:
            responses.close()
            raise ConstructionError(f"Cannot open {R2PIPE_OUT_ENV} descriptor {fd_out}: {e}") from e

        logger.debug(f"Attached to inherited descriptors in={fd_in} out={fd_out}")
        return cls(requests, responses)

    # ------------------------------------------------------------------
    # Raw stream access
    # ------------------------------------------------------------------

    def write(self, data: bytes) -> int:
        """Write raw bytes to the request stream and flush them."""
        try:
            written = self._requests.write(data)
            self._requests.flush()
        except (OSError, ValueError) as e:
            raise StreamError(f"Failed to write request: {e}") from e
        return len(data) if written is None else written

    def read_frame(self) -> bytes:
        """Read one raw NUL-terminated frame from the response stream."""
        return self._reader.read_frame()

    # ------------------------------------------------------------------
    # Transport contract
    # ------------------------------------------------------------------

    def execute(self, command: str) -> str:
        """Write ``command`` and return the framed response."""
        if self._closed:
            raise StreamError("Transport is shut down")
        self.write(command.encode(RESPONSE_ENCODING) + REQUEST_NEWLINE)
        return self._reader.read_response()

    def shutdown(self, force: bool = False) -> None:
        """
        Ask radare2 to quit and wait for it to exit.

        In inherited mode there is no child to reap and nothing is sent.
        """
        if self._closed:
            return
        self._closed = True

        if self.process is None:
            logger.debug("Inherited descriptors; leaving the host process alone")
            return

        quit_command = FORCE_QUIT_COMMAND if force else QUIT_COMMAND
        try:
            self.write(quit_command.encode(RESPONSE_ENCODING) + REQUEST_NEWLINE)
        except StreamError as e:
            # radare2 already gone; still reap it below
            logger.debug(f"Could not send '{quit_command}': {e}")

        self._close_stream(self._requests)
        try:
            returncode = self.process.wait(timeout=self.close_timeout)
            logger.debug(f"radare2 exited with status {returncode}")
        except subprocess.TimeoutExpired:
            logger.warning(
                f"radare2 did not exit within {self.close_timeout:.1f}s after '{quit_command}', terminating"
            )
            terminate_process_tree(self.process)
        finally:
            self._close_stream(self._responses)
            self._join_stderr_drain()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def read_diagnostics(self) -> str:
        """Return and clear everything radare2 wrote to stderr so far."""
        with self._diagnostics_lock:
            text = "".join(self._diagnostics)
            self._diagnostics.clear()
        return text

    def _start_stderr_drain(self, stream: IO[bytes]) -> None:
        thread = threading.Thread(
            target=self._drain_stderr,
            args=(stream,),
            name=f"r2bridge-stderr-{self.process.pid if self.process else 0}",
            daemon=True,
        )
        self._stderr_thread = thread
        thread.start()

    def _drain_stderr(self, stream: IO[bytes]) -> None:
        try:
            for line in iter(stream.readline, b""):
                text = line.decode(RESPONSE_ENCODING, errors="replace")
                with self._diagnostics_lock:
                    self._diagnostics.append(text)
        except (OSError, ValueError):
            pass
        finally:
            self._close_stream(stream)

    def _join_stderr_drain(self) -> None:
        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=self.close_timeout)
            self._stderr_thread = None

    def _abort(self) -> str:
        """Tear down a half-constructed transport and return its stderr."""
        self._closed = True
        if self.process is not None:
            terminate_process_tree(self.process)
        self._close_stream(self._requests)
        self._close_stream(self._responses)
        self._join_stderr_drain()
        return self.read_diagnostics().strip()

    @staticmethod
    def _close_stream(stream: IO[bytes] | None) -> None:
        if stream is None:
            return
        try:
            stream.close()
        except OSError as e:
            logger.debug(f"Error closing stream: {e}")

    def __repr__(self) -> str:
        pid = self.process.pid if self.process else None
        return f"PipeTransport(target={self.target!r}, pid={pid})"


__all__ = ["PipeTransport"]

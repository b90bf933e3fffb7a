#!/usr/bin/env python3
"""radare2 session lifecycle and command helpers."""

import threading
from enum import Enum
from types import TracebackType
from typing import Any, Literal, TypeVar

from ..config import BridgeConfig, load_config
from ..errors import CapabilityError, ConstructionError, MisuseError, SessionClosedError
from ..transports.base import Transport
from ..transports.native import CoreTransport
from ..transports.pipe import PipeTransport
from ..utils.logger import get_logger
from .constants import STDERR_CHANNEL_COMMAND
from .decode import decode_into, decode_json
from .events import EventCallback, EventSubscription

logger = get_logger(__name__)

T = TypeVar("T")


class SessionState(Enum):
    """Session lifecycle states"""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class R2Session:
    """
    One radare2 instance behind one transport.

    This class owns the transport for its whole lifetime and provides:
    - Plain, formatted and JSON command execution
    - Typed JSON decoding into caller supplied shapes
    - Subscription to radare2's stderr side channel
    - Graceful and forced shutdown

    Only one command is in flight at a time: ``cmd`` holds an internal lock, so
    concurrent callers are serialised rather than interleaved on the stream.

    There is no built-in timeout. If a caller abandons a blocking command (for
    instance from a watchdog thread), the response stream is out of sync and the
    session must be closed, not reused.

    Attributes:
        target: File path or URI being analysed, "" for inherited descriptors
        transport: The bound transport (None only after a failed construction)
        state: Current SessionState
    """

    def __init__(
        self,
        transport: Transport | None,
        target: str = "",
        config: BridgeConfig | None = None,
    ):
        """
        Bind a session to an already constructed transport.

        Most callers want open_pipe(), open_native() or open_api() instead.
        """
        self.target = target
        self.transport = transport
        self.config = config or BridgeConfig()
        self.state = SessionState.UNOPENED
        self._lock = threading.Lock()
        self._subscriptions: list[EventSubscription] = []
        if transport is not None:
            self.state = SessionState.OPEN

    @property
    def is_open(self) -> bool:
        """Check if the session accepts commands."""
        return self.state is SessionState.OPEN

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def cmd(self, command: str) -> str:
        """
        Run a radare2 command and return its output.

        Raises:
            SessionClosedError: If the session has been closed
            MisuseError: If no transport is bound
            StreamError: If the transport failed; close the session afterwards
        """
        if self.state is SessionState.CLOSED:
            raise SessionClosedError("Session is closed", target=self.target, command=command)
        if self.transport is None:
            raise MisuseError("No transport bound to session", target=self.target, command=command)
        with self._lock:
            logger.debug(f"cmd: {command}")
            return self.transport.execute(command)

    def cmdf(self, template: str, *args: Any) -> str:
        """Format ``template`` with %-style ``args`` and run it."""
        return self.cmd(template % args)

    def cmdj(self, command: str) -> Any:
        """
        Run a command and parse its output as JSON.

        Raises:
            DecodeError: If the output is empty or not valid JSON
        """
        return decode_json(self.cmd(command), command)

    def cmdjf(self, template: str, *args: Any) -> Any:
        """Like cmdj but formats the command first."""
        return self.cmdj(template % args)

    def cmdj_into(self, command: str, shape: type[T]) -> T:
        """
        Run a command and validate its JSON output against ``shape``.

        ``shape`` may be anything pydantic can validate: a BaseModel, a
        dataclass, a TypedDict or a plain annotation such as ``list[int]``.

        Raises:
            DecodeError: On invalid JSON or a type mismatch
        """
        return decode_into(self.cmd(command), shape, command)

    def cmdjf_into(self, template: str, shape: type[T], *args: Any) -> T:
        """Like cmdj_into but formats the command first."""
        return self.cmdj_into(template % args, shape)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_name: str, user_data: Any, callback: EventCallback) -> EventSubscription:
        """
        Deliver radare2 stderr output to ``callback`` on a background thread.

        The callback is invoked as ``callback(session, event_name, user_data, text)``
        and keeps receiving text for as long as it returns True.

        Raises:
            CapabilityError: If the transport has no side channel
            OSError: If the channel path returned by radare2 cannot be opened
        """
        if self.transport is not None and not getattr(self.transport, "supports_events", False):
            raise CapabilityError(
                f"{type(self.transport).__name__} does not support event subscriptions",
                event=event_name,
            )
        path = self.cmd(STDERR_CHANNEL_COMMAND).strip()
        if not path:
            raise CapabilityError("radare2 did not provide a stderr channel path", event=event_name)

        subscription = EventSubscription(
            self,
            event_name,
            user_data,
            callback,
            path,
            poll_interval=self.config.events.poll_interval,
        ).start()
        self._subscriptions = [sub for sub in self._subscriptions if sub.active]
        self._subscriptions.append(subscription)
        return subscription

    @property
    def subscriptions(self) -> list[EventSubscription]:
        """Subscriptions that are still delivering events."""
        return [sub for sub in self._subscriptions if sub.active]

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Quit radare2 gracefully. Safe to call more than once."""
        self._shutdown(force=False)

    def force_close(self) -> None:
        """Quit radare2 without saving project state. Safe to call more than once."""
        self._shutdown(force=True)

    def _shutdown(self, force: bool) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED

        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

        if self.transport is None:
            return
        logger.debug(f"{'Force closing' if force else 'Closing'} session for {self.target!r}")
        # Not under the command lock: quitting radare2 is what unblocks a
        # command stuck waiting for its terminator in another thread. The
        # native transport serialises its free against running commands itself.
        self.transport.shutdown(force=force)

    def __enter__(self) -> "R2Session":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Context manager exit with cleanup."""
        self.close()
        return False

    def __repr__(self) -> str:
        return f"R2Session(target={self.target!r}, transport={self.transport!r}, state={self.state.value})"


# ----------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------


def _resolve_config(config: BridgeConfig | None) -> BridgeConfig:
    if config is not None:
        return config
    try:
        return load_config()
    except (TypeError, ValueError) as e:
        raise ConstructionError(f"Invalid r2bridge configuration: {e}") from e


def open_pipe(target: str = "", config: BridgeConfig | None = None) -> R2Session:
    """
    Open a session over radare2's pipe protocol.

    With an empty ``target`` the session attaches to the R2PIPE_IN/R2PIPE_OUT
    descriptors of the hosting radare2; otherwise a new radare2 is spawned.

    Raises:
        ConstructionError: If radare2 cannot be launched or attached to
    """
    config = _resolve_config(config)
    if not target:
        transport = PipeTransport.from_environment()
    else:
        transport = PipeTransport.spawn(
            target,
            executable=config.pipe.executable,
            flags=config.pipe.flags,
            close_timeout=config.pipe.close_timeout,
        )
    return R2Session(transport, target, config)


def open_native(target: str = "", config: BridgeConfig | None = None) -> R2Session:
    """
    Open a session on a dynamically loaded libr_core.

    Raises:
        ConstructionError: If the library or one of its symbols is missing
    """
    config = _resolve_config(config)
    return R2Session(CoreTransport.dynamic(target, config.native.library), target, config)


def open_api(target: str = "", config: BridgeConfig | None = None) -> R2Session:
    """
    Open a session on the libr_core linked into the running process.

    Raises:
        ConstructionError: If the process does not export the r_core symbols
    """
    return R2Session(CoreTransport.linked(target), target, _resolve_config(config))


__all__ = ["R2Session", "SessionState", "open_pipe", "open_native", "open_api"]

#!/usr/bin/env python3
"""
Best-effort side channel for radare2 diagnostics.

``R2Session.on()`` asks radare2 for the path of its stderr channel with
``===stderr`` and hands it to an EventSubscription, which tails that path on a
daemon thread and passes every accumulated chunk of text to a callback.

The loop ends when:
    - the callback returns a falsy value
    - reading the file raises OSError
    - cancel() is called (R2Session.close() cancels its subscriptions)

Known limitation: there is no backpressure. If radare2 writes faster than the
callback returns, several writes arrive merged into one chunk. Nothing beyond
the chunk currently being accumulated is buffered.
"""

import os
import threading
import time
from collections.abc import Callable
from typing import IO, Any

from ..utils.logger import get_logger
from .constants import DEFAULT_EVENT_POLL_INTERVAL, RESPONSE_ENCODING

logger = get_logger(__name__)

# callback(session, event_name, user_data, text) -> keep going?
EventCallback = Callable[[Any, str, Any, str], bool]


class EventSubscription:
    """A background task delivering side channel text to one callback."""

    def __init__(
        self,
        session: Any,
        event_name: str,
        user_data: Any,
        callback: EventCallback,
        path: str,
        poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL,
    ):
        self.session = session
        self.event_name = event_name
        self.user_data = user_data
        self.callback = callback
        self.path = path
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._handle: IO[bytes] | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> "EventSubscription":
        """
        Open the channel and start delivering.

        Raises:
            OSError: If the path cannot be opened. No thread is started.
        """
        fd = os.open(self.path, os.O_RDONLY | getattr(os, "O_NONBLOCK", 0))
        self._handle = os.fdopen(fd, "rb", buffering=0)
        self._thread = threading.Thread(
            target=self._run,
            name=f"r2bridge-event-{self.event_name}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Subscribed '{self.event_name}' to {self.path}")
        return self

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def cancel(self) -> None:
        """Ask the loop to stop after its current cycle."""
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _read_available(self) -> bytes:
        data = bytearray()
        handle = self._handle
        while True:
            try:
                chunk = handle.read(65536)
            except BlockingIOError:
                break
            if not chunk:
                break
            data += chunk
        return bytes(data)

    def _run(self) -> None:
        buffer = bytearray()
        try:
            while not self._stop.is_set():
                try:
                    buffer += self._read_available()
                except OSError as e:
                    logger.debug(f"Event channel '{self.event_name}' closed: {e}")
                    break

                if not buffer:
                    self._stop.wait(self.poll_interval)
                    continue

                text = buffer.decode(RESPONSE_ENCODING, errors="replace")
                buffer.clear()
                if not self.callback(self.session, self.event_name, self.user_data, text):
                    logger.debug(f"Callback for '{self.event_name}' unsubscribed")
                    break
        except Exception as e:
            logger.warning(f"Event callback for '{self.event_name}' raised {type(e).__name__}: {e}")
        finally:
            self._stop.set()
            handle, self._handle = self._handle, None
            if handle is not None:
                handle.close()

    def __repr__(self) -> str:
        return f"EventSubscription(event={self.event_name!r}, path={self.path!r}, active={self.active})"


__all__ = ["EventCallback", "EventSubscription"]

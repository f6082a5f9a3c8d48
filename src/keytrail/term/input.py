"""Unified input source: key presses and resize notifications."""

from __future__ import annotations

import logging
import os
import selectors
import signal
from collections import deque
from types import FrameType
from typing import Any

from keytrail.keys.decoder import KeyDecoder
from keytrail.keys.event import InputEvent
from keytrail.term.raw import terminal_size

logger = logging.getLogger(__name__)


class TerminalInput:
    """Blocking source of ``KeyEvent`` and ``ResizeEvent`` from a terminal.

    SIGWINCH only sets a flag and writes to a self-pipe, which wakes the
    selector; the size is re-queried on the reading thread. The selector
    uses a timeout only while an ESC is pending, to tell a lone Escape apart
    from the start of a sequence.

    Must be entered on the main thread (signal handlers can only be
    installed there); ``next_event()`` may then be called from any thread.
    """

    def __init__(self, fd: int, escape_timeout: float = 0.025) -> None:
        self._fd = fd
        self._escape_timeout = escape_timeout
        self._decoder = KeyDecoder()
        self._events: deque[InputEvent] = deque()
        self._resize_pending = False
        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_r, False)
        os.set_blocking(self._wake_w, False)
        self._selector = selectors.DefaultSelector()
        self._selector.register(fd, selectors.EVENT_READ)
        self._selector.register(self._wake_r, selectors.EVENT_READ)
        self._previous_handler: Any = None

    def __enter__(self) -> TerminalInput:
        self._previous_handler = signal.signal(signal.SIGWINCH, self._on_winch)
        return self

    def __exit__(self, *exc: object) -> None:
        signal.signal(signal.SIGWINCH, self._previous_handler or signal.SIG_DFL)
        self.close()

    def close(self) -> None:
        self._selector.close()
        for fd in (self._wake_r, self._wake_w):
            try:
                os.close(fd)
            except OSError:
                pass

    def _on_winch(self, signum: int, frame: FrameType | None) -> None:
        self._resize_pending = True
        try:
            os.write(self._wake_w, b"\0")
        except BlockingIOError:
            pass  # pipe already holds a wake-up

    def _drain_wakeups(self) -> None:
        try:
            while os.read(self._wake_r, 512):
                pass
        except BlockingIOError:
            pass

    def next_event(self) -> InputEvent:
        """Block until the next key or resize.

        Raises:
            EOFError: The terminal closed its input.
        """
        while True:
            if self._resize_pending:
                self._resize_pending = False
                size = terminal_size(self._fd)
                logger.debug("Terminal resized to %dx%d", size.cols, size.rows)
                return size

            if self._events:
                return self._events.popleft()

            timeout = self._escape_timeout if self._decoder.pending else None
            ready = self._selector.select(timeout)
            if not ready:
                self._events.extend(self._decoder.flush())
                continue

            for key, _ in ready:
                if key.fd == self._wake_r:
                    self._drain_wakeups()
                elif key.fd == self._fd:
                    data = os.read(self._fd, 1024)
                    if not data:
                        raise EOFError("terminal input closed")
                    self._events.extend(self._decoder.feed(data))

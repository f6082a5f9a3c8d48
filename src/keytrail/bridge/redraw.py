"""Redraw scheduling: a coalescing dirty signal and its consumer thread."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from keytrail.errors import RedrawChannelClosed
from keytrail.keys.history import SharedKeyHistory
from keytrail.term.state import ScreenFrame, TerminalState

logger = logging.getLogger(__name__)


class FrameRenderer(Protocol):
    def draw(self, frame: ScreenFrame, history: str) -> None: ...


class DirtySignal:
    """Multi-producer "redraw needed" flag.

    Any number of ``notify()`` calls made before the consumer wakes collapse
    into one wake-up. Once closed, ``notify()`` raises.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._dirty = False
        self._closed = False

    def notify(self) -> None:
        with self._cond:
            if self._closed:
                raise RedrawChannelClosed("redraw thread is no longer running")
            self._dirty = True
            self._cond.notify()

    def wait(self) -> bool:
        """Block until dirty; clear the flag and return True.

        Returns False once the signal is closed; a pending redraw is dropped.
        """
        with self._cond:
            while not self._dirty and not self._closed:
                self._cond.wait()
            if self._closed:
                return False
            self._dirty = False
            return True

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed


class RedrawScheduler:
    """Single consumer that turns dirty signals into draws.

    Each wake-up takes a fresh snapshot, so a draw always shows the latest
    state rather than one queued per signal.
    """

    def __init__(
        self,
        signal: DirtySignal,
        terminal: TerminalState,
        history: SharedKeyHistory,
        renderer: FrameRenderer,
    ) -> None:
        self._signal = signal
        self._terminal = terminal
        self._history = history
        self._renderer = renderer
        self.draws = 0

    def redraw(self) -> None:
        frame = self._terminal.snapshot()
        history = self._history.render()
        self._renderer.draw(frame, history)
        self.draws += 1

    def run(self) -> None:
        """Consume signals until the channel closes.

        The channel is closed on the way out, so producers learn that the
        UI is gone instead of signalling into nothing.
        """
        try:
            while self._signal.wait():
                self.redraw()
        finally:
            self._signal.close()
            logger.debug("Redraw scheduler stopped after %d draws", self.draws)

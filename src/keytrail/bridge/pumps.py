"""The two forwarding pumps between the real terminal and the pty."""

from __future__ import annotations

import logging
import time
from typing import Protocol

from keytrail.bridge.redraw import DirtySignal
from keytrail.bridge.resize import ResizeCoordinator
from keytrail.keys.encoder import encode_key
from keytrail.keys.event import InputEvent, KeyEvent, ResizeEvent
from keytrail.keys.history import SharedKeyHistory
from keytrail.pty.session import ByteReader, ByteWriter
from keytrail.term.state import TerminalState

logger = logging.getLogger(__name__)

# Forwarded keys, one record per key. Route this logger to a file to keep a
# keystroke trace.
keystroke_logger = logging.getLogger("keytrail.keystrokes")


class InputSource(Protocol):
    def next_event(self) -> InputEvent: ...


class InputPump:
    """Real terminal -> pty.

    Keys are recorded in the history, encoded and written in the order they
    arrive. The clear chord only clears the history. Resizes go to the
    coordinator.
    """

    def __init__(
        self,
        source: InputSource,
        writer: ByteWriter,
        history: SharedKeyHistory,
        terminal: TerminalState,
        resizer: ResizeCoordinator,
        signal: DirtySignal,
        clear_chord: KeyEvent | None = None,
    ) -> None:
        self._source = source
        self._writer = writer
        self._history = history
        self._terminal = terminal
        self._resizer = resizer
        self._signal = signal
        self._clear_chord = clear_chord

    def handle(self, event: InputEvent) -> None:
        """Process one input event."""
        if isinstance(event, ResizeEvent):
            self._resizer.apply(event.rows, event.cols, event.xpixel, event.ypixel)
            return

        if event == self._clear_chord:
            self._history.clear()
            self._signal.notify()
            return

        self._history.push(event)
        self._signal.notify()

        data = encode_key(event, self._terminal.application_cursor_keys)
        if not data:
            logger.debug("No encoding for %s, not forwarded", event)
            return
        self._writer.write(data)
        self._writer.flush()
        keystroke_logger.info("%s %r", event, data)

    def run(self) -> None:
        """Pump until the input source reaches end of file."""
        while True:
            try:
                event = self._source.next_event()
            except EOFError:
                logger.info("Terminal input closed; input pump stopping")
                return
            self.handle(event)


class OutputPump:
    """pty -> terminal state.

    A zero-byte read is "nothing yet", not end of stream: the child's exit
    is only ever detected through ``wait()`` on the session.
    """

    def __init__(
        self,
        reader: ByteReader,
        terminal: TerminalState,
        signal: DirtySignal,
        chunk_size: int = 4096,
        idle_backoff: float = 0.01,
    ) -> None:
        self._reader = reader
        self._terminal = terminal
        self._signal = signal
        self.chunk_size = chunk_size
        self.idle_backoff = idle_backoff
        self.empty_reads = 0

    def pump_once(self) -> int:
        """Read and apply one chunk. Returns the number of bytes handled."""
        data = self._reader.read(self.chunk_size)
        if not data:
            self.empty_reads += 1
            if self.idle_backoff:
                time.sleep(self.idle_backoff)
            return 0
        self._terminal.feed(data)
        self._signal.notify()
        return len(data)

    def run(self) -> None:
        while True:
            self.pump_once()

"""Terminal state: a pyte screen behind a reader/writer lock."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pyte
from pyte.screens import Char

from keytrail.sync import RWLock

logger = logging.getLogger(__name__)

# Cursor key mode (?1). pyte keeps private modes shifted left by 5 and has no
# name for this one.
DECCKM = 1 << 5


class _Screen(pyte.Screen):
    """pyte screen that reports sequences it does not implement."""

    def debug(self, *args: Any, **kwargs: Any) -> None:
        logger.debug("Unhandled escape sequence: args=%r kwargs=%r", args, kwargs)


@dataclass(frozen=True)
class ScreenFrame:
    """Immutable copy of the emulated screen, safe to render without a lock."""

    rows: int
    cols: int
    lines: tuple[tuple[Char, ...], ...]
    cursor_x: int
    cursor_y: int
    cursor_hidden: bool

    def text(self) -> list[str]:
        """Plain text of each line (wide-character placeholders dropped)."""
        return ["".join(cell.data for cell in line) for line in self.lines]


class TerminalState:
    """Emulated screen fed from the child's raw output.

    ``feed()`` and ``resize()`` take the write lock; ``snapshot()`` takes the
    read lock and copies what the renderer needs. Partial escape sequences
    and split UTF-8 characters are buffered by pyte's ``ByteStream``.
    """

    def __init__(self, rows: int, cols: int) -> None:
        self._rows = max(1, rows)
        self._cols = max(1, cols)
        self._screen = _Screen(self._cols, self._rows)
        self._stream = pyte.ByteStream(self._screen)
        self._lock = RWLock()

    def feed(self, data: bytes) -> None:
        with self._lock.write():
            self._stream.feed(data)

    def resize(self, rows: int, cols: int) -> None:
        rows, cols = max(1, rows), max(1, cols)
        with self._lock.write():
            self._screen.resize(lines=rows, columns=cols)
            self._rows, self._cols = rows, cols
        logger.debug("Terminal state resized to %dx%d", cols, rows)

    @property
    def dimensions(self) -> tuple[int, int]:
        """(rows, cols) of the emulated screen."""
        with self._lock.read():
            return self._rows, self._cols

    @property
    def application_cursor_keys(self) -> bool:
        """Whether the child switched the cursor keys to application mode."""
        with self._lock.read():
            return DECCKM in self._screen.mode

    def snapshot(self) -> ScreenFrame:
        with self._lock.read():
            screen = self._screen
            blank = tuple(screen.default_char for _ in range(self._cols))
            lines = []
            for y in range(self._rows):
                # .get() so a reader never inserts rows into pyte's defaultdict
                line = screen.buffer.get(y)
                if line is None:
                    lines.append(blank)
                else:
                    lines.append(tuple(line[x] for x in range(self._cols)))
            return ScreenFrame(
                rows=self._rows,
                cols=self._cols,
                lines=tuple(lines),
                cursor_x=screen.cursor.x,
                cursor_y=screen.cursor.y,
                cursor_hidden=screen.cursor.hidden,
            )

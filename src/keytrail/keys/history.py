"""Keystroke history bounded by rendered width rather than item count."""

from __future__ import annotations

from collections import deque
from typing import Iterator, NamedTuple

from keytrail.keys.event import KeyEvent
from keytrail.sync import RWLock


class _Entry(NamedTuple):
    event: KeyEvent
    text: str
    width: int


class KeyHistory:
    """Ordered trace of recent key presses that fits in ``budget`` cells.

    The sum of the entries' display widths never exceeds the budget after a
    mutation returns. Eviction is always whole entries from the front, so
    what remains is a suffix of what was pushed.

    Not thread-safe on its own; see ``SharedKeyHistory``.
    """

    def __init__(self, budget: int) -> None:
        self._entries: deque[_Entry] = deque()
        self._width = 0
        self._budget = max(0, budget)

    def push(self, event: KeyEvent) -> None:
        text = event.pretty()
        entry = _Entry(event, text, event.width)
        self._entries.append(entry)
        self._width += entry.width
        self._evict()

    def clear(self) -> None:
        self._entries = deque()
        self._width = 0

    def set_budget(self, budget: int) -> None:
        """Change the budget. Shrinking evicts; growing never re-admits."""
        self._budget = max(0, budget)
        self._evict()

    def render(self) -> str:
        """Pretty-printed entries, oldest first."""
        return "".join(entry.text for entry in self._entries)

    def _evict(self) -> None:
        while self._entries and self._width > self._budget:
            self._width -= self._entries.popleft().width

    @property
    def width(self) -> int:
        return self._width

    @property
    def budget(self) -> int:
        return self._budget

    def events(self) -> list[KeyEvent]:
        return [entry.event for entry in self._entries]

    def __iter__(self) -> Iterator[KeyEvent]:
        return iter(self.events())

    def __len__(self) -> int:
        return len(self._entries)


class SharedKeyHistory:
    """``KeyHistory`` behind a reader/writer lock.

    Every mutation happens inside the write lock, so a reader can never see
    the ring between the append and the eviction that follows it.
    """

    def __init__(self, budget: int) -> None:
        self._history = KeyHistory(budget)
        self._lock = RWLock()

    def push(self, event: KeyEvent) -> None:
        with self._lock.write():
            self._history.push(event)

    def clear(self) -> None:
        with self._lock.write():
            self._history.clear()

    def set_budget(self, budget: int) -> None:
        with self._lock.write():
            self._history.set_budget(budget)

    def render(self) -> str:
        with self._lock.read():
            return self._history.render()

    @property
    def width(self) -> int:
        with self._lock.read():
            return self._history.width

    @property
    def budget(self) -> int:
        with self._lock.read():
            return self._history.budget

    def events(self) -> list[KeyEvent]:
        with self._lock.read():
            return self._history.events()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._history)

"""Fan a terminal resize out to the pty, the emulator and the history."""

from __future__ import annotations

import logging

from keytrail.bridge.redraw import DirtySignal
from keytrail.errors import GeometryError
from keytrail.keys.history import SharedKeyHistory
from keytrail.pty.session import PTYSession, PTYSize
from keytrail.term.state import TerminalState

logger = logging.getLogger(__name__)


def pty_size_for(
    rows: int, cols: int, reserved_rows: int, xpixel: int = 0, ypixel: int = 0
) -> PTYSize:
    """Size the child sees for a real terminal of ``rows`` x ``cols``."""
    return PTYSize(rows=rows - reserved_rows, cols=cols, xpixel=xpixel, ypixel=ypixel).clamped()


class ResizeCoordinator:
    """Applies a new real-terminal size everywhere, in a fixed order.

    1. pty rows = rows minus the overlay rows
    2. ``session.resize``
    3. ``terminal.resize`` with the same size
    4. ``history.set_budget(cols - margin)``

    Any failure leaves the child and the emulator disagreeing about the
    geometry, so it is raised as ``GeometryError`` rather than logged.
    """

    def __init__(
        self,
        session: PTYSession,
        terminal: TerminalState,
        history: SharedKeyHistory,
        signal: DirtySignal | None = None,
        reserved_rows: int = 1,
        margin: int = 2,
    ) -> None:
        self._session = session
        self._terminal = terminal
        self._history = history
        self._signal = signal
        self.reserved_rows = reserved_rows
        self.margin = margin

    def apply(self, rows: int, cols: int, xpixel: int = 0, ypixel: int = 0) -> PTYSize:
        size = pty_size_for(rows, cols, self.reserved_rows, xpixel, ypixel)
        try:
            self._session.resize(size)
            self._terminal.resize(size.rows, size.cols)
            self._history.set_budget(max(0, cols - self.margin))
        except Exception as e:
            raise GeometryError(f"resize to {cols}x{rows} failed: {e}") from e

        logger.info("Resized session to %dx%d", size.cols, size.rows)
        if self._signal is not None:
            self._signal.notify()
        return size

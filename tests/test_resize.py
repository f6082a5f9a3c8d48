"""Tests for keytrail.bridge.resize."""

from __future__ import annotations

import pytest

from keytrail.bridge.redraw import DirtySignal
from keytrail.bridge.resize import ResizeCoordinator, pty_size_for
from keytrail.errors import GeometryError
from keytrail.keys.event import KeyEvent
from keytrail.keys.history import SharedKeyHistory
from keytrail.pty.loopback import LoopbackPTYSession
from keytrail.pty.session import PTYSize
from keytrail.term.state import TerminalState


def _setup(
    rows: int = 24, cols: int = 80
) -> tuple[LoopbackPTYSession, TerminalState, SharedKeyHistory, DirtySignal, ResizeCoordinator]:
    session = LoopbackPTYSession(PTYSize(rows=rows - 1, cols=cols))
    terminal = TerminalState(rows - 1, cols)
    history = SharedKeyHistory(cols - 2)
    signal = DirtySignal()
    resizer = ResizeCoordinator(session, terminal, history, signal=signal)
    return session, terminal, history, signal, resizer


class TestPtySizeFor:
    def test_reserves_overlay_row(self) -> None:
        assert pty_size_for(24, 80, 1) == PTYSize(rows=23, cols=80)

    def test_pixels_passed_through(self) -> None:
        assert pty_size_for(24, 80, 1, 640, 480) == PTYSize(23, 80, 640, 480)

    def test_clamped(self) -> None:
        assert pty_size_for(1, 0, 1) == PTYSize(rows=1, cols=1)


class TestResizeCoordinator:
    def test_eighty_to_forty_columns(self) -> None:
        session, terminal, history, signal, resizer = _setup()
        for _ in range(60):
            history.push(KeyEvent.char("x"))

        size = resizer.apply(24, 40)

        assert size == PTYSize(rows=23, cols=40)
        assert session.resizes == [PTYSize(rows=23, cols=40)]
        assert terminal.dimensions == (23, 40)
        assert history.budget == 38
        assert history.width <= 38
        assert signal.wait() is True

    def test_session_failure_is_geometry_error(self) -> None:
        session, terminal, history, _, resizer = _setup()
        session.fail_resize = OSError("ioctl failed")

        with pytest.raises(GeometryError) as exc_info:
            resizer.apply(30, 100)

        assert isinstance(exc_info.value.__cause__, OSError)
        # Nothing after the failing step ran.
        assert terminal.dimensions == (23, 80)
        assert history.budget == 78

    def test_tiny_terminal(self) -> None:
        session, terminal, history, _, resizer = _setup()
        resizer.apply(1, 1)
        assert terminal.dimensions == (1, 1)
        assert history.budget == 0

    def test_without_signal(self) -> None:
        session = LoopbackPTYSession()
        resizer = ResizeCoordinator(
            session, TerminalState(23, 80), SharedKeyHistory(78), reserved_rows=2, margin=4
        )
        assert resizer.apply(50, 120) == PTYSize(rows=48, cols=120)

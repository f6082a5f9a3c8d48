"""Tests for keytrail.bridge.redraw (DirtySignal, RedrawScheduler)."""

from __future__ import annotations

import threading

import pytest

from keytrail.bridge.redraw import DirtySignal, RedrawScheduler
from keytrail.errors import RedrawChannelClosed
from keytrail.keys.event import KeyEvent
from keytrail.keys.history import SharedKeyHistory
from keytrail.term.state import ScreenFrame, TerminalState


class RecordingRenderer:
    def __init__(self) -> None:
        self.frames: list[tuple[ScreenFrame, str]] = []

    def draw(self, frame: ScreenFrame, history: str) -> None:
        self.frames.append((frame, history))


class TestDirtySignal:
    def test_notifications_coalesce(self) -> None:
        signal = DirtySignal()
        for _ in range(5):
            signal.notify()
        assert signal.wait() is True
        # A second wait would block: the five notifications were one wake-up.
        waiter = threading.Thread(target=signal.wait, daemon=True)
        waiter.start()
        waiter.join(0.05)
        assert waiter.is_alive()
        signal.close()
        waiter.join(1.0)
        assert not waiter.is_alive()

    def test_notify_after_close_raises(self) -> None:
        signal = DirtySignal()
        signal.close()
        assert signal.closed
        with pytest.raises(RedrawChannelClosed):
            signal.notify()

    def test_wait_after_close_returns_false(self) -> None:
        signal = DirtySignal()
        signal.notify()
        signal.close()
        assert signal.wait() is False

    def test_notify_from_other_thread_wakes_waiter(self) -> None:
        signal = DirtySignal()
        result: list[bool] = []
        waiter = threading.Thread(target=lambda: result.append(signal.wait()))
        waiter.start()
        signal.notify()
        waiter.join(1.0)
        assert result == [True]


class TestRedrawScheduler:
    def test_redraw_uses_latest_state(self) -> None:
        terminal = TerminalState(rows=2, cols=10)
        history = SharedKeyHistory(8)
        renderer = RecordingRenderer()
        scheduler = RedrawScheduler(DirtySignal(), terminal, history, renderer)

        terminal.feed(b"out")
        history.push(KeyEvent.char("k"))
        scheduler.redraw()

        frame, text = renderer.frames[-1]
        assert frame.text()[0].startswith("out")
        assert text == "k"
        assert scheduler.draws == 1

    def test_run_until_closed(self) -> None:
        signal = DirtySignal()
        renderer = RecordingRenderer()
        scheduler = RedrawScheduler(
            signal, TerminalState(rows=1, cols=4), SharedKeyHistory(2), renderer
        )
        thread = threading.Thread(target=scheduler.run)
        thread.start()
        signal.notify()
        signal.close()
        thread.join(1.0)
        assert not thread.is_alive()
        assert signal.closed

    def test_renderer_error_closes_channel(self) -> None:
        class BrokenRenderer:
            def draw(self, frame: ScreenFrame, history: str) -> None:
                raise OSError("terminal went away")

        signal = DirtySignal()
        scheduler = RedrawScheduler(
            signal, TerminalState(rows=1, cols=4), SharedKeyHistory(2), BrokenRenderer()
        )
        signal.notify()
        with pytest.raises(OSError):
            scheduler.run()
        with pytest.raises(RedrawChannelClosed):
            signal.notify()

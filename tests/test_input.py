"""Tests for keytrail.term.input and keytrail.term.raw against a real pty pair."""

from __future__ import annotations

import fcntl
import os
import pty
import signal
import termios
from typing import Iterator

import pytest

from keytrail.errors import RawModeError
from keytrail.keys.event import KeyEvent, Modifiers, NamedKey, ResizeEvent
from keytrail.pty.session import PTYSize
from keytrail.term.input import TerminalInput
from keytrail.term.raw import raw_mode, terminal_size


@pytest.fixture
def pty_pair() -> Iterator[tuple[int, int]]:
    master, slave = pty.openpty()
    try:
        yield master, slave
    finally:
        for fd in (master, slave):
            try:
                os.close(fd)
            except OSError:
                pass


# ----------------------------------------------------------------------------
# raw mode
# ----------------------------------------------------------------------------


class TestRawMode:
    def test_restores_attributes(self, pty_pair) -> None:
        _, slave = pty_pair
        before = termios.tcgetattr(slave)
        with raw_mode(slave):
            inside = termios.tcgetattr(slave)
            assert not inside[3] & termios.ECHO
            assert not inside[3] & termios.ICANON
        assert termios.tcgetattr(slave) == before

    def test_restores_after_error(self, pty_pair) -> None:
        _, slave = pty_pair
        before = termios.tcgetattr(slave)
        with pytest.raises(RuntimeError):
            with raw_mode(slave):
                raise RuntimeError("boom")
        assert termios.tcgetattr(slave) == before

    def test_not_a_terminal(self) -> None:
        r, w = os.pipe()
        try:
            with pytest.raises(RawModeError):
                with raw_mode(r):
                    pass
        finally:
            os.close(r)
            os.close(w)

    def test_terminal_size(self, pty_pair) -> None:
        _, slave = pty_pair
        fcntl.ioctl(slave, termios.TIOCSWINSZ, PTYSize(30, 100, 800, 600).pack())
        assert terminal_size(slave) == ResizeEvent(rows=30, cols=100, xpixel=800, ypixel=600)


# ----------------------------------------------------------------------------
# TerminalInput
# ----------------------------------------------------------------------------


class TestTerminalInput:
    def test_keys_in_order(self, pty_pair) -> None:
        master, slave = pty_pair
        with raw_mode(slave), TerminalInput(slave) as source:
            os.write(master, b"a\x1b[A\x03")
            assert source.next_event() == KeyEvent.char("a")
            assert source.next_event() == KeyEvent.named(NamedKey.UP)
            assert source.next_event() == KeyEvent.char("c", Modifiers.CONTROL)

    def test_lone_escape_after_timeout(self, pty_pair) -> None:
        master, slave = pty_pair
        with raw_mode(slave), TerminalInput(slave, escape_timeout=0.01) as source:
            os.write(master, b"\x1b")
            assert source.next_event() == KeyEvent.named(NamedKey.ESCAPE)

    def test_resize_reported_before_keys(self, pty_pair) -> None:
        master, slave = pty_pair
        with raw_mode(slave), TerminalInput(slave) as source:
            fcntl.ioctl(slave, termios.TIOCSWINSZ, PTYSize(40, 120).pack())
            os.write(master, b"x")
            source._on_winch(signal.SIGWINCH, None)
            assert source.next_event() == ResizeEvent(rows=40, cols=120)
            assert source.next_event() == KeyEvent.char("x")

    def test_sigwinch_handler_restored(self, pty_pair) -> None:
        _, slave = pty_pair
        previous = signal.getsignal(signal.SIGWINCH)
        with TerminalInput(slave) as source:
            assert signal.getsignal(signal.SIGWINCH) == source._on_winch
        assert signal.getsignal(signal.SIGWINCH) == (previous or signal.SIG_DFL)

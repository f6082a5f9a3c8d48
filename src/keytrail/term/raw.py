"""Scoped raw mode for the controlling terminal."""

from __future__ import annotations

import fcntl
import logging
import shutil
import struct
import termios
import tty
from contextlib import contextmanager
from typing import Iterator

from keytrail.errors import RawModeError
from keytrail.keys.event import ResizeEvent

logger = logging.getLogger(__name__)


@contextmanager
def raw_mode(fd: int) -> Iterator[None]:
    """Put ``fd`` in raw mode for the duration of the block.

    The saved attributes are restored on every exit path, including
    exceptions raised inside the block.

    Raises:
        RawModeError: ``fd`` is not a terminal or its mode cannot be changed.
    """
    try:
        saved = termios.tcgetattr(fd)
    except termios.error as e:
        raise RawModeError(f"file descriptor {fd} is not a terminal: {e}") from e

    try:
        tty.setraw(fd)
    except termios.error as e:
        raise RawModeError(f"cannot enter raw mode: {e}") from e
    logger.debug("Raw mode entered on fd %d", fd)

    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSAFLUSH, saved)
        logger.debug("Raw mode restored on fd %d", fd)


def terminal_size(fd: int) -> ResizeEvent:
    """Current size of the terminal on ``fd``, pixels included when known."""
    try:
        packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\x00" * 8)
    except OSError:
        size = shutil.get_terminal_size()
        return ResizeEvent(rows=size.lines, cols=size.columns)
    rows, cols, xpixel, ypixel = struct.unpack("HHHH", packed)
    return ResizeEvent(rows=rows, cols=cols, xpixel=xpixel, ypixel=ypixel)

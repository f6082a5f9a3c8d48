"""Error taxonomy for keytrail.

Startup errors abort before any worker thread starts. Geometry, redraw
channel and worker errors abort a running session. Zero-byte pty reads are
not errors at all and never reach this module.
"""

from __future__ import annotations


class KeytrailError(Exception):
    """Base class for all keytrail errors."""


class StartupError(KeytrailError):
    """The session could not be brought up."""


class SpawnError(StartupError):
    """The child process or its pseudo-terminal could not be created."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"cannot spawn {command!r}: {reason}")
        self.command = command
        self.reason = reason


class RawModeError(StartupError):
    """The controlling terminal could not be switched to raw mode."""


class GeometryError(KeytrailError):
    """A resize step failed and the views no longer agree on dimensions."""


class RedrawChannelClosed(KeytrailError):
    """A redraw was requested after the redraw thread stopped."""


class WorkerError(KeytrailError):
    """A bridge worker thread died on an unexpected exception."""

    def __init__(self, worker: str, error: BaseException) -> None:
        super().__init__(f"{worker} failed: {error}")
        self.worker = worker
        self.error = error

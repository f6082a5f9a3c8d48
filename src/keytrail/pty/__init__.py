"""PTY sessions: a child process behind a pseudo-terminal.

``NativePTYSession`` spawns a real process on an OS pty;
``LoopbackPTYSession`` is an in-memory stand-in with scripted output.
"""

from keytrail.pty.loopback import LoopbackPTYSession
from keytrail.pty.session import (
    ExitStatus,
    NativePTYSession,
    PTYSession,
    PTYSize,
    PTYStatus,
)

__all__ = [
    "ExitStatus",
    "LoopbackPTYSession",
    "NativePTYSession",
    "PTYSession",
    "PTYSize",
    "PTYStatus",
]

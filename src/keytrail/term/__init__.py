"""The real terminal: raw mode, input events, emulated state and drawing."""

from keytrail.term.input import TerminalInput
from keytrail.term.raw import raw_mode, terminal_size
from keytrail.term.render import Renderer
from keytrail.term.state import ScreenFrame, TerminalState

__all__ = [
    "Renderer",
    "ScreenFrame",
    "TerminalInput",
    "TerminalState",
    "raw_mode",
    "terminal_size",
]

"""The concurrent session bridge.

Two pumps move data between the real terminal and the pty, a resize
coordinator keeps every view's geometry in step, and a redraw scheduler
turns "something changed" signals into frames.
"""

from keytrail.bridge.bridge import Bridge
from keytrail.bridge.pumps import InputPump, OutputPump
from keytrail.bridge.redraw import DirtySignal, RedrawScheduler
from keytrail.bridge.resize import ResizeCoordinator, pty_size_for

__all__ = [
    "Bridge",
    "DirtySignal",
    "InputPump",
    "OutputPump",
    "RedrawScheduler",
    "ResizeCoordinator",
    "pty_size_for",
]

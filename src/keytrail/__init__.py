"""keytrail: a terminal session bridge with a live keystroke overlay."""

__version__ = "0.1.0"

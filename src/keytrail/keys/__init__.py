"""Key events: decoding, encoding, pretty-printing and the history ring."""

from keytrail.keys.decoder import KeyDecoder
from keytrail.keys.encoder import encode_key
from keytrail.keys.event import KeyEvent, Modifiers, NamedKey, ResizeEvent
from keytrail.keys.history import KeyHistory, SharedKeyHistory

__all__ = [
    "KeyDecoder",
    "KeyEvent",
    "KeyHistory",
    "Modifiers",
    "NamedKey",
    "ResizeEvent",
    "SharedKeyHistory",
    "encode_key",
]

"""Decode raw terminal input bytes into key events."""

from __future__ import annotations

import codecs
import logging
import re

from keytrail.keys.event import KeyEvent, Modifiers, NamedKey

logger = logging.getLogger(__name__)

_CSI = re.compile(r"\x1b\[([0-9;]*)([A-Za-z~])")
# A CSI that may still be completed by more input.
_CSI_PREFIX = re.compile(r"\x1b\[[0-9;]*\Z")

_CSI_FINALS: dict[str, NamedKey] = {
    "A": NamedKey.UP,
    "B": NamedKey.DOWN,
    "C": NamedKey.RIGHT,
    "D": NamedKey.LEFT,
    "H": NamedKey.HOME,
    "F": NamedKey.END,
    "P": NamedKey.F1,
    "Q": NamedKey.F2,
    "R": NamedKey.F3,
    "S": NamedKey.F4,
    "Z": NamedKey.BACK_TAB,
}

_SS3_FINALS: dict[str, NamedKey] = {
    "A": NamedKey.UP,
    "B": NamedKey.DOWN,
    "C": NamedKey.RIGHT,
    "D": NamedKey.LEFT,
    "H": NamedKey.HOME,
    "F": NamedKey.END,
    "P": NamedKey.F1,
    "Q": NamedKey.F2,
    "R": NamedKey.F3,
    "S": NamedKey.F4,
}

_TILDE_KEYS: dict[int, NamedKey] = {
    1: NamedKey.HOME,
    2: NamedKey.INSERT,
    3: NamedKey.DELETE,
    4: NamedKey.END,
    5: NamedKey.PAGE_UP,
    6: NamedKey.PAGE_DOWN,
    7: NamedKey.HOME,
    8: NamedKey.END,
    11: NamedKey.F1,
    12: NamedKey.F2,
    13: NamedKey.F3,
    14: NamedKey.F4,
    15: NamedKey.F5,
    17: NamedKey.F6,
    18: NamedKey.F7,
    19: NamedKey.F8,
    20: NamedKey.F9,
    21: NamedKey.F10,
    23: NamedKey.F11,
    24: NamedKey.F12,
}


def _modifiers_from_param(param: int) -> Modifiers:
    bits = max(0, param - 1)
    modifiers = Modifiers.NONE
    if bits & 1:
        modifiers |= Modifiers.SHIFT
    if bits & 2:
        modifiers |= Modifiers.ALT
    if bits & 4:
        modifiers |= Modifiers.CONTROL
    return modifiers


def decode_char(ch: str) -> KeyEvent:
    """Map one non-escape character to a key event."""
    code = ord(ch)
    if ch == "\r":
        return KeyEvent.named(NamedKey.ENTER)
    if ch == "\t":
        return KeyEvent.named(NamedKey.TAB)
    if ch == "\x7f":
        return KeyEvent.named(NamedKey.BACKSPACE)
    if ch == "\x1b":
        return KeyEvent.named(NamedKey.ESCAPE)
    if code == 0:
        return KeyEvent.char(" ", Modifiers.CONTROL)
    if 0x01 <= code <= 0x1A:
        return KeyEvent.char(chr(code - 1 + ord("a")), Modifiers.CONTROL)
    if 0x1C <= code <= 0x1F:
        return KeyEvent.char(chr(code - 0x1C + ord("4")), Modifiers.CONTROL)
    return KeyEvent.char(ch)


class KeyDecoder:
    """Incremental decoder from terminal input bytes to ``KeyEvent``.

    Bytes may arrive split anywhere, including inside a UTF-8 character or an
    escape sequence. ``feed()`` returns every complete event; an incomplete
    tail stays buffered. A lone ESC is ambiguous until more input arrives or
    the caller gives up waiting and calls ``flush()``.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def feed(self, data: bytes) -> list[KeyEvent]:
        self._pending += self._utf8.decode(data)
        events: list[KeyEvent] = []
        while self._pending:
            consumed, event = self._parse(self._pending)
            if consumed == 0:
                break
            self._pending = self._pending[consumed:]
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[KeyEvent]:
        """Resolve whatever is buffered without waiting for more input."""
        events: list[KeyEvent] = []
        while self._pending:
            consumed, event = self._parse(self._pending, final=True)
            self._pending = self._pending[consumed:]
            if event is not None:
                events.append(event)
        return events

    def _parse(self, text: str, final: bool = False) -> tuple[int, KeyEvent | None]:
        """Return (characters consumed, event) for the head of ``text``.

        ``(0, None)`` means the head is an incomplete sequence.
        """
        if text[0] != "\x1b":
            return 1, decode_char(text[0])

        if len(text) == 1:
            if final:
                return 1, KeyEvent.named(NamedKey.ESCAPE)
            return 0, None

        second = text[1]
        if second == "[":
            match = _CSI.match(text)
            if match:
                return match.end(), self._decode_csi(match.group(1), match.group(2))
            if _CSI_PREFIX.match(text) and not final:
                return 0, None
            # Malformed sequence: treat as Alt+[.
            return 2, KeyEvent.char("[", Modifiers.ALT)

        if second == "O":
            if len(text) < 3:
                if final:
                    return 2, KeyEvent.char("O", Modifiers.ALT)
                return 0, None
            key = _SS3_FINALS.get(text[2])
            if key is None:
                logger.debug("Unknown SS3 sequence: %r", text[:3])
                return 3, None
            return 3, KeyEvent.named(key)

        if second == "\x1b":
            return 1, KeyEvent.named(NamedKey.ESCAPE)

        inner = decode_char(second)
        return 2, KeyEvent(key=inner.key, modifiers=inner.modifiers | Modifiers.ALT)

    def _decode_csi(self, params: str, final: str) -> KeyEvent | None:
        fields = [int(p) if p else 0 for p in params.split(";")] if params else []
        modifiers = _modifiers_from_param(fields[1]) if len(fields) > 1 else Modifiers.NONE

        if final == "~":
            key = _TILDE_KEYS.get(fields[0] if fields else 0)
        else:
            key = _CSI_FINALS.get(final)
            if key is NamedKey.BACK_TAB:
                modifiers |= Modifiers.SHIFT

        if key is None:
            logger.debug("Unknown CSI sequence: params=%r final=%r", params, final)
            return None
        return KeyEvent.named(key, modifiers)

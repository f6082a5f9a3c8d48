"""Encode key events into the bytes an xterm-compatible child expects."""

from __future__ import annotations

from keytrail.keys.event import KeyEvent, Modifiers, NamedKey

ESC = b"\x1b"

# Final byte of CSI/SS3 sequences for cursor-style keys.
_CURSOR_FINALS: dict[NamedKey, bytes] = {
    NamedKey.UP: b"A",
    NamedKey.DOWN: b"B",
    NamedKey.RIGHT: b"C",
    NamedKey.LEFT: b"D",
    NamedKey.HOME: b"H",
    NamedKey.END: b"F",
}

_SS3_FUNCTION: dict[NamedKey, bytes] = {
    NamedKey.F1: b"P",
    NamedKey.F2: b"Q",
    NamedKey.F3: b"R",
    NamedKey.F4: b"S",
}

# ``CSI <n> ~`` keys.
_TILDE_CODES: dict[NamedKey, int] = {
    NamedKey.INSERT: 2,
    NamedKey.DELETE: 3,
    NamedKey.PAGE_UP: 5,
    NamedKey.PAGE_DOWN: 6,
    NamedKey.F5: 15,
    NamedKey.F6: 17,
    NamedKey.F7: 18,
    NamedKey.F8: 19,
    NamedKey.F9: 20,
    NamedKey.F10: 21,
    NamedKey.F11: 23,
    NamedKey.F12: 24,
}

# Control combinations that do not follow the letter rule.
_CONTROL_SYMBOLS: dict[str, int] = {
    " ": 0x00,
    "@": 0x00,
    "2": 0x00,
    "[": 0x1B,
    "3": 0x1B,
    "\\": 0x1C,
    "4": 0x1C,
    "]": 0x1D,
    "5": 0x1D,
    "^": 0x1E,
    "6": 0x1E,
    "_": 0x1F,
    "7": 0x1F,
    "/": 0x1F,
    "?": 0x7F,
    "8": 0x7F,
}


def modifier_param(modifiers: Modifiers) -> int:
    """xterm modifier parameter: 1 + shift(1) + alt(2) + control(4)."""
    value = 1
    if Modifiers.SHIFT in modifiers:
        value += 1
    if Modifiers.ALT in modifiers:
        value += 2
    if Modifiers.CONTROL in modifiers:
        value += 4
    return value


def encode_key(event: KeyEvent, application_cursor: bool = False) -> bytes:
    """Return the byte sequence for ``event``.

    Printable characters pass through as UTF-8, control combinations map to
    C0 control bytes, alt prefixes ESC, and named keys map to their xterm
    escape sequences. ``application_cursor`` selects ``ESC O`` arrows, as
    requested by the child through DECCKM.

    Returns ``b""`` for combinations that have no encoding.
    """
    if isinstance(event.key, NamedKey):
        return _encode_named(event.key, event.modifiers, application_cursor)
    return _encode_char(event.key, event.modifiers)


def _encode_char(ch: str, modifiers: Modifiers) -> bytes:
    if Modifiers.CONTROL in modifiers:
        code = _control_code(ch)
        if code is None:
            return b""
        data = bytes([code])
    else:
        data = ch.encode("utf-8")

    if Modifiers.ALT in modifiers:
        return ESC + data
    return data


def _control_code(ch: str) -> int | None:
    lower = ch.lower()
    if "a" <= lower <= "z":
        return ord(lower) - ord("a") + 1
    return _CONTROL_SYMBOLS.get(ch)


def _encode_named(
    key: NamedKey, modifiers: Modifiers, application_cursor: bool
) -> bytes:
    param = modifier_param(modifiers)

    if key in _CURSOR_FINALS:
        final = _CURSOR_FINALS[key]
        if param > 1:
            return b"\x1b[1;%d" % param + final
        if application_cursor:
            return b"\x1bO" + final
        return b"\x1b[" + final

    if key in _SS3_FUNCTION:
        final = _SS3_FUNCTION[key]
        if param > 1:
            return b"\x1b[1;%d" % param + final
        return b"\x1bO" + final

    if key in _TILDE_CODES:
        code = _TILDE_CODES[key]
        if param > 1:
            return b"\x1b[%d;%d~" % (code, param)
        return b"\x1b[%d~" % code

    if key is NamedKey.BACK_TAB:
        return b"\x1b[Z"

    simple = {
        NamedKey.ENTER: b"\r",
        NamedKey.TAB: b"\t",
        NamedKey.BACKSPACE: b"\x7f",
        NamedKey.ESCAPE: ESC,
    }[key]
    if Modifiers.CONTROL in modifiers and key is NamedKey.BACKSPACE:
        simple = b"\x08"
    if Modifiers.ALT in modifiers:
        return ESC + simple
    return simple

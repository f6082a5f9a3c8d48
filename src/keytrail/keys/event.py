"""Key events and their human-readable form."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from rich.cells import cell_len

SPACE_GLYPH = "\u2423"  # ␣


class NamedKey(enum.Enum):
    """Keys that are not a single printable character."""

    BACKSPACE = "BS"
    ENTER = "CR"
    ESCAPE = "Esc"
    LEFT = "Left"
    RIGHT = "Right"
    UP = "Up"
    DOWN = "Down"
    TAB = "Tab"
    BACK_TAB = "BackTab"
    HOME = "Home"
    END = "End"
    PAGE_UP = "PageUp"
    PAGE_DOWN = "PageDown"
    INSERT = "Insert"
    DELETE = "Delete"
    # Function keys show as F1..F12, not F(1); keystroke traces from other
    # tools may spell them differently.
    F1 = "F1"
    F2 = "F2"
    F3 = "F3"
    F4 = "F4"
    F5 = "F5"
    F6 = "F6"
    F7 = "F7"
    F8 = "F8"
    F9 = "F9"
    F10 = "F10"
    F11 = "F11"
    F12 = "F12"


class Modifiers(enum.Flag):
    NONE = 0
    SHIFT = enum.auto()
    ALT = enum.auto()
    CONTROL = enum.auto()


# Display markers, in the order they are printed.
_MARKERS: tuple[tuple[Modifiers, str], ...] = (
    (Modifiers.CONTROL, "C"),
    (Modifiers.ALT, "A"),
)


@dataclass(frozen=True)
class KeyEvent:
    """A single key press: a character or named key plus modifiers."""

    key: str | NamedKey
    modifiers: Modifiers = Modifiers.NONE

    @classmethod
    def char(cls, ch: str, modifiers: Modifiers = Modifiers.NONE) -> KeyEvent:
        return cls(key=ch, modifiers=modifiers)

    @classmethod
    def named(cls, key: NamedKey, modifiers: Modifiers = Modifiers.NONE) -> KeyEvent:
        return cls(key=key, modifiers=modifiers)

    @classmethod
    def parse(cls, chord: str) -> KeyEvent:
        """Parse a chord like ``C-A-l``, ``C-c``, ``Esc`` or ``F5``.

        Prefixes ``C-``, ``A-`` and ``S-`` select control, alt and shift.
        The remainder is a single character, the name of a ``NamedKey``
        member (``PAGE_UP``) or its display form (``PageUp``).
        """
        modifiers = Modifiers.NONE
        prefixes = {"C": Modifiers.CONTROL, "A": Modifiers.ALT, "S": Modifiers.SHIFT}
        rest = chord
        while len(rest) > 2 and rest[1] == "-" and rest[0] in prefixes:
            modifiers |= prefixes[rest[0]]
            rest = rest[2:]

        if len(rest) == 1:
            return cls.char(rest, modifiers)
        if rest.lower() == "space":
            return cls.char(" ", modifiers)
        for member in NamedKey:
            if rest in (member.value, member.name) or rest.upper() == member.name:
                return cls.named(member, modifiers)
        raise ValueError(f"Unknown key chord: {chord!r}")

    @property
    def display_modifiers(self) -> Modifiers:
        """Modifiers that show up in the pretty-printed form."""
        return self.modifiers & (Modifiers.CONTROL | Modifiers.ALT)

    def pretty(self) -> str:
        """Render the key the way the history overlay shows it.

        >>> KeyEvent.char("a").pretty()
        'a'
        >>> KeyEvent.named(NamedKey.ENTER).pretty()
        '<CR>'
        >>> KeyEvent.char("x", Modifiers.CONTROL).pretty()
        '<C-x>'
        """
        if isinstance(self.key, NamedKey):
            form = self.key.value
        elif self.key == " ":
            form = SPACE_GLYPH
        else:
            form = self.key

        active = self.display_modifiers
        if not active:
            return form if cell_len(form) == 1 else f"<{form}>"

        flags = [marker for flag, marker in _MARKERS if flag in active]
        return "<" + "-".join([*flags, form]) + ">"

    @property
    def width(self) -> int:
        """Display width of ``pretty()`` in terminal cells."""
        return cell_len(self.pretty())

    def __str__(self) -> str:
        return self.pretty()


@dataclass(frozen=True)
class ResizeEvent:
    """The real terminal changed size."""

    rows: int
    cols: int
    xpixel: int = 0
    ypixel: int = 0


InputEvent = KeyEvent | ResizeEvent

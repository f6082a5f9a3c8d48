"""Draw the emulated screen and the key history overlay with rich."""

from __future__ import annotations

import logging
from functools import lru_cache

from pyte.screens import Char
from rich.color import ColorParseError
from rich.console import Console
from rich.control import Control
from rich.style import Style
from rich.text import Text

from keytrail.term.state import ScreenFrame

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# pyte's names for colors that rich spells differently.
_COLOR_ALIASES: dict[str, str] = {
    "brown": "yellow",
    "brightbrown": "bright_yellow",
}


def _rich_color(value: str) -> str | None:
    if value == "default":
        return None
    if len(value) == 6 and _HEX_DIGITS.issuperset(value):
        return f"#{value}"
    name = _COLOR_ALIASES.get(value, value)
    if name.startswith("bright") and not name.startswith("bright_"):
        name = "bright_" + name[len("bright") :]
    return name


@lru_cache(maxsize=4096)
def _style(
    fg: str,
    bg: str,
    bold: bool,
    italics: bool,
    underscore: bool,
    strikethrough: bool,
    reverse: bool,
    blink: bool,
) -> Style:
    attrs = dict(
        bold=bold or None,
        italic=italics or None,
        underline=underscore or None,
        strike=strikethrough or None,
        reverse=reverse or None,
        blink=blink or None,
    )
    try:
        return Style(color=_rich_color(fg), bgcolor=_rich_color(bg), **attrs)
    except ColorParseError:
        logger.debug("Unknown pyte colors fg=%r bg=%r", fg, bg)
        return Style(**attrs)


def cell_style(cell: Char) -> Style:
    return _style(
        cell.fg,
        cell.bg,
        cell.bold,
        cell.italics,
        cell.underscore,
        cell.strikethrough,
        cell.reverse,
        cell.blink,
    )


def line_to_text(cells: tuple[Char, ...]) -> Text:
    """Convert one pyte line to styled text, merging runs of equal style."""
    text = Text(no_wrap=True, overflow="crop")
    run: list[str] = []
    run_style: Style | None = None
    for cell in cells:
        if not cell.data:
            continue  # right half of a wide character
        style = cell_style(cell)
        if style != run_style and run:
            text.append("".join(run), run_style)
            run = []
        run_style = style
        run.append(cell.data)
    if run:
        text.append("".join(run), run_style)
    return text


class Renderer:
    """Draws frames onto the real terminal.

    The emulated screen occupies the top ``frame.rows`` rows; the history
    overlay is drawn on the row below it, inside ``margin`` columns of
    padding split across both sides.
    """

    def __init__(
        self,
        console: Console | None = None,
        overlay_style: str = "reverse",
        margin: int = 2,
    ) -> None:
        self._console = console or Console(highlight=False)
        self._overlay_style = overlay_style
        self._margin = margin

    @property
    def console(self) -> Console:
        return self._console

    def open(self) -> None:
        """Switch to the alternate screen and clear it."""
        self._console.set_alt_screen(True)
        self._console.clear()

    def close(self) -> None:
        self._console.set_alt_screen(False)
        self._console.show_cursor(True)

    def overlay_text(self, history: str, width: int) -> Text:
        left = self._margin // 2
        right = self._margin - left
        body = Text(history, no_wrap=True, overflow="crop")
        body.truncate(max(0, width - self._margin))
        text = Text.assemble(" " * left, body, " " * right, style=self._overlay_style)
        text.truncate(width, pad=True)
        return text

    def compose(self, frame: ScreenFrame, history: str) -> str:
        """Render a full frame to the string that would be written out."""
        console = self._console
        with console.capture() as capture:
            console.show_cursor(False)
            for y, cells in enumerate(frame.lines):
                console.control(Control.move_to(0, y))
                console.print(line_to_text(cells), end="", width=frame.cols, crop=True)
            console.control(Control.move_to(0, frame.rows))
            console.print(
                self.overlay_text(history, frame.cols), end="", width=frame.cols, crop=True
            )
            console.control(Control.move_to(frame.cursor_x, frame.cursor_y))
            if not frame.cursor_hidden:
                console.show_cursor(True)
        return capture.get()

    def draw(self, frame: ScreenFrame, history: str) -> None:
        output = self.compose(frame, history)
        file = self._console.file
        file.write(output)
        file.flush()

"""CLI entry point for keytrail."""

from __future__ import annotations

import logging
import os
import shlex
import sys

import typer
from rich.console import Console

from keytrail.config import KeytrailConfig, LoggingConfig
from keytrail.errors import KeytrailError, SpawnError, StartupError
from keytrail.keys.event import KeyEvent

app = typer.Typer(
    name="keytrail",
    help="Run a command in a pseudo-terminal with a live trace of the keys you press.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Route logs to files only.

    Anything written to stderr while the session is up would corrupt the
    display, so without a log file the root logger gets a NullHandler.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)
    root.setLevel(level)
    if config.log_file:
        handler: logging.Handler = logging.FileHandler(config.log_file)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        root.addHandler(handler)
    else:
        root.addHandler(logging.NullHandler())

    keystrokes = logging.getLogger("keytrail.keystrokes")
    keystrokes.propagate = False
    for handler in keystrokes.handlers[:]:
        keystrokes.removeHandler(handler)
    if config.keystroke_log:
        # Truncated per run, like the trace file of the early prototypes.
        trace = logging.FileHandler(config.keystroke_log, mode="w")
        trace.setFormatter(logging.Formatter("%(message)s"))
        keystrokes.addHandler(trace)
        keystrokes.setLevel(logging.INFO)
    else:
        keystrokes.addHandler(logging.NullHandler())


def _stdin_fd() -> int:
    try:
        fd = sys.stdin.fileno()
    except ValueError:  # io.UnsupportedOperation, or stdin closed
        fd = -1
    if fd < 0 or not os.isatty(fd):
        typer.echo("Error: keytrail needs an interactive terminal on stdin.", err=True)
        raise typer.Exit(1)
    return fd


def _run_session(config: KeytrailConfig, argv: list[str], fd: int) -> int:
    """Spawn the child, bridge it to the terminal and return its exit code."""
    from keytrail.bridge import Bridge, pty_size_for
    from keytrail.pty import NativePTYSession
    from keytrail.term import Renderer, TerminalInput, raw_mode, terminal_size

    real = terminal_size(fd)
    size = pty_size_for(
        real.rows, real.cols, config.session.reserved_rows, real.xpixel, real.ypixel
    )
    env = {**os.environ, "TERM": config.session.term}

    session = NativePTYSession.open(
        argv[0], argv[1:], cwd=os.getcwd(), env=env, size=size
    )
    try:
        console = Console(file=sys.stdout, force_terminal=True, highlight=False)
        renderer = Renderer(
            console, overlay_style=config.overlay.style, margin=config.overlay.margin
        )
        try:
            with raw_mode(fd), TerminalInput(
                fd, escape_timeout=config.session.escape_timeout
            ) as source:
                renderer.open()
                try:
                    bridge = Bridge(
                        session,
                        source,
                        renderer,
                        reserved_rows=config.session.reserved_rows,
                        margin=config.overlay.margin,
                        clear_chord=config.overlay.clear_event,
                        chunk_size=config.session.read_chunk,
                        idle_backoff=config.session.idle_backoff,
                    )
                    status = bridge.run()
                finally:
                    renderer.close()
        except StartupError:
            session.terminate()
            raise
    finally:
        session.close()

    logger.info("Session ended: %s", status)
    if not status.success:
        typer.echo(f"keytrail: {argv[0]} {status}", err=True)
    return status.shell_code


@app.command()
def run(
    command: str | None = typer.Argument(
        None, help="Command line to run (default: $SHELL or config)."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    log_file: str | None = typer.Option(
        None, "--log-file", "-l", help="Write debug logs to this file."
    ),
    keystroke_log: str | None = typer.Option(
        None, "--keystroke-log", "-k", help="Write one line per forwarded key to this file."
    ),
    clear_chord: str | None = typer.Option(
        None, "--clear-chord", help="Chord that clears the history (e.g. 'C-A-l')."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Run a command with the keystroke overlay."""
    config = KeytrailConfig.load(config_file)
    if command:
        config.session.command = command
    if log_file:
        config.logging.log_file = log_file
    if keystroke_log:
        config.logging.keystroke_log = keystroke_log
    if clear_chord:
        try:
            KeyEvent.parse(clear_chord)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(2)
        config.overlay.clear_chord = clear_chord

    setup_logging(config.logging, verbose)

    argv = shlex.split(config.session.command)
    if not argv:
        typer.echo("Error: empty command.", err=True)
        raise typer.Exit(2)

    fd = _stdin_fd()
    try:
        code = _run_session(config, argv, fd)
    except SpawnError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(127)
    except KeytrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    raise typer.Exit(code)


@app.command()
def keys(
    clear_chord: str = typer.Option(
        "C-A-l", "--clear-chord", help="Chord that clears the trace."
    ),
) -> None:
    """Show how each key press is decoded, encoded and traced. Ctrl+C quits."""
    from keytrail.keys import KeyHistory, Modifiers, ResizeEvent, encode_key
    from keytrail.term import TerminalInput, raw_mode, terminal_size

    fd = _stdin_fd()
    clear = KeyEvent.parse(clear_chord)
    quit_key = KeyEvent.char("c", Modifiers.CONTROL)
    history = KeyHistory(terminal_size(fd).cols - 2)

    def out(line: str) -> None:
        sys.stdout.write(line + "\r\n")
        sys.stdout.flush()

    try:
        with raw_mode(fd), TerminalInput(fd) as source:
            out("Press keys; Ctrl+C quits.")
            while True:
                event = source.next_event()
                if isinstance(event, ResizeEvent):
                    history.set_budget(event.cols - 2)
                    out(f"resize {event.cols}x{event.rows}")
                    continue
                if event == quit_key:
                    break
                if event == clear:
                    history.clear()
                else:
                    history.push(event)
                out(f"{event.pretty():<12} {encode_key(event)!r:<16} {history.render()}")
    except EOFError:
        pass
    except StartupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

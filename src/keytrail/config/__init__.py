"""Configuration: Pydantic models for keytrail settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from keytrail.keys.event import KeyEvent


def _default_command() -> str:
    return os.environ.get("SHELL") or "/bin/sh"


class SessionConfig(BaseModel):
    """Child process and pty settings."""

    command: str = Field(
        default_factory=_default_command,
        description="Command line to run, split like a shell would (default: $SHELL)",
    )
    term: str = Field(
        default="xterm-256color", description="TERM value exported to the child"
    )
    reserved_rows: int = Field(
        default=1,
        ge=1,
        description="Rows of the real terminal kept for the overlay (at least its one row)",
    )
    read_chunk: int = Field(
        default=4096, gt=0, description="Bytes requested per read from the pty"
    )
    idle_backoff: float = Field(
        default=0.01,
        ge=0,
        description="Seconds to sleep after a zero-byte pty read before retrying",
    )
    escape_timeout: float = Field(
        default=0.025,
        gt=0,
        description="Seconds to wait after ESC before treating it as the Escape key",
    )


class OverlayConfig(BaseModel):
    """Key history overlay settings."""

    margin: int = Field(
        default=2, ge=0, description="Columns of padding around the history text"
    )
    clear_chord: str = Field(
        default="C-A-l",
        description="Key chord that clears the history instead of being forwarded",
    )
    style: str = Field(default="reverse", description="Rich style for the overlay row")

    @field_validator("clear_chord")
    @classmethod
    def _check_chord(cls, value: str) -> str:
        KeyEvent.parse(value)
        return value

    @property
    def clear_event(self) -> KeyEvent:
        return KeyEvent.parse(self.clear_chord)


class LoggingConfig(BaseModel):
    """Log sinks. Nothing is ever logged to the terminal during a session."""

    log_file: str | None = Field(default=None, description="Debug log file path")
    keystroke_log: str | None = Field(
        default=None, description="File that receives one line per forwarded key"
    )
    level: str = Field(default="INFO", description="Level for the debug log file")


class KeytrailConfig(BaseModel):
    """Top-level keytrail configuration."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> KeytrailConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            KEYTRAIL_COMMAND        - Command line to run in the session
            KEYTRAIL_TERM           - TERM exported to the child
            KEYTRAIL_LOG_FILE       - Debug log file
            KEYTRAIL_KEYSTROKE_LOG  - Keystroke trace file
            KEYTRAIL_CLEAR_CHORD    - Chord that clears the history (e.g. "C-A-l")
        """
        # .env in the working directory; it never overrides the shell.
        load_dotenv(find_dotenv(usecwd=True), override=False)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        overrides = {
            ("session", "command"): "KEYTRAIL_COMMAND",
            ("session", "term"): "KEYTRAIL_TERM",
            ("logging", "log_file"): "KEYTRAIL_LOG_FILE",
            ("logging", "keystroke_log"): "KEYTRAIL_KEYSTROKE_LOG",
            ("overlay", "clear_chord"): "KEYTRAIL_CLEAR_CHORD",
        }
        for (section, key), env_var in overrides.items():
            value = os.environ.get(env_var)
            if value:
                config_data.setdefault(section, {})[key] = value

        return cls.model_validate(config_data)

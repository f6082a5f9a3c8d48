"""PTY session: a child process attached to a pseudo-terminal."""

from __future__ import annotations

import abc
import enum
import errno
import fcntl
import logging
import os
import pty
import shutil
import signal
import struct
import subprocess
import termios
import threading
from dataclasses import dataclass
from typing import BinaryIO, Mapping, Protocol, Sequence

from keytrail.errors import SpawnError

logger = logging.getLogger(__name__)


class PTYStatus(enum.Enum):
    """Lifecycle states for a PTY session."""

    RUNNING = "running"
    TERMINATING = "terminating"  # Hang-up sent, waiting for the child
    EXITED = "exited"


@dataclass(frozen=True)
class PTYSize:
    """Window geometry of a pseudo-terminal."""

    rows: int
    cols: int
    xpixel: int = 0
    ypixel: int = 0

    def clamped(self) -> PTYSize:
        return PTYSize(
            rows=max(1, self.rows),
            cols=max(1, self.cols),
            xpixel=max(0, self.xpixel),
            ypixel=max(0, self.ypixel),
        )

    def pack(self) -> bytes:
        """``struct winsize`` as expected by TIOCSWINSZ."""
        return struct.pack("HHHH", self.rows, self.cols, self.xpixel, self.ypixel)

    @classmethod
    def unpack(cls, data: bytes) -> PTYSize:
        rows, cols, xpixel, ypixel = struct.unpack("HHHH", data)
        return cls(rows=rows, cols=cols, xpixel=xpixel, ypixel=ypixel)


@dataclass(frozen=True)
class ExitStatus:
    """How the child process ended."""

    code: int | None = None
    signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(code=returncode)

    @property
    def success(self) -> bool:
        return self.code == 0

    @property
    def shell_code(self) -> int:
        """Exit code a shell would report for this status."""
        if self.signal is not None:
            return 128 + self.signal
        return self.code if self.code is not None else 1

    def __str__(self) -> str:
        if self.signal is not None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
            return f"killed by {name}"
        return f"exit code {self.code}"


class ByteReader(Protocol):
    def read(self, size: int) -> bytes: ...


class ByteWriter(Protocol):
    def write(self, data: bytes) -> int | None: ...

    def flush(self) -> None: ...


class PTYSession(abc.ABC):
    """A child process behind a pseudo-terminal.

    ``reader`` and ``writer`` are independent streams that may be owned by
    different threads without a lock between them. ``resize()`` may be
    called concurrently with both.
    """

    @property
    @abc.abstractmethod
    def reader(self) -> ByteReader: ...

    @property
    @abc.abstractmethod
    def writer(self) -> ByteWriter: ...

    @property
    @abc.abstractmethod
    def size(self) -> PTYSize: ...

    @abc.abstractmethod
    def resize(self, size: PTYSize) -> None: ...

    @abc.abstractmethod
    def wait(self) -> ExitStatus:
        """Block until the child exits."""

    @abc.abstractmethod
    def terminate(self) -> None:
        """Ask the child to go away (used when the bridge fails)."""

    def close(self) -> None:
        """Release OS resources. Safe to call more than once."""


class PTYReader:
    """Read side of the master. A hung-up slave reads as zero bytes."""

    def __init__(self, fd: int) -> None:
        self._file = open(fd, "rb", buffering=0)

    def read(self, size: int) -> bytes:
        try:
            return self._file.read(size) or b""
        except OSError as e:
            # Linux reports EIO on the master once every slave fd is closed.
            if e.errno == errno.EIO:
                return b""
            raise

    def close(self) -> None:
        self._file.close()


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is the slave.
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class NativePTYSession(PTYSession):
    """A real OS pseudo-terminal with a spawned child."""

    def __init__(self, proc: subprocess.Popen, master_fd: int, size: PTYSize) -> None:
        self._proc = proc
        self._master_fd = master_fd
        self._size = size
        self._size_lock = threading.Lock()
        self._status = PTYStatus.RUNNING
        self._exit: ExitStatus | None = None
        self._closed = False
        # Each half gets its own descriptor so the pumps never share one.
        self._reader = PTYReader(os.dup(master_fd))
        self._writer: BinaryIO = open(os.dup(master_fd), "wb")

    @classmethod
    def open(
        cls,
        command: str,
        args: Sequence[str] = (),
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        size: PTYSize | None = None,
    ) -> NativePTYSession:
        """Spawn ``command`` with ``args`` inside a new pseudo-terminal.

        Args:
            command: Executable name (looked up on PATH) or path.
            args: Arguments after the command.
            cwd: Working directory (defaults to the current one).
            env: Full environment for the child (defaults to ``os.environ``).
            size: Initial window size; rows and cols are clamped to >= 1.

        Raises:
            SpawnError: The executable is missing or not runnable, or no pty
                could be allocated.
        """
        size = (size or PTYSize(rows=24, cols=80)).clamped()
        env = dict(os.environ if env is None else env)

        executable = shutil.which(command, path=env.get("PATH"))
        if executable is None:
            if os.sep in command and os.path.exists(command):
                raise SpawnError(command, "permission denied")
            raise SpawnError(command, "executable not found")

        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise SpawnError(command, f"pty allocation failed: {e}") from e

        try:
            fcntl.ioctl(master_fd, termios.TIOCSWINSZ, size.pack())
            proc = subprocess.Popen(
                [executable, *args],
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=cwd or os.getcwd(),
                env=env,
                start_new_session=True,
                preexec_fn=_acquire_controlling_tty,
            )
        except PermissionError as e:
            os.close(master_fd)
            raise SpawnError(command, "permission denied") from e
        except (OSError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise SpawnError(command, str(e)) from e
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        logger.info(
            "PTY session started: pid=%d size=%dx%d cmd=%s",
            proc.pid,
            size.cols,
            size.rows,
            " ".join([command, *args]),
        )
        return cls(proc, master_fd, size)

    @property
    def reader(self) -> PTYReader:
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        return self._writer

    @property
    def size(self) -> PTYSize:
        with self._size_lock:
            return self._size

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def status(self) -> PTYStatus:
        return self._status

    def resize(self, size: PTYSize) -> None:
        """Change the kernel window size; queued data is untouched."""
        size = size.clamped()
        with self._size_lock:
            fcntl.ioctl(self._master_fd, termios.TIOCSWINSZ, size.pack())
            self._size = size
        logger.debug("PTY resized to %dx%d", size.cols, size.rows)

    def wait(self) -> ExitStatus:
        returncode = self._proc.wait()
        self._status = PTYStatus.EXITED
        self._exit = ExitStatus.from_returncode(returncode)
        logger.info("PTY child %d exited: %s", self._proc.pid, self._exit)
        return self._exit

    def terminate(self) -> None:
        if self._status is not PTYStatus.RUNNING:
            return
        self._status = PTYStatus.TERMINATING
        try:
            os.killpg(self._proc.pid, signal.SIGHUP)
            logger.info("Sent SIGHUP to process group %d", self._proc.pid)
        except ProcessLookupError:
            logger.debug("Process group already gone: %d", self._proc.pid)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for closer in (self._reader.close, self._writer.close):
            try:
                closer()
            except OSError:
                pass
        try:
            os.close(self._master_fd)
        except OSError:
            pass

"""In-memory PTY session for tests and scripted runs."""

from __future__ import annotations

import queue
import threading

from keytrail.pty.session import ExitStatus, PTYSession, PTYSize


class LoopbackReader:
    """Hands out scripted chunks; blocks when none are queued."""

    def __init__(self) -> None:
        self._chunks: queue.Queue[bytes] = queue.Queue()
        self.reads = 0

    def push(self, data: bytes) -> None:
        self._chunks.put(data)

    def read(self, size: int) -> bytes:
        data = self._chunks.get()
        self.reads += 1
        if len(data) > size:
            # Requeueing the tail would reorder it behind later chunks.
            raise ValueError(f"scripted chunk of {len(data)} bytes exceeds read size {size}")
        return data


class LoopbackWriter:
    """Collects everything written by the input pump.

    Set ``fail_write`` to make every write raise it, the way a native master
    reports EIO once the child is gone. ``failed`` is set on the first such
    write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending = bytearray()
        self._flushed = bytearray()
        self._flush_event = threading.Event()
        self.fail_write: Exception | None = None
        self.failed = threading.Event()

    def write(self, data: bytes) -> int:
        if self.fail_write is not None:
            self.failed.set()
            raise self.fail_write
        with self._lock:
            self._pending += data
        return len(data)

    def flush(self) -> None:
        with self._lock:
            self._flushed += self._pending
            self._pending.clear()
        self._flush_event.set()

    @property
    def data(self) -> bytes:
        """Bytes that have been flushed so far."""
        with self._lock:
            return bytes(self._flushed)

    def wait_for(self, data: bytes, timeout: float = 2.0) -> bool:
        """Block until the flushed bytes end with ``data``."""
        while True:
            if self.data.endswith(data):
                return True
            if not self._flush_event.wait(timeout):
                return False
            self._flush_event.clear()


class LoopbackPTYSession(PTYSession):
    """A session with no OS process behind it.

    Output is whatever the test pushes with ``feed_output()``; input written
    by the bridge is collected on ``writer``. ``exit()`` releases ``wait()``.
    """

    def __init__(self, size: PTYSize | None = None) -> None:
        self._size = (size or PTYSize(rows=24, cols=80)).clamped()
        self._reader = LoopbackReader()
        self._writer = LoopbackWriter()
        self._exit: ExitStatus | None = None
        self._exited = threading.Event()
        self.resizes: list[PTYSize] = []
        self.terminated = False
        self.fail_resize: Exception | None = None

    @property
    def reader(self) -> LoopbackReader:
        return self._reader

    @property
    def writer(self) -> LoopbackWriter:
        return self._writer

    @property
    def size(self) -> PTYSize:
        return self._size

    def feed_output(self, data: bytes) -> None:
        self._reader.push(data)

    def resize(self, size: PTYSize) -> None:
        if self.fail_resize is not None:
            raise self.fail_resize
        self._size = size.clamped()
        self.resizes.append(self._size)

    def exit(self, code: int = 0) -> None:
        self._exit = ExitStatus(code=code)
        self._exited.set()

    def wait(self) -> ExitStatus:
        self._exited.wait()
        assert self._exit is not None
        return self._exit

    def terminate(self) -> None:
        self.terminated = True
        if self._exited.is_set():
            return  # already gone; keeps its own status
        self._exit = ExitStatus(signal=1)
        self._exited.set()

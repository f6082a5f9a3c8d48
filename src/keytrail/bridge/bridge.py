"""Bridge: owns the shared state and the worker threads of one session."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from keytrail.bridge.pumps import InputPump, InputSource, OutputPump
from keytrail.bridge.redraw import DirtySignal, FrameRenderer, RedrawScheduler
from keytrail.bridge.resize import ResizeCoordinator
from keytrail.errors import KeytrailError, WorkerError
from keytrail.keys.event import KeyEvent
from keytrail.keys.history import SharedKeyHistory
from keytrail.pty.session import ExitStatus, PTYSession
from keytrail.term.state import TerminalState

logger = logging.getLogger(__name__)


class Bridge:
    """Connects a pty session, the real terminal and a renderer.

    Runs three daemon threads (input pump, output pump, redraw scheduler)
    while the main thread blocks in ``wait()`` on the child. The first
    exception raised by any worker is recorded, the child is terminated so
    ``wait()`` returns, and ``wait()`` re-raises it (wrapped in
    ``WorkerError`` unless it already is a ``KeytrailError``).

    A worker error is held for ``exit_grace`` seconds first. If the child's
    exit is reported meanwhile, the error is a consequence of that exit
    (EIO on a hung-up pty) and is only logged.

    Every bridge owns its own terminal state, history and dirty signal.
    """

    def __init__(
        self,
        session: PTYSession,
        source: InputSource,
        renderer: FrameRenderer,
        reserved_rows: int = 1,
        margin: int = 2,
        clear_chord: KeyEvent | None = None,
        chunk_size: int = 4096,
        idle_backoff: float = 0.01,
        exit_grace: float = 0.1,
    ) -> None:
        self.session = session
        self.exit_grace = exit_grace
        size = session.size
        self.terminal = TerminalState(size.rows, size.cols)
        self.history = SharedKeyHistory(max(0, size.cols - margin))
        self.signal = DirtySignal()
        self.resizer = ResizeCoordinator(
            session,
            self.terminal,
            self.history,
            signal=self.signal,
            reserved_rows=reserved_rows,
            margin=margin,
        )
        self.scheduler = RedrawScheduler(self.signal, self.terminal, self.history, renderer)
        self.input_pump = InputPump(
            source,
            session.writer,
            self.history,
            self.terminal,
            self.resizer,
            self.signal,
            clear_chord=clear_chord,
        )
        self.output_pump = OutputPump(
            session.reader,
            self.terminal,
            self.signal,
            chunk_size=chunk_size,
            idle_backoff=idle_backoff,
        )
        self._failure: BaseException | None = None
        self._failed_worker = ""
        self._failure_lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self._stopping = threading.Event()

    @property
    def failure(self) -> BaseException | None:
        with self._failure_lock:
            return self._failure

    def _fail(self, name: str, exc: BaseException) -> None:
        if self._stopping.wait(self.exit_grace):
            logger.debug("%s ended during shutdown: %s", name, exc)
            return
        with self._failure_lock:
            first = self._failure is None
            if first:
                self._failure = exc
                self._failed_worker = name
        if not first:
            logger.debug("%s also failed: %s", name, exc)
            return
        logger.error("%s failed, ending session: %s", name, exc, exc_info=exc)
        self.signal.close()
        self.session.terminate()

    def _guard(self, name: str, target: Callable[[], None]) -> Callable[[], None]:
        def run() -> None:
            try:
                target()
            except Exception as e:
                self._fail(name, e)

        return run

    def start(self) -> None:
        workers = [
            ("redraw", self.scheduler.run),
            ("output-pump", self.output_pump.run),
            ("input-pump", self.input_pump.run),
        ]
        for name, target in workers:
            thread = threading.Thread(
                target=self._guard(name, target), name=f"keytrail-{name}", daemon=True
            )
            thread.start()
            self._threads.append(thread)
        # First frame, before any output arrives.
        self.signal.notify()
        logger.debug("Bridge started %d threads", len(self._threads))

    def wait(self) -> ExitStatus:
        """Block until the child exits; re-raise a worker failure if any."""
        status = self.session.wait()
        self._stopping.set()
        failure = self.failure
        if failure is None:
            return status
        if isinstance(failure, KeytrailError):
            raise failure
        raise WorkerError(self._failed_worker, failure) from failure

    def stop(self, timeout: float = 1.0) -> None:
        """Stop drawing. The pumps are left to die with the process."""
        self._stopping.set()
        self.signal.close()
        for thread in self._threads:
            if thread.name == "keytrail-redraw":
                thread.join(timeout)

    def run(self) -> ExitStatus:
        self.start()
        try:
            return self.wait()
        finally:
            self.stop()

"""
Run Driver

Lifecycle machinery shared by network tests and load generations.

    RunExecution    one run's state machine; ``tick()`` is its only entry point
    RunDriver       background thread that ticks one execution, throttled by
                    ``Event.wait(tick_interval)`` so a stop wakes it at once
    RunSupervisor   owns the active executions of one kind and their drivers

Status transitions happen under the execution's lock. A stop is a flag read
by the run's own loop on its next tick; requesting one never blocks. The
terminal status is chosen under the stop lock, so a stop is either accepted
and honoured or refused because the run is already closing.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from netharness.application.ports.outbound_ports import HistoryEntry, IRunHistoryRepository
from netharness.domain.models import RunStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Execution
# =============================================================================

class RunExecution(ABC):
    """A single run advanced one tick at a time."""

    def __init__(self, record: HistoryEntry, history: IRunHistoryRepository):
        self.record = record
        self.history = history
        self.lock = threading.RLock()
        self.done = threading.Event()
        self._stop_lock = threading.Lock()
        self._stop = threading.Event()
        self._closing = False
        self._on_finished: List[Callable[["RunExecution"], None]] = []

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def finished(self) -> bool:
        return self.done.is_set()

    def add_finish_callback(self, callback: Callable[["RunExecution"], None]) -> None:
        self._on_finished.append(callback)

    def request_stop(self) -> bool:
        """Flag the run for stopping. False if it already ended or a stop is pending."""
        with self._stop_lock:
            if self._closing or self.finished or self._stop.is_set():
                return False
            self._stop.set()
            self.record.stop_requested = True
        logger.info(f"Stop requested for {self.record.kind.value} {self.id}")
        return True

    def tick(self) -> bool:
        """Advance one tick. Returns False once the run is terminal."""
        with self.lock:
            if self.finished:
                return False
            if self._stop.is_set():
                self._finish(RunStatus.STOPPED)
                return False
            if not self.ready():
                return True
            if self.record.status == RunStatus.QUEUED:
                self.record.status = RunStatus.RUNNING
                self.record.started_at = datetime.now()
                logger.info(f"{self.record.kind.value} {self.id} running")

            try:
                completed = self.advance()
            except Exception as e:
                logger.exception(f"{self.record.kind.value} {self.id} failed")
                self._finish(RunStatus.FAILED, reason=f"{type(e).__name__}: {e}")
                return False

            if completed:
                self._finish(RunStatus.COMPLETED)
                return False
            return True

    def snapshot(self) -> HistoryEntry:
        with self.lock:
            self.summarize()
            return self.record.snapshot()

    def ready(self) -> bool:
        """Whether the run may start ticking; scheduled runs wait here."""
        return self.seconds_until_ready() <= 0

    def seconds_until_ready(self) -> float:
        return 0.0

    @abstractmethod
    def advance(self) -> bool:
        """Do one tick of work. Returns True when the run completed naturally."""

    def summarize(self) -> None:
        """Refresh derived results before the record is copied out."""

    def release(self) -> None:
        """Discard run-private resources once terminal."""

    def _close(self, status: RunStatus) -> RunStatus:
        """Refuse further stops and settle the terminal status."""
        with self._stop_lock:
            self._closing = True
            if status == RunStatus.COMPLETED and self._stop.is_set():
                return RunStatus.STOPPED
        return status

    def _finish(self, status: RunStatus, reason: Optional[str] = None) -> None:
        status = self._close(status)
        self.summarize()
        self.release()
        self.record.status = status
        self.record.failure_reason = reason
        self.mark_ended(datetime.now())
        self.history.append(self.record.snapshot())
        self.done.set()
        logger.info(f"{self.record.kind.value} {self.id} {status.value}" + (f": {reason}" if reason else ""))
        for callback in self._on_finished:
            callback(self)

    @abstractmethod
    def mark_ended(self, when: datetime) -> None:
        pass


# =============================================================================
# Driver
# =============================================================================

class RunDriver:
    """Background thread that ticks one execution until it is terminal."""

    # Upper bound on one wait while a scheduled run is not yet ready
    READY_POLL_SECONDS = 1.0

    def __init__(self, execution: RunExecution, tick_interval: float = 1.0):
        self.execution = execution
        self.tick_interval = tick_interval
        self._wake = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            name=f"run-{execution.id}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def wake(self) -> None:
        self._wake.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def _loop(self) -> None:
        while self.execution.tick():
            pending = self.execution.seconds_until_ready()
            if pending > 0:
                self._wake.wait(min(pending, self.READY_POLL_SECONDS))
            elif self.tick_interval > 0:
                self._wake.wait(self.tick_interval)


# =============================================================================
# Supervisor
# =============================================================================

class RunSupervisor:
    """Tracks active executions of one kind; terminal runs live in history."""

    def __init__(self, history: IRunHistoryRepository, tick_interval: float = 1.0, auto_drive: bool = True):
        self.logger = logging.getLogger(self.__class__.__module__)
        self.history = history
        self.tick_interval = tick_interval
        self.auto_drive = auto_drive
        self._lock = threading.Lock()
        self._active: Dict[str, RunExecution] = {}
        self._drivers: Dict[str, RunDriver] = {}

    def _launch(self, execution: RunExecution) -> None:
        execution.add_finish_callback(self._retire)
        with self._lock:
            self._active[execution.id] = execution
            if self.auto_drive:
                driver = RunDriver(execution, self.tick_interval)
                self._drivers[execution.id] = driver
        if self.auto_drive:
            driver.start()

    def _retire(self, execution: RunExecution) -> None:
        with self._lock:
            self._active.pop(execution.id, None)
            self._drivers.pop(execution.id, None)

    def _execution(self, run_id: str) -> Optional[RunExecution]:
        with self._lock:
            return self._active.get(run_id)

    def _active_executions(self) -> List[RunExecution]:
        with self._lock:
            return list(self._active.values())

    # -------------------------------------------------------------------------
    # Shared operations
    # -------------------------------------------------------------------------

    def _get(self, run_id: str) -> Optional[HistoryEntry]:
        execution = self._execution(run_id)
        if execution is not None:
            return execution.snapshot()
        return self.history.get(run_id)

    def _stop(self, run_id: str) -> bool:
        execution = self._execution(run_id)
        if execution is None or not execution.request_stop():
            return False
        with self._lock:
            driver = self._drivers.get(run_id)
        if driver is not None:
            driver.wake()
        return True

    def step(self, run_id: str, ticks: int = 1) -> Optional[HistoryEntry]:
        """Advance a run by hand. Returns its state afterwards, or None if unknown."""
        execution = self._execution(run_id)
        if execution is None:
            return self.history.get(run_id)
        for _ in range(ticks):
            if not execution.tick():
                break
        return self._get(run_id)

    def run_to_completion(self, run_id: str, max_ticks: Optional[int] = None) -> Optional[HistoryEntry]:
        """Tick a run until it is terminal (or ``max_ticks`` ticks have passed)."""
        execution = self._execution(run_id)
        if execution is None:
            return self.history.get(run_id)
        count = 0
        while execution.tick():
            count += 1
            if max_ticks is not None and count >= max_ticks:
                break
        return self._get(run_id)

    def wait(self, run_id: str, timeout: Optional[float] = None) -> Optional[HistoryEntry]:
        """Block until a driven run is terminal or ``timeout`` elapses."""
        execution = self._execution(run_id)
        if execution is not None:
            execution.done.wait(timeout)
        return self._get(run_id)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop every active run and wait for its driver to exit."""
        executions = self._active_executions()
        for execution in executions:
            self._stop(execution.id)
        with self._lock:
            drivers = list(self._drivers.values())
        for driver in drivers:
            driver.join(timeout)
        if not self.auto_drive:
            for execution in executions:
                execution.tick()
        self.logger.info(f"Shut down {len(executions)} active run(s)")

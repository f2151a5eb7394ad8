"""Task runner - executes queued tasks inside bounded execution windows.

The runner plays the host role for the correlation updater: it opens an
execution window, pulls tasks in priority order (FIFO within a priority),
resolves their handlers by name and runs them until the window or the
memory budget no longer allows starting another task.

Usage (programmatic)::

    from related_spine.scheduling.runner import TaskRunner

    runner = TaskRunner(queue, registry, probe, settings)
    runner.run_queued_tasks()   # one window
    runner.start()              # blocking poll loop, SIGINT/SIGTERM aware

Usage (CLI)::

    related-spine worker start --poll-interval 2
"""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from related_spine.core.logging import get_logger
from related_spine.core.protocols import MemoryProbe
from related_spine.core.settings import CorrelationSettings
from related_spine.scheduling.queue import InMemoryTaskQueue, QueuedTask, SqliteTaskQueue
from related_spine.scheduling.registry import HandlerRegistry

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class RunReport:
    """What one :meth:`TaskRunner.run_queued_tasks` call did."""

    executed: int = 0
    failed: int = 0
    stop_reason: str = "queue_empty"
    failures: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "executed": self.executed,
            "failed": self.failed,
            "stop_reason": self.stop_reason,
            "failures": list(self.failures),
        }


@dataclass
class RunnerStats:
    """Aggregate statistics over the runner's lifetime."""

    total_processed: int = 0
    total_completed: int = 0
    total_failed: int = 0
    cycles: int = 0
    last_cycle_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "total_completed": self.total_completed,
            "total_failed": self.total_failed,
            "cycles": self.cycles,
            "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
        }


class TaskRunner:
    """Runs ready tasks while time and memory allow.

    Handler exceptions are logged as ``task_failed`` and counted; the task
    is dropped and the runner moves on to the next one. Retrying failed
    tasks is left to whoever queued them.
    """

    def __init__(
        self,
        queue: InMemoryTaskQueue | SqliteTaskQueue,
        registry: HandlerRegistry,
        memory_probe: MemoryProbe,
        settings: CorrelationSettings | None = None,
        *,
        poll_interval: float | None = None,
    ):
        self.queue = queue
        self.registry = registry
        self.memory_probe = memory_probe
        self.settings = settings or CorrelationSettings()
        self._poll_interval = poll_interval if poll_interval is not None else self.settings.poll_interval
        self._shutdown = threading.Event()
        self._lock = threading.Lock()
        self._stats = RunnerStats()

    # ------------------------------------------------------------------ #
    # One window
    # ------------------------------------------------------------------ #

    def _stop_reason(self) -> str | None:
        if self._shutdown.is_set():
            return "shutdown"
        if self.queue.remaining_time_in_window() < self.settings.min_seconds_to_start_task:
            return "time_exhausted"
        if self.memory_probe.free_percent_of_limit() < self.settings.min_free_memory_percent:
            return "memory_low"
        return None

    def run_queued_tasks(self) -> RunReport:
        """Open a window and run tasks until it is spent or the queue is empty."""
        report = RunReport()
        self.queue.window.open()
        try:
            while True:
                reason = self._stop_reason()
                if reason is not None:
                    report.stop_reason = reason
                    break
                task = self.queue.claim_next()
                if task is None:
                    report.stop_reason = "queue_empty"
                    break
                if not self._execute(task):
                    report.failed += 1
                    report.failures.append(task.key)
                report.executed += 1
        finally:
            self.queue.window.close()
            with self._lock:
                self._stats.cycles += 1
                self._stats.last_cycle_at = _utcnow()

        if report.executed:
            logger.info("run_cycle_finished", **report.to_dict())
        return report

    def _execute(self, task: QueuedTask) -> bool:
        with self._lock:
            self._stats.total_processed += 1
        try:
            handler = self.registry.get(task.handler)
            handler(*task.args)
        except Exception as exc:
            with self._lock:
                self._stats.total_failed += 1
            logger.error(
                "task_failed",
                task_key=task.key,
                handler=task.handler,
                args=list(task.args),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return False
        finally:
            self.queue.complete(task)

        with self._lock:
            self._stats.total_completed += 1
        return True

    # ------------------------------------------------------------------ #
    # Poll loop
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Run windows until :meth:`stop` (blocking).

        Installs SIGINT / SIGTERM handlers when called from the main thread.
        """
        logger.info("runner_starting", poll_interval=self._poll_interval)
        try:
            signal.signal(signal.SIGINT, self._handle_signal)
            signal.signal(signal.SIGTERM, self._handle_signal)
        except (ValueError, OSError):
            pass  # not in main thread

        while not self._shutdown.is_set():
            try:
                self.run_queued_tasks()
            except Exception:
                logger.exception("runner_cycle_error")
            self._shutdown.wait(self._poll_interval)
        logger.info("runner_stopped", **self.get_stats().to_dict())

    def start_background(self) -> threading.Thread:
        """Start the poll loop in a daemon thread. Returns the thread."""
        thread = threading.Thread(target=self.start, name="related-spine-runner", daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        """Request graceful shutdown."""
        self._shutdown.set()

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    def get_stats(self) -> RunnerStats:
        with self._lock:
            return RunnerStats(**vars(self._stats))

    def _handle_signal(self, signum: int, frame: Any) -> None:  # noqa: ARG002
        logger.info("runner_signal", signal=signum)
        self.stop()


__all__ = ["RunReport", "RunnerStats", "TaskRunner"]

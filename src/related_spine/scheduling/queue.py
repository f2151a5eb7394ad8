"""
Task queue adapters.

The correlation updater only needs two things from its host queue: a
*unique* enqueue (at most one queued-or-running task per key) and the time
left in the current execution window. This module ships two queues that
provide both, plus the bookkeeping the :class:`TaskRunner` uses to execute
them.

Architecture:
    ::

        Priority (IntEnum)        HIGH=1 … BACKGROUND=4, clamped
        ExecutionWindow           seconds budget for one runner cycle
        QueuedTask                key, handler, args, priority, description

        _TaskQueueBase
        ├── InMemoryTaskQueue     dict + lock, for tests and embedding
        └── SqliteTaskQueue       rec_task_queue, UNIQUE(task_key), JSON args

Uniqueness rules for ``enqueue_unique(key, ...)``:
    - key already queued   → rejected; the queued task's priority is raised
                             when the new request is more urgent
    - key running          → rejected, unless the caller *is* that running
                             task re-queueing its own continuation
    - otherwise            → queued

Examples:
    >>> queue = InMemoryTaskQueue(window_seconds=30)
    >>> queue.enqueue_unique("related:update:7", "correlations.update_slice", [7, 0], Priority.BACKGROUND)
    True
    >>> queue.enqueue_unique("related:update:7", "correlations.update_slice", [7, 0], Priority.HIGH)
    False
    >>> queue.get("related:update:7").priority
    <Priority.HIGH: 1>

Tags:
    task-queue, priority, uniqueness, execution-window
"""

from __future__ import annotations

import itertools
import json
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

from related_spine.core.dialect import Dialect
from related_spine.core.errors import QueueError
from related_spine.core.logging import get_logger
from related_spine.core.protocols import Connection
from related_spine.core.repository import BaseRepository
from related_spine.store.schema import TABLES

logger = get_logger(__name__)

_TABLE = TABLES["task_queue"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Priority(IntEnum):
    """Task priority; lower numbers run first."""

    HIGH = 1
    MEDIUM = 2
    LOW = 3
    BACKGROUND = 4

    @classmethod
    def clamp(cls, value: int) -> Priority:
        """Coerce any integer into the valid range."""
        return cls(min(max(int(value), cls.HIGH), cls.BACKGROUND))


@dataclass
class QueuedTask:
    """One task waiting in (or claimed from) a queue."""

    key: str
    handler: str
    args: tuple[Any, ...]
    priority: Priority
    description: str = ""
    task_id: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "key": self.key,
            "handler": self.handler,
            "args": list(self.args),
            "priority": self.priority.name,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }


class ExecutionWindow:
    """Time budget of one runner cycle.

    Before :meth:`open` is called the full budget is reported as remaining.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        if seconds <= 0:
            raise QueueError(f"Execution window must be positive, got {seconds}")
        self.seconds = seconds
        self._clock = clock
        self._opened_at: float | None = None

    def open(self) -> None:
        self._opened_at = self._clock()

    def close(self) -> None:
        self._opened_at = None

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None

    def elapsed(self) -> float:
        if self._opened_at is None:
            return 0.0
        return self._clock() - self._opened_at

    def remaining(self) -> float:
        return max(0.0, self.seconds - self.elapsed())


def _check_args(args: Sequence[Any]) -> tuple[Any, ...]:
    try:
        json.dumps(list(args))
    except (TypeError, ValueError) as exc:
        raise QueueError(f"Task arguments must be JSON serializable: {args!r}", cause=exc) from exc
    return tuple(args)


class _TaskQueueBase:
    """Window handling and running-task bookkeeping shared by both queues."""

    def __init__(self, window: ExecutionWindow):
        self.window = window
        self._running: set[str] = set()
        self._current = threading.local()

    # -- TaskQueue protocol (time half) ------------------------------------

    def remaining_time_in_window(self) -> float:
        return self.window.remaining()

    # -- Running-task bookkeeping ------------------------------------------

    def _current_key(self) -> str | None:
        return getattr(self._current, "key", None)

    def _is_own_continuation(self, key: str) -> bool:
        return key in self._running and self._current_key() == key

    def _mark_running(self, task: QueuedTask) -> None:
        self._running.add(task.key)
        self._current.key = task.key

    def _mark_finished(self, task: QueuedTask) -> None:
        self._running.discard(task.key)
        self._current.key = None

    def is_running(self, key: str) -> bool:
        return key in self._running


class InMemoryTaskQueue(_TaskQueueBase):
    """Process-local task queue."""

    def __init__(
        self,
        window_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        window: ExecutionWindow | None = None,
    ):
        super().__init__(window or ExecutionWindow(window_seconds, clock))
        self._tasks: dict[str, QueuedTask] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def enqueue_unique(
        self,
        key: str,
        handler: str,
        args: Sequence[Any],
        priority: int,
        description: str = "",
    ) -> bool:
        """Queue a task unless the key is already live."""
        prio = Priority.clamp(priority)
        task_args = _check_args(args)
        with self._lock:
            existing = self._tasks.get(key)
            if existing is not None:
                if prio < existing.priority:
                    existing.priority = prio
                    logger.debug("task_priority_raised", key=key, priority=prio.name)
                return False
            if key in self._running and not self._is_own_continuation(key):
                return False
            self._tasks[key] = QueuedTask(
                key=key,
                handler=handler,
                args=task_args,
                priority=prio,
                description=description,
                task_id=next(self._ids),
            )
        return True

    def claim_next(self) -> QueuedTask | None:
        """Remove the most urgent task (FIFO within a priority) and mark it running."""
        with self._lock:
            if not self._tasks:
                return None
            task = min(self._tasks.values(), key=lambda t: (t.priority, t.task_id))
            del self._tasks[task.key]
            self._mark_running(task)
        return task

    def complete(self, task: QueuedTask) -> None:
        with self._lock:
            self._mark_finished(task)

    def get(self, key: str) -> QueuedTask | None:
        return self._tasks.get(key)

    def pending(self) -> list[QueuedTask]:
        """Queued tasks in execution order."""
        with self._lock:
            return sorted(self._tasks.values(), key=lambda t: (t.priority, t.task_id))

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)


class SqliteTaskQueue(BaseRepository, _TaskQueueBase):
    """Task queue persisted in ``rec_task_queue``.

    A claimed task keeps its row with ``status = 'running'`` until it
    completes, so ``UNIQUE(task_key)`` covers running tasks too. A running
    task re-queueing itself turns its own row back into a queued one.
    """

    def __init__(
        self,
        conn: Connection,
        window_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        window: ExecutionWindow | None = None,
        dialect: Dialect | None = None,
    ):
        BaseRepository.__init__(self, conn, dialect)
        _TaskQueueBase.__init__(self, window or ExecutionWindow(window_seconds, clock))
        self._lock = threading.Lock()

    def _row_to_task(self, row: dict[str, Any]) -> QueuedTask:
        return QueuedTask(
            key=row["task_key"],
            handler=row["handler"],
            args=tuple(json.loads(row["params"])),
            priority=Priority.clamp(row["priority"]),
            description=row["description"] or "",
            task_id=row["id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def enqueue_unique(
        self,
        key: str,
        handler: str,
        args: Sequence[Any],
        priority: int,
        description: str = "",
    ) -> bool:
        """Queue a task unless the key is already live."""
        prio = Priority.clamp(priority)
        params = json.dumps(list(_check_args(args)))
        ph = self.ph(1)
        with self._lock:
            row = self.query_one(
                f"SELECT id, status, priority FROM {_TABLE} WHERE task_key = {ph}", (key,)
            )
            if row is not None and row["status"] == "queued":
                if prio < row["priority"]:
                    self.execute(
                        f"UPDATE {_TABLE} SET priority = {ph} WHERE id = {ph}",
                        (int(prio), row["id"]),
                    )
                    self.commit()
                    logger.debug("task_priority_raised", key=key, priority=prio.name)
                return False

            if row is not None:
                if not self._is_own_continuation(key):
                    return False
                self.execute(
                    f"UPDATE {_TABLE} SET handler = {ph}, params = {ph}, priority = {ph}, "
                    f"description = {ph}, status = 'queued', created_at = {ph} WHERE id = {ph}",
                    (handler, params, int(prio), description, _utcnow().isoformat(), row["id"]),
                )
            else:
                self.execute(
                    f"INSERT INTO {_TABLE} (task_key, handler, params, priority, description, status, created_at) "
                    f"VALUES ({self.ph(5)}, 'queued', {ph})",
                    (key, handler, params, int(prio), description, _utcnow().isoformat()),
                )
            self.commit()
        return True

    def claim_next(self) -> QueuedTask | None:
        """Mark the most urgent queued task running and return it."""
        with self._lock:
            row = self.query_one(
                f"SELECT * FROM {_TABLE} WHERE status = 'queued' ORDER BY priority ASC, id ASC LIMIT 1"
            )
            if row is None:
                return None
            self.execute(
                f"UPDATE {_TABLE} SET status = 'running' WHERE id = {self.ph(1)}", (row["id"],)
            )
            self.commit()
            task = self._row_to_task(row)
            self._mark_running(task)
        return task

    def complete(self, task: QueuedTask) -> None:
        """Delete the task's row unless it was re-queued as a continuation."""
        with self._lock:
            self.execute(
                f"DELETE FROM {_TABLE} WHERE id = {self.ph(1)} AND status = 'running'",
                (task.task_id,),
            )
            self.commit()
            self._mark_finished(task)

    def recover_running(self) -> int:
        """Return tasks left 'running' by a dead worker to the queue."""
        with self._lock:
            cursor = self.execute(f"UPDATE {_TABLE} SET status = 'queued' WHERE status = 'running'")
            self.commit()
        recovered = max(getattr(cursor, "rowcount", 0) or 0, 0)
        if recovered:
            logger.info("tasks_recovered", count=recovered)
        return recovered

    def get(self, key: str) -> QueuedTask | None:
        row = self.query_one(f"SELECT * FROM {_TABLE} WHERE task_key = {self.ph(1)}", (key,))
        return self._row_to_task(row) if row is not None else None

    def pending(self) -> list[QueuedTask]:
        rows = self.query(
            f"SELECT * FROM {_TABLE} WHERE status = 'queued' ORDER BY priority ASC, id ASC"
        )
        return [self._row_to_task(r) for r in rows]

    def clear(self) -> None:
        with self._lock:
            self.execute(f"DELETE FROM {_TABLE} WHERE status = 'queued'")
            self.commit()

    def __len__(self) -> int:
        return int(
            self.query_scalar(f"SELECT COUNT(*) FROM {_TABLE} WHERE status = 'queued'") or 0
        )


__all__ = [
    "ExecutionWindow",
    "InMemoryTaskQueue",
    "Priority",
    "QueuedTask",
    "SqliteTaskQueue",
]

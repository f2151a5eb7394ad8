"""
Tests for related_spine.scheduling.queue.

Covers:
- Priority clamping
- ExecutionWindow budget accounting
- InMemoryTaskQueue: uniqueness, priority raising, ordering, continuations
- SqliteTaskQueue: the same contract persisted, running rows, recovery
"""

import threading

import pytest

from related_spine.core.errors import QueueError
from related_spine.scheduling.queue import (
    ExecutionWindow,
    InMemoryTaskQueue,
    Priority,
    QueuedTask,
    SqliteTaskQueue,
)


class TestPriority:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(-5, Priority.HIGH), (1, Priority.HIGH), (3, Priority.LOW), (4, Priority.BACKGROUND), (99, Priority.BACKGROUND)],
    )
    def test_clamp(self, value, expected):
        assert Priority.clamp(value) is expected

    def test_lower_is_more_urgent(self):
        assert Priority.HIGH < Priority.MEDIUM < Priority.LOW < Priority.BACKGROUND


class TestExecutionWindow:
    """Test the per-cycle time budget."""

    def test_full_budget_before_open(self, clock_factory):
        window = ExecutionWindow(30, clock=clock_factory(step=5))
        assert not window.is_open
        assert window.remaining() == 30
        assert window.elapsed() == 0.0

    def test_counts_down_once_open(self, clock_factory):
        clock = clock_factory(start=100.0, step=0.0)
        window = ExecutionWindow(30, clock=clock)
        window.open()
        clock.now = 112.0
        assert window.remaining() == 18.0
        clock.now = 200.0
        assert window.remaining() == 0.0

    def test_close_resets(self, clock_factory):
        window = ExecutionWindow(10, clock=clock_factory(step=4))
        window.open()
        window.close()
        assert window.remaining() == 10

    def test_must_be_positive(self):
        with pytest.raises(QueueError):
            ExecutionWindow(0)


@pytest.fixture
def sqlite_queue(conn):
    return SqliteTaskQueue(conn, 30)


@pytest.fixture(params=["memory", "sqlite"])
def queue(request, conn):
    if request.param == "memory":
        return InMemoryTaskQueue(30)
    return SqliteTaskQueue(conn, 30)


class TestUniqueEnqueue:
    """Contract shared by both queues."""

    def test_accepts_new_key(self, queue):
        assert queue.enqueue_unique("k1", "h", [1, 0], Priority.LOW, "first") is True
        task = queue.get("k1")
        assert task.handler == "h"
        assert task.args == (1, 0)
        assert task.priority is Priority.LOW
        assert task.description == "first"
        assert len(queue) == 1

    def test_rejects_queued_key(self, queue):
        queue.enqueue_unique("k1", "h", [1, 0], Priority.LOW)
        assert queue.enqueue_unique("k1", "h", [1, 5], Priority.LOW) is False
        assert queue.get("k1").args == (1, 0)

    def test_raises_priority_of_queued_key(self, queue):
        queue.enqueue_unique("k1", "h", [], Priority.BACKGROUND)
        queue.enqueue_unique("k1", "h", [], Priority.MEDIUM)
        queue.enqueue_unique("k1", "h", [], Priority.LOW)
        assert queue.get("k1").priority is Priority.MEDIUM

    def test_clamps_priority(self, queue):
        queue.enqueue_unique("k1", "h", [], 17)
        assert queue.get("k1").priority is Priority.BACKGROUND

    def test_rejects_unserializable_args(self, queue):
        with pytest.raises(QueueError, match="JSON"):
            queue.enqueue_unique("k1", "h", [object()], Priority.LOW)

    def test_claims_by_priority_then_fifo(self, queue):
        queue.enqueue_unique("a", "h", [], Priority.BACKGROUND)
        queue.enqueue_unique("b", "h", [], Priority.LOW)
        queue.enqueue_unique("c", "h", [], Priority.HIGH)
        queue.enqueue_unique("d", "h", [], Priority.LOW)

        assert [t.key for t in queue.pending()] == ["c", "b", "d", "a"]
        order = []
        while (task := queue.claim_next()) is not None:
            order.append(task.key)
            queue.complete(task)
        assert order == ["c", "b", "d", "a"]

    def test_claim_empty(self, queue):
        assert queue.claim_next() is None

    def test_running_key_rejected_from_other_thread(self, queue):
        """While a task runs, nobody else may queue its key."""
        queue.enqueue_unique("k1", "h", [1, 0], Priority.LOW)
        task = queue.claim_next()
        assert queue.is_running("k1")

        results = []
        worker = threading.Thread(
            target=lambda: results.append(queue.enqueue_unique("k1", "h", [1, 0], Priority.HIGH))
        )
        worker.start()
        worker.join()

        assert results == [False]
        queue.complete(task)
        assert not queue.is_running("k1")
        assert queue.enqueue_unique("k1", "h", [1, 0], Priority.LOW) is True

    def test_running_task_can_queue_its_continuation(self, queue):
        """The executing thread re-queues its own key; completion keeps it."""
        queue.enqueue_unique("k1", "h", [1, 0], Priority.BACKGROUND)
        task = queue.claim_next()

        assert queue.enqueue_unique("k1", "h", [1, 7], Priority.LOW) is True
        queue.complete(task)

        follow_up = queue.get("k1")
        assert follow_up.args == (1, 7)
        assert follow_up.priority is Priority.LOW
        assert len(queue) == 1

    def test_continuation_is_unique_too(self, queue):
        """After re-queueing, a second continuation is a queued duplicate."""
        queue.enqueue_unique("k1", "h", [1, 0], Priority.BACKGROUND)
        queue.claim_next()
        assert queue.enqueue_unique("k1", "h", [1, 7], Priority.LOW) is True
        assert queue.enqueue_unique("k1", "h", [1, 9], Priority.LOW) is False

    def test_clear(self, queue):
        queue.enqueue_unique("a", "h", [], Priority.LOW)
        queue.enqueue_unique("b", "h", [], Priority.LOW)
        queue.clear()
        assert len(queue) == 0

    def test_remaining_time_follows_window(self, queue):
        assert queue.remaining_time_in_window() == 30


class TestSqliteTaskQueue:
    """Behaviour specific to the persisted queue."""

    def test_persists_across_instances(self, conn):
        SqliteTaskQueue(conn).enqueue_unique("k1", "h", [3, 4], Priority.MEDIUM, "desc")
        task = SqliteTaskQueue(conn).get("k1")
        assert task.args == (3, 4)
        assert task.priority is Priority.MEDIUM
        assert task.task_id > 0

    def test_claimed_row_stays_until_complete(self, sqlite_queue):
        sqlite_queue.enqueue_unique("k1", "h", [], Priority.LOW)
        task = sqlite_queue.claim_next()

        assert len(sqlite_queue) == 0
        assert sqlite_queue.get("k1") is not None
        sqlite_queue.complete(task)
        assert sqlite_queue.get("k1") is None

    def test_running_row_blocks_other_queue_instances(self, conn):
        """A second worker process sees the running row and backs off."""
        first = SqliteTaskQueue(conn)
        first.enqueue_unique("k1", "h", [], Priority.LOW)
        first.claim_next()

        assert SqliteTaskQueue(conn).enqueue_unique("k1", "h", [], Priority.HIGH) is False

    def test_recover_running(self, conn):
        dead = SqliteTaskQueue(conn)
        dead.enqueue_unique("k1", "h", [1, 2], Priority.LOW)
        dead.claim_next()

        fresh = SqliteTaskQueue(conn)
        assert fresh.recover_running() == 1
        assert fresh.recover_running() == 0
        assert [t.key for t in fresh.pending()] == ["k1"]

    def test_to_dict(self, sqlite_queue):
        sqlite_queue.enqueue_unique("k1", "h", [1, 0], Priority.LOW, "d")
        data = sqlite_queue.get("k1").to_dict()
        assert data["key"] == "k1"
        assert data["args"] == [1, 0]
        assert data["priority"] == "LOW"
        assert "created_at" in data


class TestQueuedTask:
    def test_defaults(self):
        task = QueuedTask("k", "h", (), Priority.LOW)
        assert task.task_id == 0
        assert task.created_at.tzinfo is not None

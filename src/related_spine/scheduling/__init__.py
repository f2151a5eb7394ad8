"""Update scheduling: task queues, runner, memory probe, updater and rebuild."""

from related_spine.scheduling.memory import ProcessMemoryProbe, StaticMemoryProbe
from related_spine.scheduling.queue import (
    ExecutionWindow,
    InMemoryTaskQueue,
    Priority,
    QueuedTask,
    SqliteTaskQueue,
)
from related_spine.scheduling.rebuild import CorrelationRebuilder
from related_spine.scheduling.registry import (
    HandlerRegistry,
    get_default_registry,
    reset_default_registry,
)
from related_spine.scheduling.runner import RunnerStats, RunReport, TaskRunner
from related_spine.scheduling.updater import (
    UPDATE_HANDLER,
    CorrelationUpdater,
    SliceResult,
    SliceState,
    UpdateJob,
    task_key,
)

__all__ = [
    "UPDATE_HANDLER",
    "CorrelationRebuilder",
    "CorrelationUpdater",
    "ExecutionWindow",
    "HandlerRegistry",
    "InMemoryTaskQueue",
    "Priority",
    "ProcessMemoryProbe",
    "QueuedTask",
    "RunReport",
    "RunnerStats",
    "SliceResult",
    "SliceState",
    "SqliteTaskQueue",
    "StaticMemoryProbe",
    "TaskRunner",
    "UpdateJob",
    "get_default_registry",
    "reset_default_registry",
    "task_key",
]

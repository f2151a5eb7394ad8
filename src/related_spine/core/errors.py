"""
Structured error types for the correlation engine.

Only *unexpected* conditions are raised as errors. The two expected
outcomes of an update slice (the source item disappeared, or the slice ran
out of time or memory) are normal results, not exceptions, and storage
failures from the database driver propagate unmodified to the host task
runner.

Architecture:
    ::

        RelatedSpineError  (category, retryable, context, cause)
        ├── ConfigError            (CONFIG)   unknown type, bad weight, bad setting
        ├── QueueError             (ORCHESTRATION)
        │   └── HandlerNotFoundError
        └── StorageError           (STORAGE)

Examples:
    >>> err = ConfigError("negative weight").with_context(field="Title")
    >>> err.to_dict()["context"]
    {'field': 'Title'}

Tags:
    error-handling, exception-hierarchy, error-context
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors
    DATABASE = "DATABASE"         # Connection, query failures
    STORAGE = "STORAGE"           # Correlation/item storage

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing config, invalid settings

    # Application errors
    ORCHESTRATION = "ORCHESTRATION"  # Task queue, handler resolution
    VALIDATION = "VALIDATION"     # Bad arguments

    # Internal errors
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging.

    Attributes:
        source_item_id: Item whose update job raised the error
        task_key: Unique task-queue key involved
        handler: Registered handler name
        metadata: Additional key-value pairs
    """

    source_item_id: int | None = None
    task_key: str | None = None
    handler: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["source_item_id", "task_key", "handler"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RelatedSpineError(Exception):
    """Base exception for all related-spine errors.

    Every error carries a category, an explicit retry flag, structured
    context and an optional chained cause. Subclasses set
    ``default_category`` and ``default_retryable``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RelatedSpineError:
        """Add context to this error (fluent API).

        Usage:
            raise HandlerNotFoundError("missing").with_context(
                handler="correlations.update_slice",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(RelatedSpineError):
    """Field model, comparator registry or settings misconfiguration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# QUEUE ERRORS
# =============================================================================


class QueueError(RelatedSpineError):
    """Task-queue contract violation (bad arguments, unknown task)."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class HandlerNotFoundError(QueueError):
    """No handler registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"No handler registered for {name!r}")
        self.context.handler = name


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(RelatedSpineError):
    """Storage layer misuse detected before reaching the database."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RelatedSpineError",
    "ConfigError",
    "QueueError",
    "HandlerNotFoundError",
    "StorageError",
]

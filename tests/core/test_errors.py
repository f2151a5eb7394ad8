"""
Tests for related_spine.core.errors.

Covers:
- Category and retry defaults per subclass
- with_context: known fields vs. metadata
- to_dict serialization including cause
- HandlerNotFoundError context
"""

from related_spine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    HandlerNotFoundError,
    QueueError,
    RelatedSpineError,
    StorageError,
)


class TestCategories:
    """Test default categories of the hierarchy."""

    def test_base_is_internal(self):
        err = RelatedSpineError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False

    def test_subclass_categories(self):
        assert ConfigError("x").category == ErrorCategory.CONFIG
        assert QueueError("x").category == ErrorCategory.ORCHESTRATION
        assert StorageError("x").category == ErrorCategory.STORAGE

    def test_overrides(self):
        """Explicit category and retry flag win over the defaults."""
        err = StorageError("locked", category=ErrorCategory.DATABASE, retryable=True)
        assert err.category == ErrorCategory.DATABASE
        assert err.retryable is True


class TestContext:
    """Test structured error context."""

    def test_known_fields_set_directly(self):
        err = QueueError("bad").with_context(task_key="related:update:3", source_item_id=3)
        assert err.context.task_key == "related:update:3"
        assert err.context.source_item_id == 3
        assert err.context.metadata == {}

    def test_unknown_fields_go_to_metadata(self):
        err = ConfigError("negative weight").with_context(field="Title")
        assert err.context.metadata == {"field": "Title"}

    def test_context_to_dict_skips_none(self):
        ctx = ErrorContext(handler="h", metadata={"extra": 1})
        assert ctx.to_dict() == {"handler": "h", "extra": 1}


class TestSerialization:
    """Test to_dict and repr."""

    def test_to_dict_with_cause(self):
        cause = ValueError("inner")
        err = StorageError("outer", cause=cause).with_context(source_item_id=9)
        data = err.to_dict()

        assert data["error_type"] == "StorageError"
        assert data["message"] == "outer"
        assert data["category"] == "STORAGE"
        assert data["retryable"] is False
        assert data["context"] == {"source_item_id": 9}
        assert data["cause"] == "inner"
        assert err.__cause__ is cause

    def test_to_dict_without_context(self):
        assert "context" not in ConfigError("x").to_dict()

    def test_repr(self):
        assert repr(ConfigError("x")) == "ConfigError('x', category=CONFIG)"


class TestSpecificErrors:
    """Test errors with custom constructors."""

    def test_handler_not_found(self):
        err = HandlerNotFoundError("missing.handler")
        assert isinstance(err, QueueError)
        assert err.context.handler == "missing.handler"
        assert "missing.handler" in str(err)


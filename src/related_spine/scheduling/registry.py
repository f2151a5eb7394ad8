"""Handler Registry - injectable name → task handler lookup.

Queued tasks carry a handler *name* (a string that survives being
persisted in ``rec_task_queue``); the :class:`TaskRunner` resolves it to a
callable here at execution time.

ARCHITECTURE
────────────
::

    HandlerRegistry
      ├── .register(name, handler)  ─ store handler
      ├── .get(name)                ─ lookup (HandlerNotFoundError)
      ├── .has(name)                ─ existence check
      ├── .list_handlers()          ─ registered names
      └── .handler(name)            ─ decorator form of register

    get_default_registry()     ─ module-level singleton
    reset_default_registry()   ─ clear for testing

Tags:
    registry, handler-registry, task-queue
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from related_spine.core.errors import HandlerNotFoundError


class HandlerRegistry:
    """Injectable handler registry.

    Example:
        >>> registry = HandlerRegistry()
        >>> @registry.handler("maintenance.vacuum")
        ... def vacuum():
        ...     return "ok"
        >>> registry.get("maintenance.vacuum")()
        'ok'
    """

    def __init__(self):
        self._handlers: dict[str, Callable[..., Any]] = {}
        self._descriptions: dict[str, str | None] = {}

    def register(
        self,
        name: str,
        handler: Callable[..., Any],
        description: str | None = None,
    ) -> None:
        """Register a handler, replacing any previous one with that name."""
        self._handlers[name] = handler
        self._descriptions[name] = description

    def handler(self, name: str, description: str | None = None):
        """Decorator that registers the wrapped function."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name, fn, description)
            return fn

        return decorator

    def get(self, name: str) -> Callable[..., Any]:
        """Get a handler.

        Raises:
            HandlerNotFoundError: If nothing is registered under ``name``.
        """
        try:
            return self._handlers[name]
        except KeyError:
            raise HandlerNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._handlers

    def describe(self, name: str) -> str | None:
        return self._descriptions.get(name)

    def list_handlers(self) -> list[str]:
        return sorted(self._handlers)

    def unregister(self, name: str) -> bool:
        """Remove a handler; returns False when it was not registered."""
        if name in self._handlers:
            del self._handlers[name]
            del self._descriptions[name]
            return True
        return False

    def clear(self) -> None:
        """Clear all handlers (for testing)."""
        self._handlers.clear()
        self._descriptions.clear()


# === GLOBAL DEFAULT REGISTRY ===

_default_registry: HandlerRegistry | None = None


def get_default_registry() -> HandlerRegistry:
    """Get the global default registry, creating it on first access."""
    global _default_registry
    if _default_registry is None:
        _default_registry = HandlerRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Reset the global registry (for testing)."""
    global _default_registry
    _default_registry = None


__all__ = [
    "HandlerRegistry",
    "get_default_registry",
    "reset_default_registry",
]

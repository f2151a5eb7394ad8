"""
Per-field comparators.

A comparator scores one pair of field values. Comparators are looked up
by :class:`ComparisonType` in a registry, so a new field type only needs a
registration, never an edit to a central dispatch.

Each :class:`Comparator` has two stages:

- ``prepare(value)`` parses a raw field value once (tokens for TEXT, a
  number for NUMERIC, dates for DATE and DATE_RANGE). The correlation
  store caches prepared values per item and field.
- ``compare(prepared_a, prepared_b)`` returns a non-negative score.

Built-in scoring:
    TEXT        number of words of A that also occur in B
    NUMERIC     1 - |a-b| / max(|a|,|b|), clamped to [0, 1]
    DATE        max(0, 1 - days_apart / 365)
    DATE_RANGE  overlap / union of the two day ranges, DATE on midpoints
                when they do not overlap

Examples:
    >>> get_comparator(ComparisonType.NUMERIC)(10, 5)
    0.5

Tags:
    comparator, similarity, registry, text, numeric, date
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from related_spine.content.fields import ComparisonType
from related_spine.content.text import tokenize, word_overlap
from related_spine.core.errors import ConfigError

DAYS_PER_YEAR = 365


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class Comparator:
    """A prepare/compare pair for one comparison type."""

    compare: Callable[[Any, Any], float]
    prepare: Callable[[Any], Any] = _identity

    def __call__(self, value_a: Any, value_b: Any) -> float:
        return float(self.compare(self.prepare(value_a), self.prepare(value_b)))


# =============================================================================
# VALUE PARSING
# =============================================================================


def to_number(value: Any) -> float | None:
    """Parse a numeric field value; ``None`` when missing or not a number."""
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def to_date(value: Any) -> date | None:
    """Parse a ``date``, ``datetime`` or ISO string; ``None`` otherwise."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def to_day_range(value: Any) -> tuple[int, int] | None:
    """Parse a date range into ``(first_day, last_day)`` ordinals.

    Accepts ``(begin, end)`` pairs, ``{"begin": ..., "end": ...}`` mappings
    and single dates (zero-length ranges). A missing end means a single day.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        begin, end = value.get("begin"), value.get("end")
    elif isinstance(value, (list, tuple)):
        if not value:
            return None
        begin = value[0]
        end = value[1] if len(value) > 1 else None
    else:
        begin, end = value, None

    first = to_date(begin)
    last = to_date(end) if end is not None else first
    if first is None:
        first = last
    if first is None or last is None:
        return None
    a, b = first.toordinal(), last.toordinal()
    return (a, b) if a <= b else (b, a)


# =============================================================================
# BUILT-IN COMPARATORS
# =============================================================================


def compare_words(words_a: list[str], words_b: list[str]) -> float:
    """Bag-of-words overlap count."""
    if not words_a or not words_b:
        return 0.0
    return float(word_overlap(words_a, words_b))


def compare_numbers(a: float | None, b: float | None) -> float:
    """Normalized closeness of two numbers."""
    if a is None or b is None:
        return 0.0
    scale = max(abs(a), abs(b))
    if scale == 0:
        return 1.0
    return min(1.0, max(0.0, 1.0 - abs(a - b) / scale))


def compare_dates(a: date | None, b: date | None) -> float:
    """Closeness of two dates, fading to zero over one year."""
    if a is None or b is None:
        return 0.0
    days_apart = abs((a - b).days)
    return max(0.0, 1.0 - days_apart / DAYS_PER_YEAR)


def compare_day_ranges(a: tuple[int, int] | None, b: tuple[int, int] | None) -> float:
    """Overlap over union of two inclusive day ranges."""
    if a is None or b is None:
        return 0.0
    overlap = min(a[1], b[1]) - max(a[0], b[0]) + 1
    if overlap <= 0:
        mid_a = date.fromordinal((a[0] + a[1]) // 2)
        mid_b = date.fromordinal((b[0] + b[1]) // 2)
        return compare_dates(mid_a, mid_b)
    union = max(a[1], b[1]) - min(a[0], b[0]) + 1
    return overlap / union


# =============================================================================
# REGISTRY
# =============================================================================


class ComparatorRegistry:
    """ComparisonType → :class:`Comparator` lookup."""

    def __init__(self, *, builtins: bool = True):
        self._comparators: dict[ComparisonType, Comparator] = {}
        if builtins:
            self.register(ComparisonType.TEXT, compare_words, prepare=tokenize)
            self.register(ComparisonType.NUMERIC, compare_numbers, prepare=to_number)
            self.register(ComparisonType.DATE, compare_dates, prepare=to_date)
            self.register(ComparisonType.DATE_RANGE, compare_day_ranges, prepare=to_day_range)

    def register(
        self,
        comparison_type: ComparisonType | str,
        compare: Callable[[Any, Any], float],
        prepare: Callable[[Any], Any] | None = None,
    ) -> None:
        """Register (or replace) the comparator for a comparison type."""
        try:
            key = ComparisonType(comparison_type)
        except ValueError as exc:
            raise ConfigError(f"Unknown comparison type {comparison_type!r}", cause=exc) from exc
        self._comparators[key] = Comparator(compare=compare, prepare=prepare or _identity)

    def get(self, comparison_type: ComparisonType | str) -> Comparator:
        """Comparator for a type.

        Raises:
            ConfigError: If nothing is registered for the type.
        """
        try:
            return self._comparators[ComparisonType(comparison_type)]
        except (KeyError, ValueError) as exc:
            raise ConfigError(f"No comparator registered for {comparison_type!r}") from exc

    def has(self, comparison_type: ComparisonType | str) -> bool:
        try:
            return ComparisonType(comparison_type) in self._comparators
        except ValueError:
            return False

    def types(self) -> list[ComparisonType]:
        return list(self._comparators)


_default_registry: ComparatorRegistry | None = None


def get_comparator_registry() -> ComparatorRegistry:
    """Process-wide registry with the built-in comparators."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ComparatorRegistry()
    return _default_registry


def reset_comparator_registry() -> None:
    """Restore the built-in comparators (for testing)."""
    global _default_registry
    _default_registry = None


def register_comparator(
    comparison_type: ComparisonType | str,
    compare: Callable[[Any, Any], float],
    prepare: Callable[[Any], Any] | None = None,
) -> None:
    get_comparator_registry().register(comparison_type, compare, prepare)


def get_comparator(comparison_type: ComparisonType | str) -> Comparator:
    return get_comparator_registry().get(comparison_type)


__all__ = [
    "Comparator",
    "ComparatorRegistry",
    "compare_day_ranges",
    "compare_dates",
    "compare_numbers",
    "compare_words",
    "get_comparator",
    "get_comparator_registry",
    "register_comparator",
    "reset_comparator_registry",
    "to_date",
    "to_day_range",
    "to_number",
]

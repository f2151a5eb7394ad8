"""
Tests for related_spine.content.comparators.

Covers:
- Value parsers: numbers, dates, day ranges
- Built-in TEXT / NUMERIC / DATE / DATE_RANGE scoring
- Comparator callable (prepare then compare)
- ComparatorRegistry registration and errors
"""

from datetime import date, datetime

import pytest

from related_spine.content.comparators import (
    Comparator,
    ComparatorRegistry,
    compare_dates,
    compare_day_ranges,
    compare_numbers,
    compare_words,
    get_comparator,
    get_comparator_registry,
    register_comparator,
    to_date,
    to_day_range,
    to_number,
)
from related_spine.content.fields import ComparisonType
from related_spine.core.errors import ConfigError


class TestParsers:
    """Test raw value parsing."""

    def test_to_number(self):
        assert to_number(3) == 3.0
        assert to_number(" 2.5 ") == 2.5
        assert to_number(True) == 1.0
        assert to_number("n/a") is None
        assert to_number(None) is None

    def test_to_date(self):
        assert to_date("2024-03-01") == date(2024, 3, 1)
        assert to_date("2024-03-01T10:30:00") == date(2024, 3, 1)
        assert to_date(datetime(2024, 3, 1, 8)) == date(2024, 3, 1)
        assert to_date("2024-03-01 garbage") == date(2024, 3, 1)
        assert to_date("someday") is None
        assert to_date("") is None

    def test_to_day_range_forms(self):
        start = date(2024, 1, 1).toordinal()
        assert to_day_range(("2024-01-01", "2024-01-10")) == (start, start + 9)
        assert to_day_range({"begin": "2024-01-01", "end": "2024-01-10"}) == (start, start + 9)
        assert to_day_range("2024-01-01") == (start, start)
        assert to_day_range(["2024-01-01"]) == (start, start)

    def test_to_day_range_reversed_and_missing(self):
        start = date(2024, 1, 1).toordinal()
        assert to_day_range(("2024-01-10", "2024-01-01")) == (start, start + 9)
        assert to_day_range({"begin": None, "end": "2024-01-01"}) == (start, start)
        assert to_day_range([]) is None
        assert to_day_range(None) is None


class TestBuiltinScores:
    """Test the comparison functions."""

    def test_words(self):
        assert compare_words(["harbour", "dusk"], ["harbour", "dawn"]) == 1.0
        assert compare_words([], ["harbour"]) == 0.0

    def test_numbers(self):
        assert compare_numbers(10, 5) == 0.5
        assert compare_numbers(0, 0) == 1.0
        assert compare_numbers(-10, 10) == 0.0
        assert compare_numbers(None, 1) == 0.0

    def test_dates(self):
        d = date(2024, 1, 1)
        assert compare_dates(d, d) == 1.0
        assert compare_dates(d, date(2024, 7, 2)) == pytest.approx(1 - 183 / 365)
        assert compare_dates(d, date(2026, 1, 1)) == 0.0
        assert compare_dates(d, None) == 0.0

    def test_day_ranges_overlap(self):
        """Ten-day ranges sharing five days score 5 / 15."""
        assert compare_day_ranges((0, 9), (5, 14)) == pytest.approx(5 / 15)
        assert compare_day_ranges((0, 9), (0, 9)) == 1.0

    def test_day_ranges_disjoint_fall_back_to_midpoints(self):
        base = date(2024, 1, 1).toordinal()
        a = (base, base + 2)
        b = (base + 100, base + 102)
        assert compare_day_ranges(a, b) == pytest.approx(1 - 100 / 365)
        assert compare_day_ranges(a, None) == 0.0


class TestComparator:
    """Test the prepare/compare pair."""

    def test_call_prepares_both_sides(self):
        comparator = get_comparator(ComparisonType.TEXT)
        assert comparator("Harbour at dusk", "Dusk over the harbour") == 2.0

    def test_numeric_from_strings(self):
        assert get_comparator("NUMERIC")("10", "5") == 0.5

    def test_date_range_from_raw(self):
        comparator = get_comparator(ComparisonType.DATE_RANGE)
        assert comparator(("2024-01-01", "2024-01-10"), ("2024-01-01", "2024-01-10")) == 1.0

    def test_default_prepare_is_identity(self):
        assert Comparator(compare=lambda a, b: a + b)(1, 2) == 3.0


class TestComparatorRegistry:
    """Test registration and lookup."""

    def test_builtins(self):
        assert set(ComparatorRegistry().types()) == set(ComparisonType)

    def test_empty_registry_raises(self):
        registry = ComparatorRegistry(builtins=False)
        assert not registry.has(ComparisonType.TEXT)
        with pytest.raises(ConfigError, match="No comparator"):
            registry.get(ComparisonType.TEXT)

    def test_unknown_type(self):
        registry = ComparatorRegistry()
        assert not registry.has("DISTANCE")
        with pytest.raises(ConfigError):
            registry.get("DISTANCE")
        with pytest.raises(ConfigError, match="Unknown comparison type"):
            registry.register("DISTANCE", compare_numbers)

    def test_replace_builtin(self):
        """A registration replaces the built-in without touching callers."""
        register_comparator(ComparisonType.NUMERIC, lambda a, b: 7.0)
        assert get_comparator_registry().get(ComparisonType.NUMERIC)(1, 2) == 7.0

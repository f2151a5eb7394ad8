"""
Tests for related_spine.scheduling.memory.

Covers:
- ProcessMemoryProbe with an injected usage function
- Real process usage is positive
- StaticMemoryProbe
"""

import pytest

from related_spine.scheduling.memory import ProcessMemoryProbe, StaticMemoryProbe, current_usage_bytes

MIB = 1024 * 1024


class TestProcessMemoryProbe:
    def test_free_relative_to_limit(self):
        probe = ProcessMemoryProbe(100 * MIB, usage=lambda: 75 * MIB)
        assert probe.free_memory_bytes() == 25 * MIB
        assert probe.free_percent_of_limit() == pytest.approx(25.0)

    def test_over_limit_is_negative(self):
        probe = ProcessMemoryProbe(10 * MIB, usage=lambda: 12 * MIB)
        assert probe.free_memory_bytes() < 0
        assert probe.free_percent_of_limit() < 0

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            ProcessMemoryProbe(0)

    def test_current_usage(self):
        assert current_usage_bytes() > 0


class TestStaticMemoryProbe:
    def test_reports_configured_values(self):
        probe = StaticMemoryProbe(free_bytes=64 * MIB, limit_bytes=256 * MIB)
        assert probe.free_memory_bytes() == 64 * MIB
        assert probe.free_percent_of_limit() == pytest.approx(25.0)

        probe.free_bytes = 128 * MIB
        assert probe.free_percent_of_limit() == pytest.approx(50.0)

"""
Tests for related_spine.core.settings.

Covers:
- Defaults
- RELATED_* environment variables and .env files
- Validation (ranges, memory floor below limit)
- Derived low-memory percentage
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from related_spine.core.settings import CorrelationSettings, get_settings


class TestDefaults:
    """Test default values."""

    def test_scheduler_defaults(self):
        settings = CorrelationSettings()
        assert settings.prune_chance == 10
        assert settings.prune_min_seconds == 20.0
        assert settings.min_free_memory_bytes == 8_000_000
        assert settings.time_safety_factor == 2.0
        assert settings.correlation_threshold == 1.0
        assert settings.item_cache_capacity == 100

    def test_low_memory_percent(self):
        """Clearing threshold is the cache fraction plus the margin."""
        assert CorrelationSettings().low_memory_percent == pytest.approx(30.0)
        custom = CorrelationSettings(cache_clear_fraction=0.5, memory_margin_percent=0)
        assert custom.low_memory_percent == pytest.approx(50.0)


class TestEnvironment:
    """Test loading from the environment."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RELATED_PRUNE_CHANCE", "3")
        monkeypatch.setenv("RELATED_DATABASE", "/tmp/related-test.db")
        settings = CorrelationSettings()
        assert settings.prune_chance == 3
        assert settings.database == Path("/tmp/related-test.db")

    def test_dotenv_file(self, tmp_path):
        """A .env file in the working directory is read."""
        (tmp_path / ".env").write_text("RELATED_WINDOW_SECONDS=45\n")
        assert CorrelationSettings().window_seconds == 45.0

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("RELATED_PRUNE_CHANCE", "3")
        assert get_settings(prune_chance=7).prune_chance == 7


class TestValidation:
    """Test value validation."""

    def test_prune_chance_at_least_one(self):
        with pytest.raises(ValidationError):
            CorrelationSettings(prune_chance=0)

    def test_window_must_be_positive(self):
        with pytest.raises(ValidationError):
            CorrelationSettings(window_seconds=0)

    def test_floor_below_limit(self):
        with pytest.raises(ValidationError, match="min_free_memory_bytes"):
            CorrelationSettings(min_free_memory_bytes=1024, memory_limit_bytes=1024)

"""Settings for the correlation engine.

All tunables of the update scheduler, the caches and the task runner live
in one ``CorrelationSettings`` object read from ``RELATED_*`` environment
variables (and an optional ``.env`` file).

Examples:
    >>> from related_spine.core.settings import CorrelationSettings
    >>> settings = CorrelationSettings(prune_chance=1)
    >>> settings.prune_chance
    1

    RELATED_DATABASE=/data/related.db RELATED_WINDOW_SECONDS=60 related-spine worker run

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CorrelationSettings(BaseSettings):
    """Tunables for one correlation-engine process.

    Fields
    ──────
    database                  : SQLite file holding items, correlations and tasks
    item_cache_capacity       : Items kept by the item content cache
    correlation_threshold     : Minimum score that gets stored
    prune_chance              : Prune after 1 in N completed jobs
    prune_min_seconds         : Time that must remain before pruning
    min_free_memory_bytes     : Free-memory floor for update slices
    memory_limit_bytes        : Memory limit used by the process probe
    cache_clear_fraction      : Cache-layer clearing threshold, as a fraction of the limit
    memory_margin_percent     : Safety margin added to the clearing threshold
    window_seconds            : Length of one task-runner execution window
    time_safety_factor        : Multiple of the last pair time that must remain
    min_seconds_to_start_task : Time needed to start another queued task
    min_free_memory_percent   : Free memory needed to start another queued task
    poll_interval             : Seconds between runner cycles in the poll loop
    """

    model_config = SettingsConfigDict(
        env_prefix="RELATED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database: Path = Field(
        default_factory=lambda: Path.home() / ".related-spine" / "related.db",
        description="SQLite database path",
    )

    # ── Correlation store ────────────────────────────────────────
    item_cache_capacity: int = Field(default=100, ge=1)
    correlation_threshold: float = Field(default=1.0, ge=0)

    # ── Pruning ──────────────────────────────────────────────────
    prune_chance: int = Field(default=10, ge=1)
    prune_min_seconds: float = Field(default=20.0, ge=0)

    # ── Memory budget ────────────────────────────────────────────
    min_free_memory_bytes: int = Field(default=8_000_000, ge=0)
    memory_limit_bytes: int = Field(default=512 * 1024 * 1024, gt=0)
    cache_clear_fraction: float = Field(default=0.25, ge=0, le=1)
    memory_margin_percent: float = Field(default=5.0, ge=0, le=100)

    # ── Time budget / task runner ────────────────────────────────
    window_seconds: float = Field(default=30.0, gt=0)
    time_safety_factor: float = Field(default=2.0, ge=1)
    min_seconds_to_start_task: float = Field(default=5.0, ge=0)
    min_free_memory_percent: float = Field(default=25.0, ge=0, le=100)
    poll_interval: float = Field(default=2.0, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @model_validator(mode="after")
    def _check_memory_floor(self) -> CorrelationSettings:
        if self.min_free_memory_bytes >= self.memory_limit_bytes:
            raise ValueError("min_free_memory_bytes must be below memory_limit_bytes")
        return self

    @property
    def low_memory_percent(self) -> float:
        """Free-memory percentage below which caches are cleared."""
        return self.cache_clear_fraction * 100 + self.memory_margin_percent


def get_settings(**overrides) -> CorrelationSettings:
    """Build settings from the environment, applying explicit overrides."""
    return CorrelationSettings(**overrides)


__all__ = ["CorrelationSettings", "get_settings"]

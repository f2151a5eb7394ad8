"""
Memory probes.

The updater checks free memory before every pair and the task runner
before starting another task. "Free" is measured against a configured
process limit, not against the machine:

    free_bytes   = limit - current_usage
    free_percent = free_bytes / limit × 100

Tags:
    memory, resource, probe
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable

_STATM = "/proc/self/statm"


def _rss_from_statm() -> int | None:
    try:
        with open(_STATM, encoding="ascii") as fh:
            resident_pages = int(fh.read().split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return resident_pages * os.sysconf("SC_PAGE_SIZE")


def _rss_from_rusage() -> int:
    import resource

    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is in kilobytes on Linux, bytes on macOS
    return peak if sys.platform == "darwin" else peak * 1024


def current_usage_bytes() -> int:
    """Resident set size of this process (peak RSS when unavailable)."""
    rss = _rss_from_statm()
    return rss if rss is not None else _rss_from_rusage()


class ProcessMemoryProbe:
    """Free memory of the current process relative to ``limit_bytes``."""

    def __init__(self, limit_bytes: int, usage: Callable[[], int] = current_usage_bytes):
        if limit_bytes <= 0:
            raise ValueError("limit_bytes must be positive")
        self.limit_bytes = limit_bytes
        self._usage = usage

    def free_memory_bytes(self) -> int:
        return self.limit_bytes - self._usage()

    def free_percent_of_limit(self) -> float:
        return self.free_memory_bytes() / self.limit_bytes * 100


class StaticMemoryProbe:
    """Probe reporting whatever free memory it was last told.

    For hosts that meter memory themselves, and for tests.
    """

    def __init__(self, free_bytes: int, limit_bytes: int):
        self.free_bytes = free_bytes
        self.limit_bytes = limit_bytes

    def free_memory_bytes(self) -> int:
        return self.free_bytes

    def free_percent_of_limit(self) -> float:
        return self.free_bytes / self.limit_bytes * 100


__all__ = ["ProcessMemoryProbe", "StaticMemoryProbe", "current_usage_bytes"]

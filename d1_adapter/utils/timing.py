"""
Timing utilities for the D1 adapter.

Every remote call is logged with its wall-clock duration. This module keeps the
measurement in one place:

    from d1_adapter.utils.timing import timed_block

    with timed_block("d1-query") as stats:
        await client.post(...)

    log.debug("done", extra={"duration_ms": stats.duration_ms})

The stats object is filled in when the block exits, including when it exits
with an exception, so error paths can report timing too.
"""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Generator


@dataclass
class TimingStats:
    """
    Container for a single timing measurement.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)

    @property
    def duration_ms(self) -> float:
        """Duration rounded to whole-ish milliseconds for log output."""
        return round(self.duration_seconds * 1000.0, 2)

    def elapsed(self) -> float:
        """Seconds since the block started; usable while it is still running."""
        return time.perf_counter() - self.start_ts


@contextlib.contextmanager
def timed_block(label: str) -> Generator[TimingStats, None, None]:
    """
    Context manager measuring the wall-clock duration of a block (perf_counter).

    Parameters
    ----------
    label : str
        Human-friendly label for the measured block.
    """
    stats = TimingStats(label=label)
    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts


__all__ = ["TimingStats", "timed_block"]

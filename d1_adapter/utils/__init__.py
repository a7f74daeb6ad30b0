"""
Utilities package for the D1 adapter.

Exports shared helpers for logging and timing. Keep this package lightweight
and free of SQL or HTTP logic.
"""

from d1_adapter.utils.logging import configure_logging, get_logger
from d1_adapter.utils.timing import TimingStats, timed_block

__all__ = [
    "configure_logging",
    "get_logger",
    "TimingStats",
    "timed_block",
]

"""
Utilities package for the CardDemo posting batch.

Exports shared helpers for logging and profiling.
Keep this package lightweight and free of posting rules.
"""

from carddemo.utils.logging import configure_logging, get_logger
from carddemo.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]

"""
TimeManager - lightweight time utilities for consistent timing across modules.

All domain timestamps are integer epoch milliseconds.
"""

import time
from typing import Callable

Clock = Callable[[], int]

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS


def now_ms() -> int:
    """Return system time in epoch milliseconds."""
    return int(time.time() * 1000)


def resolve(now_value, clock: Clock) -> int:
    """Use an explicit timestamp when given, otherwise ask the clock."""
    if isinstance(now_value, (int, float)) and not isinstance(now_value, bool):
        return int(now_value)
    return clock()

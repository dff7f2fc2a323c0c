"""
Receipt clock and timestamp helpers.

All trade timestamps are integer epoch milliseconds. The receipt clock is a
plain callable so sessions and dispatchers can be handed a fixed clock.
"""

import time
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import Optional

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def ensure_observed_at(observed_at: Optional[int], clock: Clock = now_ms) -> int:
    """
    Return the feed timestamp when present, otherwise the receipt time.

    Args:
        observed_at: Timestamp carried by the payload, if any
        clock: Receipt clock

    Returns:
        Epoch milliseconds
    """
    if observed_at is not None:
        return observed_at
    return clock()


def format_trade_time(observed_at: int, with_millis: bool = True) -> str:
    """Format epoch milliseconds as a UTC wall-clock string (HH:MM:SS.mmm)."""
    dt = datetime.fromtimestamp(observed_at / 1000.0, tz=timezone.utc)
    if with_millis:
        return dt.strftime("%H:%M:%S.") + f"{observed_at % 1000:03d}"
    return dt.strftime("%H:%M:%S")


def ticking_clock(start: int, step: int = 1) -> Clock:
    """
    Build a clock that advances by ``step`` milliseconds on every call.

    Useful for replaying recorded payloads with distinct receipt times.
    """
    counter: Iterator[int] = iter(range(start, 2**63, step))
    return lambda: next(counter)

"""
Cadence arithmetic for the scheduler.
"""

from datetime import datetime, timedelta, timezone
from typing import Union

Milliseconds = Union[int, float]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_timestamp(now: datetime, interval_seconds: int) -> datetime:
    """
    Align a tick's start time to the interval grid.

    Subtracts ``now.second % interval_seconds`` and zeroes sub-second
    components, so every entry of a batch carries the same wall-clock
    boundary regardless of scheduling jitter.
    """
    if interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
    rounded = now.replace(microsecond=0)
    return rounded - timedelta(seconds=rounded.second % interval_seconds)


def to_epoch_seconds(moment: datetime) -> int:
    """Convert a datetime to unix epoch seconds; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def compute_sleep_ms(interval_ms: Milliseconds, elapsed_ms: Milliseconds) -> Milliseconds:
    """
    Time to sleep before the next tick.

    Returns 0 when processing took the whole interval or longer; the next
    tick then starts immediately and the drift is not made up later.
    """
    return max(0, interval_ms - elapsed_ms)

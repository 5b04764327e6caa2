"""
Orchestration of the collection cadence.

This package contains the Scheduler loop, the epoch/state structures it
swaps on reload, cadence arithmetic and signal handling.
"""

from .scheduler import Scheduler
from .shared_state import AgentEpoch, RuntimeState
from .signal_handler import SignalHandler
from .timing import compute_sleep_ms, round_timestamp, to_epoch_seconds, utc_now

__all__ = [
    "AgentEpoch",
    "RuntimeState",
    "Scheduler",
    "SignalHandler",
    "compute_sleep_ms",
    "round_timestamp",
    "to_epoch_seconds",
    "utc_now",
]

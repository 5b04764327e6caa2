"""
Shared data structures for the orchestration module.

This module defines the configuration epoch swapped in on reload and the
runtime state the scheduler and signal handler share.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..models.config import AgentConfig
from ..plugins.base import MetricPlugin


@dataclass(frozen=True)
class AgentEpoch:
    """
    A configuration together with the plugins configured against it.

    Built in full before being swapped in, and replaced as a whole on reload,
    so a tick never observes a half-applied configuration.
    """
    config: AgentConfig
    plugins: Tuple[MetricPlugin, ...] = ()

    @property
    def enabled_plugins(self) -> Tuple[MetricPlugin, ...]:
        return tuple(p for p in self.plugins if p.enabled)


@dataclass
class RuntimeState:
    """
    Runtime state of one scheduler.
    """
    # Set by signal handlers or callers; checked at the top of every tick.
    shutdown_requested: threading.Event = field(default_factory=threading.Event)
    epoch: Optional[AgentEpoch] = None

    # Counters
    ticks_completed: int = 0
    transmission_failures: int = 0
    reloads: int = 0
    last_batch_size: int = 0

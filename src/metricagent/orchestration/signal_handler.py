"""
Signal handling for the orchestration module.

Translates SIGINT/SIGTERM into the scheduler's shutdown event. The loop
checks the event between ticks, so a signal never cuts a transmission short.
"""

import logging
import signal
from typing import Any

from .shared_state import RuntimeState

logger = logging.getLogger(__name__)


class SignalHandler:
    """
    Manages signal registration and cleanup for a Scheduler.
    """

    def __init__(self, state: RuntimeState):
        self.state = state
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        """Install handlers for SIGINT and SIGTERM, remembering the previous ones."""
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._handle_signal)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._handle_signal)
            self._signal_handlers_set = True
            logger.debug("Signal handlers set up for scheduler")
        except ValueError as e:
            # signal.signal only works from the main thread
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except ValueError as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def _handle_signal(self, signum: int, frame: Any) -> None:
        if self.state.shutdown_requested.is_set():
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(
            f"Signal {signal.strsignal(signum)} received. "
            f"Finishing the current tick and shutting down..."
        )
        self.state.shutdown_requested.set()

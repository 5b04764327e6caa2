"""
Timeout boundary for blocking collaborator calls.

The collection loop is single-threaded, but a plugin that hangs must not
stall the cadence. `CallGuard` runs each call on its own daemon thread and
stops waiting once the timeout expires. A timed-out call keeps running in
its thread but its result is discarded; while it is still running, further
calls under the same key are refused instead of stacking up more threads.
Daemon threads never hold up interpreter exit.
"""

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallTimeoutError(TimeoutError):
    """A guarded call did not finish within its timeout."""


class CallBusyError(CallTimeoutError):
    """An earlier call under the same key has timed out and is still running."""


@dataclass
class CallGuardConfig:
    """Configuration for the call guard's worker threads."""

    thread_name_prefix: str = "PluginCall"


class CallGuard:
    """
    Runs callables with a per-call timeout on daemon worker threads.

    Calls made with a `call_key` are tracked: once such a call is abandoned,
    the key stays busy until the call actually returns.
    """

    def __init__(self, config: Optional[CallGuardConfig] = None):
        self.config = config or CallGuardConfig()
        self._lock = threading.Lock()
        self._in_flight: Dict[Hashable, Future] = {}
        self._thread_counter = 0
        self.stats = {
            "calls_submitted": 0,
            "calls_completed": 0,
            "calls_timed_out": 0,
            "calls_refused": 0,
        }

    @property
    def abandoned_calls(self) -> int:
        """Number of keyed calls that timed out and are still running."""
        with self._lock:
            return sum(1 for future in self._in_flight.values() if not future.done())

    def _start_worker(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Future:
        future: Future = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(result)

        with self._lock:
            self._thread_counter += 1
            name = f"{self.config.thread_name_prefix}_{self._thread_counter}"
        threading.Thread(target=_run, name=name, daemon=True).start()
        return future

    def _release_when_done(self, call_key: Hashable, future: Future) -> None:
        def _release(done: Future) -> None:
            with self._lock:
                if self._in_flight.get(call_key) is done:
                    del self._in_flight[call_key]

        future.add_done_callback(_release)

    def call(
        self,
        fn: Callable[..., T],
        timeout: float,
        *args: Any,
        call_key: Optional[Hashable] = None,
        **kwargs: Any,
    ) -> T:
        """
        Run `fn(*args, **kwargs)` and wait at most `timeout` seconds.

        Exceptions raised by `fn` propagate unchanged.

        Args:
            fn: Callable to run
            timeout: Seconds to wait for the result
            call_key: Identifies the caller (e.g. a plugin); a key whose
                      previous call is still running is refused

        Raises:
            CallBusyError: If a previous call under `call_key` is still running
            CallTimeoutError: If the call did not finish in time
        """
        name = getattr(fn, "__qualname__", repr(fn))

        with self._lock:
            if call_key is not None:
                previous = self._in_flight.get(call_key)
                if previous is not None and not previous.done():
                    self.stats["calls_refused"] += 1
                    raise CallBusyError(f"{name}: previous call timed out and is still running")
            self.stats["calls_submitted"] += 1

        future = self._start_worker(fn, args, kwargs)
        try:
            result = future.result(timeout=timeout)
        except FutureTimeoutError:
            with self._lock:
                self.stats["calls_timed_out"] += 1
                if call_key is not None:
                    self._in_flight[call_key] = future
            if call_key is not None:
                self._release_when_done(call_key, future)
            raise CallTimeoutError(f"{name} did not finish within {timeout}s") from None

        with self._lock:
            self.stats["calls_completed"] += 1
        return result

    def shutdown(self) -> None:
        """
        Report calls still running. Abandoned calls are left to finish on
        their own daemon threads and do not delay process exit.
        """
        abandoned = self.abandoned_calls
        if abandoned:
            logger.warning(f"{abandoned} abandoned call(s) still running at shutdown")
        logger.debug(f"Call guard shut down (stats: {self.stats})")

"""
The agent's fixed-interval collection loop.

Each tick collects and filters samples, transmits the batch, checks the
configuration file for changes and then sleeps for whatever is left of the
interval. Processing time is subtracted from the sleep so batches stay on
the wall-clock grid; a tick that overruns the interval is followed
immediately by the next one.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..config import ConfigStore
from ..models.config import AgentConfig
from ..models.metrics import MetricBatch
from ..pipeline import MetricPipeline
from ..plugins import discover, instantiate_all
from ..plugins.base import MetricPlugin
from ..transport import Transmitter
from ..validation import (
    ErrorSeverity,
    PluginInitError,
    TransmissionError,
    handle_error,
    handle_plugin_error,
)
from .shared_state import AgentEpoch, RuntimeState
from .timing import compute_sleep_ms, round_timestamp, to_epoch_seconds, utc_now

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Drives the collect -> transmit -> reload-check -> sleep cycle.

    The active configuration and plugin set live in one `AgentEpoch` which
    is only ever replaced whole, between ticks.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        plugin_directory: Optional[Path] = None,
        include_builtin: bool = True,
        test_mode: bool = False,
        state: Optional[RuntimeState] = None,
        pipeline: Optional[MetricPipeline] = None,
        transmitter: Optional[Transmitter] = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config_store: Source of the active configuration
            plugin_directory: Directory of additional plugin modules
            include_builtin: Whether the built-in psutil sources are loaded
            test_mode: Render batches instead of sending them
            state: Shared runtime state (shutdown event, counters)
            pipeline: Batch builder, created when omitted
            transmitter: Batch sender, created when omitted
            clock: Returns the current UTC time, used for batch timestamps
            monotonic: Monotonic clock used to measure processing time
        """
        self.config_store = config_store
        self.plugin_directory = plugin_directory
        self.include_builtin = include_builtin
        self.test_mode = test_mode
        self.state = state or RuntimeState()
        self.pipeline = pipeline or MetricPipeline()
        self.transmitter = transmitter or Transmitter()
        self._clock = clock
        self._monotonic = monotonic

    @property
    def epoch(self) -> Optional[AgentEpoch]:
        return self.state.epoch

    def build_epoch(self, config: AgentConfig) -> AgentEpoch:
        """
        Discover, instantiate and configure a fresh plugin set for `config`.

        Previously loaded plugin instances are never reused. Construction,
        `init()` and `configure()` run under the plugin timeout.
        """
        call_guard = self.pipeline.call_guard
        timeout = config.plugin_timeout_seconds
        factories = discover(self.plugin_directory, include_builtin=self.include_builtin)
        plugins: List[MetricPlugin] = []
        for plugin in instantiate_all(factories, call_guard=call_guard, timeout=timeout):
            try:
                call_guard.call(plugin.configure, timeout, config, call_key=plugin)
            except Exception as e:
                handle_plugin_error(
                    error=PluginInitError(f"configure failed: {type(e).__name__}: {e}"),
                    plugin_name=plugin.plugin_name,
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                )
                continue
            plugins.append(plugin)

        epoch = AgentEpoch(config=config, plugins=tuple(plugins))
        enabled = [p.plugin_name for p in epoch.enabled_plugins]
        logger.info(
            f"Plugin set ready: {len(plugins)} loaded, "
            f"{len(enabled)} enabled ({', '.join(enabled) or 'none'})"
        )
        return epoch

    def _activate(self, epoch: AgentEpoch) -> None:
        self.transmitter.timeout = epoch.config.transmit_timeout_seconds
        self.state.epoch = epoch

    def start(self) -> AgentEpoch:
        """
        Load the initial configuration and plugin set.

        Raises:
            ConfigError: If the initial configuration cannot be loaded
        """
        config = self.config_store.load_initial()
        epoch = self.build_epoch(config)
        self._activate(epoch)
        return epoch

    def collect(self) -> MetricBatch:
        """Collect, filter and rename samples into this tick's batch."""
        epoch = self.state.epoch
        interval = epoch.config.metric_send_interval_seconds
        timestamp = to_epoch_seconds(round_timestamp(self._clock(), interval))
        return self.pipeline.run(epoch.plugins, epoch.config, timestamp)

    def transmit(self, batch: MetricBatch) -> bool:
        """
        Send the batch; a failure is reported and the batch dropped.

        Returns:
            True if the batch was delivered (or rendered in test mode)
        """
        epoch = self.state.epoch
        try:
            self.transmitter.send(batch, epoch.config.endpoint, test_mode=self.test_mode)
        except TransmissionError as e:
            self.state.transmission_failures += 1
            handle_error(
                error=e,
                context="transmitting batch (dropped, next tick will send fresh data)",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
            return False
        return True

    def reload_check(self) -> bool:
        """
        Swap in a new epoch if the configuration file changed and is valid.

        Returns:
            True if a new epoch was activated
        """
        new_config = self.config_store.reload_if_modified()
        if new_config is None:
            return False

        self._activate(self.build_epoch(new_config))
        self.state.reloads += 1
        logger.info("Configuration reloaded and plugin set replaced")
        return True

    def run_tick(self) -> float:
        """
        Run one full tick.

        Returns:
            Seconds to sleep before the next tick
        """
        if self.state.epoch is None:
            raise RuntimeError("Scheduler.start() must be called before run_tick()")

        started = self._monotonic()

        batch = self.collect()
        self.state.last_batch_size = len(batch)
        self.transmit(batch)
        self.reload_check()

        elapsed_ms = (self._monotonic() - started) * 1000
        interval_ms = self.state.epoch.config.interval_ms
        sleep_ms = compute_sleep_ms(interval_ms, elapsed_ms)
        self.state.ticks_completed += 1

        if sleep_ms == 0:
            logger.warning(
                f"Tick took {elapsed_ms:.0f}ms, longer than the {interval_ms}ms interval; "
                f"starting the next tick immediately"
            )
        else:
            logger.debug(f"Tick took {elapsed_ms:.0f}ms, sleeping {sleep_ms:.0f}ms")
        return sleep_ms / 1000

    def request_shutdown(self) -> None:
        self.state.shutdown_requested.set()

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Run ticks until shutdown is requested or `max_ticks` is reached.

        The shutdown event is checked before every tick and interrupts the
        sleep between ticks; a tick in progress always runs to completion.

        Args:
            max_ticks: Stop after this many ticks, None for no limit

        Returns:
            Number of ticks completed by this call

        Raises:
            ConfigError: If the initial configuration cannot be loaded
        """
        if self.state.epoch is None:
            self.start()

        ticks = 0
        try:
            while not self.state.shutdown_requested.is_set():
                try:
                    sleep_seconds = self.run_tick()
                except Exception as e:
                    logger.error(
                        f"Unexpected error during tick: {type(e).__name__}: {e}",
                        exc_info=True,
                    )
                    sleep_seconds = self.state.epoch.config.metric_send_interval_seconds
                ticks += 1

                if max_ticks is not None and ticks >= max_ticks:
                    break
                if self.state.shutdown_requested.wait(sleep_seconds):
                    break
        finally:
            self.pipeline.call_guard.shutdown()

        logger.info(f"Scheduler stopped after {ticks} tick(s)")
        return ticks

"""
Per-tick metric pipeline.

Collects samples from every enabled plugin, drops filtered paths, sanitizes
the rest and folds them into one `MetricBatch`.
"""

import logging
import math
import socket
from typing import List, Optional, Sequence

from ..executor import CallGuard
from ..models.config import AgentConfig
from ..models.metrics import MetricBatch, Sample
from ..plugins.base import MetricPlugin
from ..validation import ErrorSeverity, PluginSampleError, handle_plugin_error
from .sanitizer import sanitize_metric_path

logger = logging.getLogger(__name__)


class MetricPipeline:
    """
    Builds the batch for one tick.

    Plugins are visited in registry order and their samples in the order
    returned, so when two samples sanitize to the same final path the one
    processed later wins.
    """

    def __init__(self, call_guard: Optional[CallGuard] = None, local_host_name: Optional[str] = None):
        """
        Args:
            call_guard: Timeout boundary for plugin calls; a private one is
                        created when omitted
            local_host_name: Name of this machine used for host label
                             substitution, defaults to `socket.gethostname()`
        """
        self.call_guard = call_guard or CallGuard()
        self.local_host_name = local_host_name if local_host_name is not None else socket.gethostname()

    def collect(self, plugin: MetricPlugin, timeout: float) -> List[Sample]:
        """
        Call one plugin's `get_metrics` within `timeout` seconds.

        A plugin whose previous call timed out and is still running is not
        called again until that call returns.

        Raises:
            PluginSampleError: If the plugin raised, timed out, is still busy
                               or returned something other than a sequence
                               of samples
        """
        try:
            samples = self.call_guard.call(plugin.get_metrics, timeout, call_key=plugin)
        except Exception as e:
            raise PluginSampleError(
                f"get_metrics failed: {type(e).__name__}: {e}",
                plugin_name=plugin.plugin_name,
            ) from e

        if samples is None:
            return []
        try:
            return list(samples)
        except TypeError as e:
            raise PluginSampleError(
                f"get_metrics returned {type(samples).__name__}, expected a sequence of samples",
                plugin_name=plugin.plugin_name,
            ) from e

    def run(self, plugins: Sequence[MetricPlugin], config: AgentConfig, timestamp: int) -> MetricBatch:
        """
        Produce the batch for one tick.

        Args:
            plugins: Configured plugins in registry order
            config: Active configuration (filters, replace rules, verbosity)
            timestamp: Rounded tick timestamp shared by every entry

        Returns:
            The populated MetricBatch
        """
        batch = MetricBatch(timestamp=timestamp)
        log_level = logging.INFO if config.show_output else logging.DEBUG
        filtered_count = 0

        for plugin in plugins:
            if not plugin.enabled:
                continue
            descriptor = plugin.descriptor

            try:
                samples = self.collect(plugin, config.plugin_timeout_seconds)
            except PluginSampleError as e:
                handle_plugin_error(
                    error=e,
                    plugin_name=plugin.plugin_name,
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                )
                continue

            for sample in samples:
                if not isinstance(sample, Sample):
                    logger.warning(f"Plugin '{plugin.plugin_name}' returned a non-Sample item: {sample!r}")
                    continue

                if config.filters is not None and config.filters.search(sample.path):
                    filtered_count += 1
                    logger.debug(f"Filtered out metric '{sample.path}' from '{plugin.plugin_name}'")
                    continue

                value = sample.value
                if isinstance(value, bool):
                    value = int(value)
                if not isinstance(value, (int, float)) or not math.isfinite(value):
                    logger.warning(
                        f"Skipping non-numeric value {sample.value!r} for '{sample.path}' "
                        f"from '{plugin.plugin_name}'"
                    )
                    continue

                sanitized = sanitize_metric_path(
                    sample.path,
                    descriptor.node_host_name,
                    config.metric_replace,
                    local_host_name=self.local_host_name,
                )
                if not sanitized:
                    logger.warning(
                        f"Skipping '{sample.path}' from '{plugin.plugin_name}': "
                        f"path is empty after sanitization"
                    )
                    continue
                final_path = f"{descriptor.metric_path}.{sanitized}"
                batch.add(final_path, value)
                logger.log(log_level, f"{final_path} {value} {timestamp}")

        logger.debug(f"Built batch with {len(batch)} metric(s), {filtered_count} filtered")
        return batch

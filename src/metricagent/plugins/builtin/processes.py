"""
Per-pattern process metrics using the 'psutil' library.
"""

import logging
import re
from typing import Any, List, Mapping, Tuple

import psutil

from ...models.metrics import Sample
from ..base import MetricPlugin

logger = logging.getLogger(__name__)


class ProcessMetricsPlugin(MetricPlugin):
    """
    Counts processes matching configured patterns and sums their RSS.

    The section's `Patterns` list holds tables of `Name` (metric segment) and
    `Pattern` (regex searched in the process name or full command line).
    Each pattern yields `processes.<Name>.count` and `processes.<Name>.rss`.
    """

    plugin_name = "processes"
    config_section_name = "processes"

    def _compiled_patterns(self) -> List[Tuple[str, re.Pattern]]:
        compiled = []
        for entry in self.settings.get("Patterns", []):
            if not isinstance(entry, Mapping) or "Name" not in entry or "Pattern" not in entry:
                logger.warning(f"Ignoring malformed process pattern entry: {entry!r}")
                continue
            try:
                compiled.append((entry["Name"], re.compile(entry["Pattern"])))
            except re.error as e:
                logger.warning(f"Invalid process pattern '{entry['Pattern']}': {e}")
        return compiled

    def get_metrics(self) -> List[Sample]:
        patterns = self._compiled_patterns()
        if not patterns:
            return []

        counts = {name: 0 for name, _ in patterns}
        rss_totals = {name: 0 for name, _ in patterns}

        for proc in psutil.process_iter(["name", "cmdline", "memory_info"]):
            info: Mapping[str, Any] = proc.info
            name = info.get("name") or ""
            full_cmd = " ".join(info.get("cmdline") or [])
            memory_info = info.get("memory_info")
            for label, pattern in patterns:
                if pattern.search(name) or pattern.search(full_cmd):
                    counts[label] += 1
                    if memory_info is not None:
                        rss_totals[label] += memory_info.rss

        samples = []
        for label, _ in patterns:
            samples.append(Sample(f"processes.{label}.count", counts[label]))
            samples.append(Sample(f"processes.{label}.rss", rss_totals[label]))
        return samples

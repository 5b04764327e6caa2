"""
Host-level metrics using the 'psutil' library.

This module provides the SystemMetricsPlugin class, which reports CPU, memory,
swap, disk, network and load figures for the local machine.
"""

import logging
import re
from typing import Callable, Dict, List

import psutil

from ...models.metrics import Sample
from ..base import MetricPlugin

logger = logging.getLogger(__name__)


def _mount_label(mountpoint: str) -> str:
    """Turn a mountpoint into a single path segment ("/" -> "root", "/var/log" -> "var_log")."""
    label = re.sub(r"[^A-Za-z0-9]+", "_", mountpoint).strip("_")
    return label or "root"


class SystemMetricsPlugin(MetricPlugin):
    """
    Reports host counters selected by the section's `Counters` list.

    Section settings:
        Counters: Subset of AVAILABLE_COUNTERS, default all of them.
        Mounts: Mountpoints reported by the "disk" counter, default ["/"].
        PerCpu: Also report per-core utilisation, default false.
    """

    plugin_name = "system"
    config_section_name = "system"

    AVAILABLE_COUNTERS: List[str] = ["cpu", "memory", "swap", "disk", "network", "load"]

    def __init__(self) -> None:
        super().__init__()
        self._collectors: Dict[str, Callable[[], List[Sample]]] = {
            "cpu": self._cpu_samples,
            "memory": self._memory_samples,
            "swap": self._swap_samples,
            "disk": self._disk_samples,
            "network": self._network_samples,
            "load": self._load_samples,
        }
        # Prime psutil's CPU counters so the first non-blocking read is meaningful.
        psutil.cpu_percent(interval=None)

    def get_metrics(self) -> List[Sample]:
        samples: List[Sample] = []
        for counter in self.settings.get("Counters", self.AVAILABLE_COUNTERS):
            collector = self._collectors.get(counter)
            if collector is None:
                logger.warning(f"Unknown system counter '{counter}', skipping")
                continue
            samples.extend(collector())
        return samples

    def _cpu_samples(self) -> List[Sample]:
        samples = [Sample("cpu.percent", psutil.cpu_percent(interval=None))]
        if self.settings.get("PerCpu", False):
            for index, pct in enumerate(psutil.cpu_percent(interval=None, percpu=True)):
                samples.append(Sample(f"cpu.{index}.percent", pct))
        return samples

    def _memory_samples(self) -> List[Sample]:
        vm = psutil.virtual_memory()
        return [
            Sample("memory.total", vm.total),
            Sample("memory.available", vm.available),
            Sample("memory.used", vm.used),
            Sample("memory.percent", vm.percent),
        ]

    def _swap_samples(self) -> List[Sample]:
        swap = psutil.swap_memory()
        return [
            Sample("swap.used", swap.used),
            Sample("swap.percent", swap.percent),
        ]

    def _disk_samples(self) -> List[Sample]:
        samples = []
        for mountpoint in self.settings.get("Mounts", ["/"]):
            try:
                usage = psutil.disk_usage(mountpoint)
            except OSError as e:
                logger.warning(f"Cannot read disk usage for '{mountpoint}': {e}")
                continue
            label = _mount_label(mountpoint)
            samples.extend([
                Sample(f"disk.{label}.free", usage.free),
                Sample(f"disk.{label}.used", usage.used),
                Sample(f"disk.{label}.percent", usage.percent),
            ])
        return samples

    def _network_samples(self) -> List[Sample]:
        samples = []
        for nic, counters in psutil.net_io_counters(pernic=True).items():
            samples.extend([
                Sample(f"network.{nic}.bytes_sent", counters.bytes_sent),
                Sample(f"network.{nic}.bytes_recv", counters.bytes_recv),
            ])
        return samples

    def _load_samples(self) -> List[Sample]:
        load1, load5, load15 = psutil.getloadavg()
        return [
            Sample("load.1min", load1),
            Sample("load.5min", load5),
            Sample("load.15min", load15),
        ]

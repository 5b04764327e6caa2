"""
Example directory plugin: reports seconds since boot.

Load with ``metricagent --plugin-dir contrib/plugins`` and enable the
``[ModulesConfigs.uptime]`` section.
"""

import time
from typing import List

import psutil

from metricagent import MetricPlugin, Sample


class UptimePlugin(MetricPlugin):
    plugin_name = "uptime"
    config_section_name = "uptime"

    def get_metrics(self) -> List[Sample]:
        return [Sample("uptime.seconds", int(time.time() - psutil.boot_time()))]

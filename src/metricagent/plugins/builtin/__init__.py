"""
Built-in metric sources backed by psutil.

These are registered ahead of any directory plugins and can be excluded with
the `--exclude-defaults` command-line flag.
"""

from .processes import ProcessMetricsPlugin
from .system import SystemMetricsPlugin

BUILTIN_PLUGINS = [
    SystemMetricsPlugin,
    ProcessMetricsPlugin,
]

__all__ = [
    "BUILTIN_PLUGINS",
    "ProcessMetricsPlugin",
    "SystemMetricsPlugin",
]

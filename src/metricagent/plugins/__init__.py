"""
Metric source plugins.

This package provides the plugin framework for the agent:

- The `MetricPlugin` abstract interface (`init`, `configure`, `get_metrics`)
- Discovery of built-in and directory-based plugins
- The pure configuration step that enables plugins and sets their naming
- Built-in psutil sources for host and process metrics
"""

from .base import MetricPlugin
from .configurer import apply_plugin_config
from .registry import PluginFactory, discover, instantiate_all

__all__ = [
    "MetricPlugin",
    "PluginFactory",
    "apply_plugin_config",
    "discover",
    "instantiate_all",
]

"""
Data models for the metric agent.

Configuration Models:
- Agent-wide settings, replace rules and per-plugin sections

Plugin Models:
- The descriptor tracking a plugin's identity and effective settings

Metric Models:
- Raw samples emitted by plugins and the per-tick batch

All models are dataclasses; configuration and descriptors are frozen so a
configuration epoch can be swapped without locks.
"""

from .config import AgentConfig, Endpoint, ModuleConfig, ReplaceRule
from .metrics import MetricBatch, Number, Sample
from .plugin import PluginDescriptor

__all__ = [
    # Configuration
    "AgentConfig",
    "Endpoint",
    "ModuleConfig",
    "ReplaceRule",
    # Metrics
    "MetricBatch",
    "Number",
    "Sample",
    # Plugins
    "PluginDescriptor",
]

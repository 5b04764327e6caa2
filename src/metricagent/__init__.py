"""
metricagent: periodic metric collection for Graphite/Carbon.

The package is organized into specialized modules:
- config: TOML configuration loading, validation and hot-reload detection
- models: Configuration, plugin and metric data structures
- validation: Field validators and the error taxonomy
- plugins: The MetricPlugin interface, discovery and built-in psutil sources
- pipeline: Filtering, path sanitization and batching of samples
- transport: Carbon plaintext transmission over UDP or TCP
- executor: Timeout boundary around plugin calls
- orchestration: The fixed-interval scheduler and signal handling
- cli: Command-line interface

Usage:
    From command line:
        metricagent --config conf/agent.toml

    Programmatically:
        from metricagent import ConfigStore, Scheduler
        scheduler = Scheduler(ConfigStore(path), test_mode=True)
        scheduler.run(max_ticks=1)
"""

from .config import ConfigStore
from .orchestration import Scheduler
from .cli import main_cli

from .models import (
    AgentConfig,
    Endpoint,
    MetricBatch,
    ModuleConfig,
    PluginDescriptor,
    ReplaceRule,
    Sample,
)

from .plugins import MetricPlugin

from .validation import (
    ConfigError,
    MetricAgentError,
    PluginInitError,
    PluginSampleError,
    TransmissionError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "ConfigStore",
    "Scheduler",
    "main_cli",
    "MetricPlugin",
    # Models
    "AgentConfig",
    "Endpoint",
    "MetricBatch",
    "ModuleConfig",
    "PluginDescriptor",
    "ReplaceRule",
    "Sample",
    # Errors
    "ConfigError",
    "MetricAgentError",
    "PluginInitError",
    "PluginSampleError",
    "TransmissionError",
    "ValidationError",
]

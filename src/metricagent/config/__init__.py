"""
Configuration management for the metricagent package.

This module provides loading, validation and hot-reload detection for the
agent's TOML configuration file.
"""

from .loader import check_modified, get_modification_time, load_toml_file
from .store import ConfigStore, load
from .validators import (
    validate_agent_config,
    validate_metric_replace,
    validate_module_config,
    validate_module_configs,
)

__all__ = [
    # Main interface
    "ConfigStore",
    "load",
    "check_modified",
    # Advanced interface
    "get_modification_time",
    "load_toml_file",
    "validate_agent_config",
    "validate_metric_replace",
    "validate_module_config",
    "validate_module_configs",
]

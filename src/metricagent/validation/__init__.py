"""
Validation and error handling for the metricagent package.

This module provides configuration field validation and the error taxonomy
used to report failures without interrupting the collection cadence.
"""

from .exceptions import (
    ConfigError,
    ErrorSeverity,
    MetricAgentError,
    PluginInitError,
    PluginSampleError,
    TransmissionError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_plugin_error,
)

from .validators import (
    validate_bool,
    validate_non_empty_string,
    validate_port,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorSeverity",
    "MetricAgentError",
    "PluginInitError",
    "PluginSampleError",
    "TransmissionError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_plugin_error",
    # Validators
    "validate_bool",
    "validate_non_empty_string",
    "validate_port",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
]

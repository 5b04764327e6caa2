"""
Configuration validation utilities.

This module turns the raw TOML document into a typed `AgentConfig`. All
decoding happens here, once per load, so malformed values are reported
immediately instead of being discovered while plugins are configured.
"""

import logging
import socket
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.config import AgentConfig, ModuleConfig, ReplaceRule
from ..validation import (
    ValidationError,
    validate_bool,
    validate_non_empty_string,
    validate_port,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "MetricSendIntervalSeconds",
    "CarbonServer",
    "CarbonServerPort",
    "SendUsingUDP",
    "ShowOutput",
)

# Section attributes decoded into ModuleConfig fields; the rest are settings.
MODULE_ATTRIBUTES = ("Enabled", "CustomPrefix", "CustomNodeHostName")

DEFAULT_METRIC_PATH = "metricagent"


def validate_agent_config(data: Dict[str, Any]) -> AgentConfig:
    """
    Validate and create an AgentConfig from raw configuration data.

    Args:
        data: Parsed TOML document

    Returns:
        Validated AgentConfig instance

    Raises:
        ValidationError: If a required field is missing or any field is invalid
    """
    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        raise ValidationError(
            f"Missing required configuration field(s): {', '.join(missing)}",
            field_name=missing[0],
        )

    interval = validate_positive_integer(
        data["MetricSendIntervalSeconds"],
        min_value=1,
        max_value=86400,
        field_name="MetricSendIntervalSeconds",
    )
    carbon_server = validate_non_empty_string(
        data["CarbonServer"], field_name="CarbonServer"
    )
    carbon_port = validate_port(data["CarbonServerPort"], field_name="CarbonServerPort")
    send_using_udp = validate_bool(data["SendUsingUDP"], field_name="SendUsingUDP")
    show_output = validate_bool(data["ShowOutput"], field_name="ShowOutput")

    metric_path = _optional_string(data, "MetricPath") or DEFAULT_METRIC_PATH
    node_host_name = _optional_string(data, "NodeHostName") or socket.gethostname()

    filters = None
    raw_filters = data.get("Filters", "")
    if raw_filters:
        filters = validate_regex_pattern(raw_filters, field_name="Filters")

    plugin_timeout = validate_positive_float(
        data.get("PluginTimeoutSeconds", 10.0),
        min_value=0.01,
        max_value=3600.0,
        field_name="PluginTimeoutSeconds",
    )
    transmit_timeout = validate_positive_float(
        data.get("TransmitTimeoutSeconds", 5.0),
        min_value=0.01,
        max_value=3600.0,
        field_name="TransmitTimeoutSeconds",
    )

    return AgentConfig(
        metric_send_interval_seconds=interval,
        carbon_server=carbon_server,
        carbon_server_port=carbon_port,
        send_using_udp=send_using_udp,
        show_output=show_output,
        metric_path=metric_path,
        node_host_name=node_host_name,
        filters=filters,
        metric_replace=validate_metric_replace(data.get("MetricReplace", [])),
        module_configs=validate_module_configs(data.get("ModulesConfigs", {})),
        plugin_timeout_seconds=plugin_timeout,
        transmit_timeout_seconds=transmit_timeout,
    )


def validate_metric_replace(rules_data: Any) -> Tuple[ReplaceRule, ...]:
    """
    Validate the ordered `[[MetricReplace]]` list.

    Each entry needs a `Find` regex and a `ReplaceWith` string (which may be
    empty). Order is preserved because the rules are applied sequentially.
    """
    if not isinstance(rules_data, list):
        raise ValidationError(
            "MetricReplace must be a list of {Find, ReplaceWith} tables",
            field_name="MetricReplace",
            value=rules_data,
        )

    rules: List[ReplaceRule] = []
    for i, rule in enumerate(rules_data):
        field_prefix = f"MetricReplace[{i}]"
        if not isinstance(rule, dict):
            raise ValidationError(
                f"{field_prefix} must be a table", field_name=field_prefix, value=rule
            )
        if "Find" not in rule:
            raise ValidationError(
                f"{field_prefix} is missing 'Find'", field_name=f"{field_prefix}.Find"
            )
        find = rule["Find"]
        validate_regex_pattern(find, field_name=f"{field_prefix}.Find")

        replace_with = rule.get("ReplaceWith", "")
        if not isinstance(replace_with, str):
            raise ValidationError(
                f"{field_prefix}.ReplaceWith must be a string",
                field_name=f"{field_prefix}.ReplaceWith",
                value=replace_with,
            )
        rules.append(ReplaceRule(find=find, replace_with=replace_with))

    return tuple(rules)


def validate_module_configs(modules_data: Any) -> Dict[str, ModuleConfig]:
    """Validate every `[ModulesConfigs.<name>]` section."""
    if not isinstance(modules_data, dict):
        raise ValidationError(
            "ModulesConfigs must be a table of plugin sections",
            field_name="ModulesConfigs",
            value=modules_data,
        )
    return {
        name: validate_module_config(name, section)
        for name, section in modules_data.items()
    }


def validate_module_config(name: str, section: Any) -> ModuleConfig:
    """
    Decode one plugin section into a ModuleConfig.

    `Enabled` accepts a TOML boolean or a string; a string enables the plugin
    only when it reads "true" in any case. Any other type is rejected here.
    """
    field_prefix = f"ModulesConfigs.{name}"
    if not isinstance(section, dict):
        raise ValidationError(
            f"{field_prefix} must be a table", field_name=field_prefix, value=section
        )

    enabled: Optional[bool] = None
    if "Enabled" in section:
        raw_enabled = section["Enabled"]
        if isinstance(raw_enabled, bool):
            enabled = raw_enabled
        elif isinstance(raw_enabled, str):
            enabled = raw_enabled.strip().lower() == "true"
        else:
            raise ValidationError(
                f"{field_prefix}.Enabled must be a boolean or string, got {raw_enabled!r}",
                field_name=f"{field_prefix}.Enabled",
                value=raw_enabled,
            )

    settings = {
        key: value for key, value in section.items() if key not in MODULE_ATTRIBUTES
    }

    return ModuleConfig(
        name=name,
        enabled=enabled,
        custom_prefix=_optional_string(section, "CustomPrefix", field_prefix),
        custom_node_host_name=_optional_string(section, "CustomNodeHostName", field_prefix),
        settings=settings,
    )


def _optional_string(data: Mapping[str, Any], key: str, field_prefix: str = "") -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    field_name = f"{field_prefix}.{key}" if field_prefix else key
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string, got {value!r}",
            field_name=field_name,
            value=value,
        )
    return value

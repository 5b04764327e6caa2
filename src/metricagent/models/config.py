"""
Configuration data models.

This module contains the typed, immutable configuration structures decoded
from the agent's TOML file. A new `AgentConfig` is built on every reload and
swapped in whole; instances are never mutated.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Pattern, Tuple


@dataclass(frozen=True)
class ReplaceRule:
    """
    One ordered find/replace rule from `[[MetricReplace]]`.
    """

    # Regular expression searched for in the metric path.
    find: str
    # Replacement text (may use regex group references).
    replace_with: str


@dataclass(frozen=True)
class ModuleConfig:
    """
    A plugin's configuration section from `[ModulesConfigs.<name>]`.

    The three well-known attributes are decoded up front; everything else in
    the section is passed through untouched in `settings` for the plugin.
    """

    name: str
    # None when the section has no `Enabled` key at all.
    enabled: Optional[bool] = None
    custom_prefix: Optional[str] = None
    custom_node_host_name: Optional[str] = None
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Endpoint:
    """Where batches are delivered."""

    host: str
    port: int
    use_udp: bool


@dataclass(frozen=True)
class AgentConfig:
    """
    The root configuration object for one configuration epoch.
    """

    # Required scalar settings
    metric_send_interval_seconds: int
    carbon_server: str
    carbon_server_port: int
    send_using_udp: bool
    show_output: bool

    # Metric naming
    metric_path: str = "metricagent"
    node_host_name: str = ""
    filters: Optional[Pattern[str]] = None
    metric_replace: Tuple[ReplaceRule, ...] = ()

    # Per-plugin sections keyed by section name
    module_configs: Dict[str, ModuleConfig] = field(default_factory=dict)

    # Call boundaries around plugins and the transport
    plugin_timeout_seconds: float = 10.0
    transmit_timeout_seconds: float = 5.0

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(
            host=self.carbon_server,
            port=self.carbon_server_port,
            use_udp=self.send_using_udp,
        )

    @property
    def interval_ms(self) -> int:
        return self.metric_send_interval_seconds * 1000

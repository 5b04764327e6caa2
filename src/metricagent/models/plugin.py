"""
Plugin lifecycle data model.
"""

from dataclasses import dataclass
from typing import Optional

from .config import ModuleConfig


@dataclass(frozen=True)
class PluginDescriptor:
    """
    Identity and effective configuration of one loaded plugin.

    Produced by the plugin's `init()` with only the names set and
    `enabled=False`; every reconfiguration yields a new descriptor.
    """

    # Unique within a run (e.g. "system").
    plugin_name: str
    # Key into `AgentConfig.module_configs`.
    config_section_name: str
    enabled: bool = False
    # Effective prefix prepended to every metric path.
    metric_path: str = ""
    # Effective host label used during path sanitization.
    node_host_name: str = ""
    # The matched section, handed to the plugin for its own settings.
    config: Optional[ModuleConfig] = None

"""
Applies the active configuration to a plugin descriptor.
"""

import dataclasses
import logging

from ..models.config import AgentConfig
from ..models.plugin import PluginDescriptor

logger = logging.getLogger(__name__)


def apply_plugin_config(config: AgentConfig, descriptor: PluginDescriptor) -> PluginDescriptor:
    """
    Derive a plugin's enabled state and effective naming from `config`.

    A plugin is enabled only when its section exists and carries an
    `Enabled` value of true. Otherwise it is disabled and its other fields
    are left as they were. An enabled plugin starts from the global
    `metric_path`/`node_host_name`, overridden by the section's
    `CustomPrefix`/`CustomNodeHostName` when present.

    Pure: depends only on `config` and `descriptor.config_section_name`, and
    returns a new descriptor without touching the one passed in.

    Args:
        config: Active agent configuration
        descriptor: The plugin's current descriptor

    Returns:
        The updated descriptor
    """
    section = config.module_configs.get(descriptor.config_section_name)

    if section is None:
        logger.debug(
            f"No configuration section '{descriptor.config_section_name}' "
            f"for plugin '{descriptor.plugin_name}', disabling"
        )
        return dataclasses.replace(descriptor, enabled=False)

    if not section.enabled:
        # Covers both a missing Enabled attribute (None) and an explicit false.
        logger.debug(f"Plugin '{descriptor.plugin_name}' is not enabled in configuration")
        return dataclasses.replace(descriptor, enabled=False)

    metric_path = config.metric_path
    node_host_name = config.node_host_name
    if section.custom_prefix is not None:
        metric_path = section.custom_prefix
    if section.custom_node_host_name is not None:
        node_host_name = section.custom_node_host_name

    return dataclasses.replace(
        descriptor,
        enabled=True,
        metric_path=metric_path,
        node_host_name=node_host_name,
        config=section,
    )

"""
Defines the abstract interface every metric source implements.

This module provides:
- MetricPlugin: An abstract base class (ABC) with the fixed lifecycle
  `init()` -> `configure(config)` -> `get_metrics()`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional

from ..models.config import AgentConfig
from ..models.metrics import Sample
from ..models.plugin import PluginDescriptor
from .configurer import apply_plugin_config

logger = logging.getLogger(__name__)


class MetricPlugin(ABC):
    """
    Abstract base class for metric sources.

    Subclasses set `plugin_name` and `config_section_name` and implement
    `get_metrics`. A plugin instance lives for one configuration epoch;
    on reload the registry builds new instances instead of reusing old ones.

    Attributes:
        plugin_name: Unique name of the plugin within a run.
        config_section_name: Key of the plugin's `[ModulesConfigs.<name>]` section.
        descriptor: Current descriptor; None until `init()` has run.
    """

    plugin_name: str = ""
    config_section_name: str = ""

    def __init__(self) -> None:
        self.descriptor: Optional[PluginDescriptor] = None

    def init(self) -> PluginDescriptor:
        """
        Create the plugin's initial descriptor.

        The plugin starts disabled; `configure` decides whether it runs.

        Raises:
            ValueError: If the subclass did not declare its names
        """
        if not self.plugin_name:
            raise ValueError(f"{self.__class__.__name__} does not define plugin_name")
        self.descriptor = PluginDescriptor(
            plugin_name=self.plugin_name,
            config_section_name=self.config_section_name or self.plugin_name,
        )
        logger.debug(f"Initialized plugin '{self.plugin_name}' ({self.__class__.__name__})")
        return self.descriptor

    def configure(self, config: AgentConfig) -> PluginDescriptor:
        """Apply `config` to this plugin and return its new descriptor."""
        if self.descriptor is None:
            raise RuntimeError(f"Plugin '{self.plugin_name}' configured before init()")
        self.descriptor = apply_plugin_config(config, self.descriptor)
        return self.descriptor

    @property
    def enabled(self) -> bool:
        return self.descriptor is not None and self.descriptor.enabled

    @property
    def settings(self) -> Mapping[str, Any]:
        """Plugin-specific entries of the matched configuration section."""
        if self.descriptor is None or self.descriptor.config is None:
            return {}
        return self.descriptor.config.settings

    @abstractmethod
    def get_metrics(self) -> List[Sample]:
        """
        Collect one round of samples.

        Called once per tick, only while the plugin is enabled. Must return
        promptly; the pipeline abandons calls that exceed the plugin timeout.

        Returns:
            Samples with plugin-local paths, possibly empty.
        """
        pass

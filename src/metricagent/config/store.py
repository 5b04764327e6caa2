"""
Configuration store with hot-reload support.

`ConfigStore` owns the path to the agent's configuration file, remembers the
modification time of the last load, and produces a fresh `AgentConfig` when
the file changes on disk. A broken edit never replaces a working config.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AgentConfig
from ..validation import ConfigError, ErrorSeverity, handle_config_error
from .loader import check_modified, get_modification_time, load_toml_file
from .validators import validate_agent_config

logger = logging.getLogger(__name__)


def load(config_path: Path) -> AgentConfig:
    """
    Load and validate the agent configuration.

    Args:
        config_path: Path to the TOML configuration file

    Returns:
        Fully validated AgentConfig instance

    Raises:
        ConfigError: If the file is missing, malformed or invalid
    """
    data = load_toml_file(Path(config_path), "agent configuration file")
    config = validate_agent_config(data)
    logger.info(
        f"Loaded configuration: interval={config.metric_send_interval_seconds}s, "
        f"endpoint={config.carbon_server}:{config.carbon_server_port} "
        f"({'udp' if config.send_using_udp else 'tcp'}), "
        f"{len(config.module_configs)} plugin section(s)"
    )
    return config


class ConfigStore:
    """
    Tracks the active configuration and its file's modification time.
    """

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)
        self.config: Optional[AgentConfig] = None
        self.last_modified: Optional[int] = None

    def load_initial(self) -> AgentConfig:
        """
        Perform the startup load.

        Raises:
            ConfigError: Propagated; there is no usable default configuration
        """
        self.last_modified = get_modification_time(self.config_path)
        self.config = load(self.config_path)
        return self.config

    def is_modified(self) -> bool:
        return check_modified(self.config_path, self.last_modified)

    def reload_if_modified(self) -> Optional[AgentConfig]:
        """
        Reload the configuration when the file changed on disk.

        Returns:
            The new AgentConfig, or None when nothing changed or the new file
            was rejected (the previous configuration stays active).
        """
        if not self.is_modified():
            return None

        # Record the new mtime first so a bad edit is reported once, not every tick.
        self.last_modified = get_modification_time(self.config_path)
        logger.info(f"Configuration file changed, reloading: {self.config_path}")

        try:
            new_config = load(self.config_path)
        except ConfigError as e:
            handle_config_error(
                error=e,
                context="hot reload (keeping previous configuration)",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
            return None

        self.config = new_config
        return new_config

"""
Configuration file loading utilities.

This module handles the low-level reading and parsing of the agent's TOML
configuration file and the cheap modification check used for hot reload.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from ..validation import ConfigError, ErrorSeverity, handle_config_error

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        ConfigError: If the file doesn't exist, can't be read or is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise ConfigError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        error = ConfigError(f"Malformed {description} {file_path}: {e}")
        handle_config_error(
            error=error,
            context=f"parsing {description}",
            severity=ErrorSeverity.ERROR,
            reraise=False,
            logger=logger
        )
        raise error from e
    except OSError as e:
        raise ConfigError(f"Cannot read {description} {file_path}: {e}") from e


def get_modification_time(file_path: Path) -> Optional[int]:
    """
    Return the file's modification time in nanoseconds, or None if it is gone.
    """
    try:
        return os.stat(file_path).st_mtime_ns
    except FileNotFoundError:
        return None


def check_modified(file_path: Path, last_known_mtime: Optional[int]) -> bool:
    """
    Report whether the file changed since `last_known_mtime`.

    A single `stat` call; never reads the file. A file that has disappeared
    counts as modified so that the reload path reports it.

    Args:
        file_path: Path to the configuration file
        last_known_mtime: Value previously returned by `get_modification_time`

    Returns:
        True if the modification time differs from the last known one
    """
    return get_modification_time(file_path) != last_known_mtime

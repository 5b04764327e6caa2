"""
Command-line interface for the metricagent package.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]

"""
Metric path sanitization.

Raw sample paths may look like Windows performance counter paths
(``\\\\HOST\\Processor(_Total)\\% Processor Time``) or contain spaces and
brackets. This module rewrites them into dotted Carbon-safe paths.
"""

import re
import socket
from typing import Iterable, Optional

from ..models.config import ReplaceRule

# (pattern, replacement) pairs applied after the host label and user rules.
_STANDARD_REPLACEMENTS = [
    (re.compile(r"^\\+"), ""),
    (re.compile(r"[\\/]"), "."),
    (re.compile(r"\("), "."),
    (re.compile(r"[)\[\]%]"), ""),
    (re.compile(r"\s+"), "_"),
    (re.compile(r"\.{2,}"), "."),
]


def replace_host_label(path: str, local_host_name: str, node_host_name: str) -> str:
    """
    Replace the local machine name with the configured host label.

    A leading ``\\\\host\\`` counter prefix becomes ``<label>.``; elsewhere
    the name is replaced only where it forms a whole path segment.
    """
    if not local_host_name or not node_host_name:
        return path
    escaped = re.escape(local_host_name)
    path = re.sub(
        rf"^\\\\{escaped}\\", lambda _: f"{node_host_name}.", path, flags=re.IGNORECASE
    )
    return re.sub(
        rf"(?<![^.\\/]){escaped}(?![^.\\/])",
        lambda _: node_host_name,
        path,
        flags=re.IGNORECASE,
    )


def apply_replace_rules(path: str, rules: Iterable[ReplaceRule]) -> str:
    """Apply user find/replace rules in order, each as a regex substitution."""
    for rule in rules:
        path = re.sub(rule.find, rule.replace_with, path)
    return path


def sanitize_metric_path(
    path: str,
    node_host_name: str,
    replacements: Iterable[ReplaceRule] = (),
    local_host_name: Optional[str] = None,
) -> str:
    """
    Turn a raw sample path into a dotted, Carbon-safe metric path.

    Args:
        path: Raw plugin-local path
        node_host_name: Label substituted for the local machine name
        replacements: Ordered user rules from `MetricReplace`
        local_host_name: Name of this machine, defaults to `socket.gethostname()`

    Returns:
        Sanitized path with no whitespace, slashes or brackets
    """
    if local_host_name is None:
        local_host_name = socket.gethostname()

    path = replace_host_label(path, local_host_name, node_host_name)
    path = apply_replace_rules(path, replacements)

    for pattern, replacement in _STANDARD_REPLACEMENTS:
        path = pattern.sub(replacement, path)

    return path.strip(".")

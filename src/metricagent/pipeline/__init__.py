"""
Sample processing: filtering, path sanitization and batching.
"""

from .pipeline import MetricPipeline
from .sanitizer import apply_replace_rules, replace_host_label, sanitize_metric_path

__all__ = [
    "MetricPipeline",
    "apply_replace_rules",
    "replace_host_label",
    "sanitize_metric_path",
]

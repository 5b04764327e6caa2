"""
Sample and batch models.

This module defines the raw `Sample` a plugin emits for one tick and the
`MetricBatch` the pipeline folds those samples into.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Sample:
    """
    A raw, plugin-local measurement.

    Attributes:
        path: Metric name as the plugin knows it (e.g. "cpu.pct").
        value: Numeric reading.
    """

    path: str
    value: Number


@dataclass
class MetricBatch:
    """
    Final metric paths mapped to values for a single tick.

    Keys are unique; writing an existing path overwrites its value while
    keeping its original position. All entries share `timestamp`.
    """

    timestamp: int
    metrics: Dict[str, Number] = field(default_factory=dict)

    def add(self, path: str, value: Number) -> None:
        self.metrics[path] = value

    def items(self) -> Iterator[Tuple[str, Number]]:
        return iter(self.metrics.items())

    def __len__(self) -> int:
        return len(self.metrics)

    def __contains__(self, path: object) -> bool:
        return path in self.metrics

    def __getitem__(self, path: str) -> Number:
        return self.metrics[path]

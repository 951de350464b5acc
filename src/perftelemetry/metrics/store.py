"""Keyed table of in-flight and completed timing records."""

import logging
from typing import Dict, Iterator, List, Optional

from .models import Metric

logger = logging.getLogger(__name__)


class MetricStore:
    """Holds one ``Metric`` per key.

    Entries are only ever removed by ``clear()``.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}

    def put(self, metric: Metric) -> None:
        """Insert or overwrite the entry stored under ``metric.name``."""
        self._metrics[metric.name] = metric

    def get(self, name: str) -> Optional[Metric]:
        return self._metrics.get(name)

    def values(self) -> List[Metric]:
        """Snapshot of all metrics in insertion order."""
        return list(self._metrics.values())

    def in_flight(self) -> List[Metric]:
        return [m for m in self._metrics.values() if not m.completed]

    def clear(self) -> None:
        count = len(self._metrics)
        self._metrics.clear()
        logger.debug(f"Cleared {count} metrics")

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def __iter__(self) -> Iterator[Metric]:
        return iter(self.values())

"""Derived per-category views over the metric store."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .models import Metric
from .store import MetricStore

logger = logging.getLogger(__name__)

# Summary section -> metric type
SUMMARY_CATEGORIES = {
    "components": "component",
    "images": "image",
    "bundles": "bundle",
}


@dataclass
class CustomMetrics:
    """Average durations (ms) of application-level operations; 0 when none."""

    bundleLoadTime: float = 0.0
    componentLoadTime: float = 0.0
    imageLoadTime: float = 0.0
    apiResponseTime: float = 0.0
    routeChangeTime: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def average_duration(metrics: List[Metric]) -> float:
    """Mean duration over metrics that have one; 0 when none do."""
    durations = [m.duration for m in metrics if m.duration is not None]
    if not durations:
        return 0.0
    return float(np.mean(durations))


def slowest_metric(metrics: List[Metric]) -> Optional[Metric]:
    timed = [m for m in metrics if m.duration is not None]
    if not timed:
        return None
    return timed[int(np.argmax([m.duration for m in timed]))]


class SummaryAggregator:
    """Reads the store and derives counts, averages and slow-metric views.

    Every method is a pure read.
    """

    def __init__(self, store: MetricStore):
        self.store = store

    def get_metrics(self) -> List[Metric]:
        return self.store.values()

    def get_metrics_by_type(self, metric_type: str) -> List[Metric]:
        """Metrics tagged ``metric_type`` or keyed ``"<metric_type>_..."``."""
        prefix = f"{metric_type}_"
        return [
            m for m in self.store.values()
            if m.type == metric_type or m.name.startswith(prefix)
        ]

    def get_summary(self) -> Dict[str, Any]:
        """Per-category count, average load time and slowest entry.

        Returns:
            Dictionary with ``total``, one section per category
            (``components``, ``images``, ``bundles``) and ``navigation``
            (the page navigation metric, or None).
        """
        summary: Dict[str, Any] = {"total": len(self.store)}
        for section, metric_type in SUMMARY_CATEGORIES.items():
            group = self.get_metrics_by_type(metric_type)
            summary[section] = {
                "count": len(group),
                "averageLoadTime": average_duration(group),
                "slowest": slowest_metric(group),
            }
        summary["navigation"] = self.store.get("navigation")
        return summary

    def get_slow_metrics(self, threshold: float) -> List[Metric]:
        """All metrics whose duration is strictly greater than ``threshold`` ms."""
        return [
            m for m in self.store.values()
            if m.duration is not None and m.duration > threshold
        ]

    def average_for_type(self, metric_type: str) -> float:
        """Average duration over metrics whose metadata type is exactly ``metric_type``."""
        return average_duration([m for m in self.store.values() if m.type == metric_type])

    def get_custom_metrics(self) -> CustomMetrics:
        """Category averages from the summary plus API and route-change averages."""
        summary = self.get_summary()
        return CustomMetrics(
            bundleLoadTime=summary["bundles"]["averageLoadTime"],
            componentLoadTime=summary["components"]["averageLoadTime"],
            imageLoadTime=summary["images"]["averageLoadTime"],
            apiResponseTime=self.average_for_type("api"),
            routeChangeTime=self.average_for_type("navigation"),
        )

    def get_metrics_df(self) -> pd.DataFrame:
        """Get all metrics as a pandas DataFrame, one row per metric."""
        metrics = self.store.values()
        if not metrics:
            return pd.DataFrame(columns=["name", "type", "start_time", "end_time", "duration", "success"])

        rows = []
        for metric in metrics:
            metadata = metric.metadata
            rows.append({
                "name": metric.name,
                "type": metric.type,
                "start_time": metric.start_time,
                "end_time": metric.end_time,
                "duration": metric.duration,
                "success": metadata.success if metadata is not None else None,
            })

        return pd.DataFrame(rows)


def summary_to_dict(summary: Dict[str, Any]) -> Dict[str, Any]:
    """Make a ``get_summary()`` result JSON-serializable."""
    result: Dict[str, Any] = {"total": summary.get("total", 0)}
    for section in SUMMARY_CATEGORIES:
        stats = summary[section]
        slowest = stats.get("slowest")
        result[section] = {
            "count": stats["count"],
            "averageLoadTime": stats["averageLoadTime"],
        }
        if slowest is not None:
            result[section]["slowest"] = slowest.to_dict()
    navigation = summary.get("navigation")
    if navigation is not None:
        result["navigation"] = navigation.to_dict()
    return result

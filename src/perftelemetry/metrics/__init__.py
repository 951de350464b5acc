"""Timing metric collection and aggregation module."""

from .aggregator import CustomMetrics, SummaryAggregator, average_duration, summary_to_dict
from .models import (
    ApiMetric,
    BundleMetric,
    ComponentMetric,
    ImageMetric,
    Metric,
    MetricMetadata,
    NavigationMetric,
    PageLoadMetric,
    ResourceMetric,
    build_metadata,
)
from .recorder import TimingRecorder
from .store import MetricStore
from .vitals import VitalsCollector, WebVitals

__all__ = [
    "ApiMetric",
    "BundleMetric",
    "ComponentMetric",
    "CustomMetrics",
    "ImageMetric",
    "Metric",
    "MetricMetadata",
    "MetricStore",
    "NavigationMetric",
    "PageLoadMetric",
    "ResourceMetric",
    "SummaryAggregator",
    "TimingRecorder",
    "VitalsCollector",
    "WebVitals",
    "average_duration",
    "build_metadata",
    "summary_to_dict",
]

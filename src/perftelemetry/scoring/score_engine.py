"""Health score, letter grade and recommendations."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors.error_log import RECENT_ERROR_WINDOW_MS, ErrorLog
from ..metrics.aggregator import CustomMetrics, SummaryAggregator
from ..metrics.vitals import VitalsCollector, WebVitals

logger = logging.getLogger(__name__)

# (vital, threshold, deduction)
VITAL_DEDUCTIONS = (
    ("FCP", 3000, 20),
    ("LCP", 4000, 25),
    ("FID", 300, 20),
    ("CLS", 0.25, 15),
    ("TTFB", 800, 10),
)

# (custom metric, threshold ms, deduction)
CUSTOM_METRIC_DEDUCTIONS = (
    ("bundleLoadTime", 1000, 10),
    ("componentLoadTime", 500, 5),
    ("imageLoadTime", 1000, 5),
    ("apiResponseTime", 1000, 10),
)

ERROR_DEDUCTION = 5
MAX_ERROR_DEDUCTION = 20

GRADE_BOUNDARIES = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

VITAL_RECOMMENDATIONS = {
    "FCP": "Optimize First Contentful Paint by reducing server response time and eliminating render-blocking resources",
    "LCP": "Improve Largest Contentful Paint by optimizing images and critical resource loading",
    "FID": "Reduce First Input Delay by minimizing main-thread work during startup",
    "CLS": "Minimize Cumulative Layout Shift by reserving space for images and late-inserted content",
}

CUSTOM_METRIC_RECOMMENDATIONS = {
    "bundleLoadTime": "Optimize bundle loading with code splitting and lazy loading",
    "componentLoadTime": "Optimize component rendering by memoizing expensive work",
    "imageLoadTime": "Optimize images with modern formats, compression and responsive sizing",
    "apiResponseTime": "Optimize API performance with caching, pagination and request batching",
}


@dataclass
class Deduction:
    """One applied score deduction."""

    source: str
    value: float
    threshold: float
    points: int

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "value": self.value, "threshold": self.threshold, "points": self.points}


def grade_for_score(score: float) -> str:
    for boundary, grade in GRADE_BOUNDARIES:
        if score >= boundary:
            return grade
    return "F"


class ScoreEngine:
    """Converts vitals, custom metrics and recent errors into a 0-100 score.

    Deductions are independent and additive; the total is clamped to
    ``[0, 100]``.
    """

    def __init__(
        self,
        vitals: VitalsCollector,
        aggregator: SummaryAggregator,
        error_log: ErrorLog,
        thresholds: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the score engine.

        Args:
            vitals: Web vitals holder
            aggregator: Summary views over the metric store
            error_log: Captured host application errors
            thresholds: Threshold configuration containing:
                - slow_resource_ms: Health status slow threshold (default 500)
                - recommendation_ms: Recommendation slow threshold (default 1000)
        """
        self.vitals = vitals
        self.aggregator = aggregator
        self.error_log = error_log
        self.thresholds = thresholds or {}

    def get_score_breakdown(self) -> List[Deduction]:
        vitals = self.vitals.get_web_vitals()
        custom = self.aggregator.get_custom_metrics()
        deductions: List[Deduction] = []

        for name, threshold, points in VITAL_DEDUCTIONS:
            value = getattr(vitals, name)
            if value is not None and value > threshold:
                deductions.append(Deduction(name, value, threshold, points))

        for name, threshold, points in CUSTOM_METRIC_DEDUCTIONS:
            value = getattr(custom, name)
            if value > threshold:
                deductions.append(Deduction(name, value, threshold, points))

        recent_errors = len(self.error_log.recent(RECENT_ERROR_WINDOW_MS))
        if recent_errors:
            points = min(recent_errors * ERROR_DEDUCTION, MAX_ERROR_DEDUCTION)
            deductions.append(Deduction("errors", recent_errors, 0, points))

        return deductions

    def get_performance_score(self) -> float:
        score = 100 - sum(d.points for d in self.get_score_breakdown())
        return max(0, min(100, score))

    def get_performance_grade(self) -> str:
        return grade_for_score(self.get_performance_score())

    def get_recommendations(self) -> List[str]:
        vitals: WebVitals = self.vitals.get_web_vitals()
        custom: CustomMetrics = self.aggregator.get_custom_metrics()
        recommendations: List[str] = []

        for name, threshold, _ in VITAL_DEDUCTIONS:
            value = getattr(vitals, name)
            if name in VITAL_RECOMMENDATIONS and value is not None and value > threshold:
                recommendations.append(VITAL_RECOMMENDATIONS[name])

        for name, threshold, _ in CUSTOM_METRIC_DEDUCTIONS:
            if getattr(custom, name) > threshold:
                recommendations.append(CUSTOM_METRIC_RECOMMENDATIONS[name])

        slow = self.aggregator.get_slow_metrics(self.thresholds.get("recommendation_ms", 1000))
        if slow:
            recommendations.append(f"Address {len(slow)} slow-loading resources identified in the performance dashboard")

        return recommendations

    def get_health_status(self) -> str:
        """``good``, ``warning`` or ``poor`` from the number of slow metrics."""
        slow = self.aggregator.get_slow_metrics(self.thresholds.get("slow_resource_ms", 500))
        if len(slow) > 3:
            return "poor"
        if slow:
            return "warning"
        return "good"

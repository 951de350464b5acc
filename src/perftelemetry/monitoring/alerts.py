"""Local slow-metric alerting."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

import simpy

from ..core.environment import TelemetryEnvironment
from ..metrics.aggregator import SummaryAggregator

logger = logging.getLogger(__name__)


@dataclass
class PerformanceAlert:
    """A slow metric worth surfacing. ``timestamp`` is monotonic ms."""

    id: str
    severity: str  # "warning" or "error"
    message: str
    timestamp: float
    metric_name: str
    metric_type: Optional[str] = None
    duration: Optional[float] = None


class PerformanceAlertMonitor:
    """Periodically turns recently finished slow metrics into alerts."""

    def __init__(
        self,
        aggregator: SummaryAggregator,
        environment: TelemetryEnvironment,
        config: Optional[Dict[str, Any]] = None,
        threshold_ms: float = 1000,
        production: bool = False,
    ):
        """Initialize the alert monitor.

        Args:
            aggregator: Summary views over the metric store
            environment: Telemetry clock and scheduler
            config: Alert configuration containing:
                - show_in_production (optional): Alert in production too (default False)
                - max_alerts (optional): Alerts kept at once (default 5)
                - recent_window_ms (optional): Age limit for metrics and alerts (default 10000)
            threshold_ms: Durations above this raise a warning, above twice this an error
            production: Whether the host runs in production
        """
        self.aggregator = aggregator
        self.environment = environment
        self.config = config or {}
        self.threshold_ms = threshold_ms

        self.enabled = not production or self.config.get("show_in_production", False)
        self.max_alerts: int = self.config.get("max_alerts", 5)
        self.recent_window_ms: float = self.config.get("recent_window_ms", 10000)

        self._alerts: List[PerformanceAlert] = []
        self._seen: Set[str] = set()

    def check(self) -> List[PerformanceAlert]:
        """Raise alerts for new slow metrics; returns the ones just raised."""
        if not self.enabled:
            return []

        now = self.environment.now()
        self.expire(now)

        new_alerts: List[PerformanceAlert] = []
        for metric in self.aggregator.get_slow_metrics(self.threshold_ms):
            if metric.end_time is None or now - metric.end_time >= self.recent_window_ms:
                continue
            alert_id = f"{metric.name}_{metric.end_time}"
            if alert_id in self._seen:
                continue
            self._seen.add(alert_id)

            severity = "error" if metric.duration > self.threshold_ms * 2 else "warning"
            alert = PerformanceAlert(
                id=alert_id,
                severity=severity,
                message=f"Slow loading: {metric.name} ({metric.duration:.0f}ms)",
                timestamp=now,
                metric_name=metric.name,
                metric_type=metric.type,
                duration=metric.duration,
            )
            new_alerts.append(alert)
            logger.warning(f"Performance alert [{severity}]: {alert.message}")

        if new_alerts:
            self._alerts = (self._alerts + new_alerts)[-self.max_alerts:]
        return new_alerts

    def expire(self, now: Optional[float] = None) -> None:
        now = self.environment.now() if now is None else now
        self._alerts = [a for a in self._alerts if now - a.timestamp < self.recent_window_ms]

    def dismiss(self, alert_id: str) -> None:
        self._alerts = [a for a in self._alerts if a.id != alert_id]

    @property
    def alerts(self) -> List[PerformanceAlert]:
        self.expire()
        return list(self._alerts)

    def schedule(self, interval_ms: float) -> Optional[simpy.Process]:
        if not self.enabled:
            logger.debug("Performance alerts disabled in production")
            return None
        return self.environment.every(interval_ms, self.check, name="alert_check")

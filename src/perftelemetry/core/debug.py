"""Development-only inspection surface."""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..metrics import Metric, MetricStore, SummaryAggregator, TimingRecorder
    from ..orchestration import TelemetryContext

logger = logging.getLogger(__name__)


class DebugConsole:
    """Manual inspection helpers over a live telemetry context."""

    def __init__(self, context: "TelemetryContext"):
        self.context = context

    @property
    def store(self) -> "MetricStore":
        return self.context.store

    @property
    def recorder(self) -> "TimingRecorder":
        return self.context.recorder

    @property
    def metrics(self) -> "SummaryAggregator":
        return self.context.aggregator

    def get_health(self) -> Dict[str, Any]:
        ctx = self.context
        memory = ctx.memory_watch.latest
        return {
            "score": ctx.score_engine.get_performance_score(),
            "grade": ctx.score_engine.get_performance_grade(),
            "status": ctx.score_engine.get_health_status(),
            "webVitals": ctx.vitals.get_web_vitals().to_dict(),
            "metricCount": len(ctx.store),
            "errorCount": len(ctx.error_log),
            "alerts": len(ctx.alert_monitor.alerts),
            "rssMb": memory.rss_mb if memory is not None else None,
            "reportsSent": ctx.transport.sent_count,
            "reportsFailed": ctx.transport.failed_count,
        }

    def export_data(self) -> str:
        return self.context.report_generator.export_data()

    def clear_data(self) -> None:
        self.context.clear_data()
        logger.info("Telemetry data cleared")

    def stalled_timings(self) -> List["Metric"]:
        """In-flight timings older than the stalled threshold."""
        now = self.context.environment.now()
        limit = self.context.config["thresholds"]["stalled_timing_ms"]
        return [m for m in self.context.store.in_flight() if now - m.start_time > limit]

    def log_stats(self) -> None:
        health = self.get_health()
        summary = self.context.aggregator.get_summary()

        logger.info("=" * 60)
        logger.info("TELEMETRY STATS")
        logger.info("=" * 60)
        logger.info(f"Score: {health['score']} ({health['grade']}), status: {health['status']}")
        logger.info(f"Metrics: {health['metricCount']}, errors: {health['errorCount']}")
        for section in ("components", "images", "bundles"):
            stats = summary[section]
            logger.info(f"{section}: count={stats['count']}, avg={stats['averageLoadTime']:.1f}ms")
        for metric in self.stalled_timings():
            logger.warning(f"Timing '{metric.name}' started at {metric.start_time:.0f}ms has not ended")
        logger.info("=" * 60)


def debug_console(context: "TelemetryContext") -> Optional[DebugConsole]:
    """The debug surface, or None outside development."""
    if context.config.get("environment") != "development":
        return None
    return DebugConsole(context)

"""Point-in-time performance reports and the JSON export document."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from ..errors.error_log import ErrorLog, ErrorRecord
from ..metrics.aggregator import CustomMetrics, SummaryAggregator, summary_to_dict
from ..metrics.models import Metric
from ..metrics.vitals import VitalsCollector, WebVitals

logger = logging.getLogger(__name__)

REPORT_SLOW_THRESHOLD_MS = 500


def iso_timestamp(epoch_ms: float) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Report:
    """Snapshot of vitals, custom metrics, slow resources and errors."""

    timestamp: str
    url: str
    user_agent: str
    web_vitals: WebVitals
    custom_metrics: CustomMetrics
    slow_resources: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names."""
        return {
            "timestamp": self.timestamp,
            "url": self.url,
            "userAgent": self.user_agent,
            "webVitals": self.web_vitals.to_dict(),
            "customMetrics": self.custom_metrics.to_dict(),
            "slowResources": list(self.slow_resources),
            "errors": [e.to_dict() for e in self.errors],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class ReportGenerator:
    """Assembles reports from the live collectors. Every method is a pure read."""

    def __init__(
        self,
        vitals: VitalsCollector,
        aggregator: SummaryAggregator,
        error_log: ErrorLog,
        wall_clock: Callable[[], float],
        page_config: Dict[str, Any],
    ):
        """Initialize the report generator.

        Args:
            vitals: Web vitals holder
            aggregator: Summary views over the metric store
            error_log: Captured host application errors
            wall_clock: Epoch-milliseconds clock
            page_config: Page identity containing ``url`` and ``user_agent``
        """
        self.vitals = vitals
        self.aggregator = aggregator
        self.error_log = error_log
        self.wall_clock = wall_clock
        self.url = page_config.get("url", "about:blank")
        self.user_agent = page_config.get("user_agent", "")

    def generate_report(self) -> Report:
        slow_resources = [
            {
                "name": metric.name,
                "duration": metric.duration or 0,
                "type": metric.type or "unknown",
            }
            for metric in self.aggregator.get_slow_metrics(REPORT_SLOW_THRESHOLD_MS)
        ]

        return Report(
            timestamp=iso_timestamp(self.wall_clock()),
            url=self.url,
            user_agent=self.user_agent,
            web_vitals=self.vitals.get_web_vitals(),
            custom_metrics=self.aggregator.get_custom_metrics(),
            slow_resources=slow_resources,
            errors=self.error_log.get_errors(),
        )

    def export_document(self) -> Dict[str, Any]:
        return {
            "timestamp": iso_timestamp(self.wall_clock()),
            "userAgent": self.user_agent,
            "metrics": [m.to_dict() for m in self.aggregator.get_metrics()],
            "summary": summary_to_dict(self.aggregator.get_summary()),
        }

    def export_data(self) -> str:
        """The export document as pretty-printed JSON."""
        return json.dumps(self.export_document(), indent=2)

    def write_export(self, directory: Union[str, Path] = ".") -> Path:
        """Write the export document as ``performance-metrics-<timestamp>.json``."""
        document = self.export_document()
        safe_stamp = document["timestamp"].replace(":", "-")
        output_path = Path(directory) / f"performance-metrics-{safe_stamp}.json"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(document, f, indent=2)
        logger.info(f"Exported {len(document['metrics'])} metrics to {output_path}")
        return output_path


def parse_export(data: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Parse an export document, validating its top-level shape."""
    document = json.loads(data) if isinstance(data, (str, bytes)) else data
    missing = {"timestamp", "userAgent", "metrics", "summary"} - set(document)
    if missing:
        raise ValueError(f"Export document missing fields: {sorted(missing)}")
    return document


def import_metrics(data: Union[str, bytes, Dict[str, Any]]) -> List[Metric]:
    """Rebuild ``Metric`` records from an export document."""
    return [Metric.from_dict(m) for m in parse_export(data)["metrics"]]


def load_export(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path) as f:
        return parse_export(json.load(f))

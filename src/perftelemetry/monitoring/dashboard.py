"""Dashboard snapshot feed and chart rendering."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from ..core.environment import TelemetryEnvironment  # noqa: E402
from ..metrics.aggregator import SUMMARY_CATEGORIES, SummaryAggregator  # noqa: E402
from ..scoring.score_engine import ScoreEngine  # noqa: E402

logger = logging.getLogger(__name__)

STATUS_COLORS = {"good": "tab:green", "warning": "tab:orange", "poor": "tab:red"}


def performance_status(duration: Optional[float]) -> str:
    """Dashboard colour band for a single duration."""
    if not duration:
        return "good"
    if duration < 100:
        return "good"
    if duration < 500:
        return "warning"
    return "poor"


def render_chart(
    averages: Dict[str, float],
    metrics_df: pd.DataFrame,
    output_path: Union[str, Path],
    top_n: int = 10,
) -> Path:
    """Draw category averages and the slowest metrics to a PNG file.

    Args:
        averages: Section name -> average load time (ms)
        metrics_df: Frame as returned by ``SummaryAggregator.get_metrics_df``
        output_path: Destination image path
        top_n: Number of slowest metrics to show

    Returns:
        The written path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    timed = metrics_df.dropna(subset=["duration"]) if not metrics_df.empty else metrics_df
    slowest = timed.sort_values("duration", ascending=False).head(top_n) if not timed.empty else timed

    fig, (ax_avg, ax_slow) = plt.subplots(1, 2, figsize=(12, 5))

    sections = list(averages.keys())
    values = [averages[s] for s in sections]
    ax_avg.bar(sections, values, color=[STATUS_COLORS[performance_status(v)] for v in values])
    ax_avg.set_title("Average load time by category")
    ax_avg.set_ylabel("ms")

    if not slowest.empty:
        durations = slowest["duration"].tolist()
        ax_slow.barh(
            slowest["name"].tolist()[::-1],
            durations[::-1],
            color=[STATUS_COLORS[performance_status(d)] for d in durations[::-1]],
        )
    ax_slow.set_title(f"Slowest {top_n} metrics")
    ax_slow.set_xlabel("ms")

    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)

    logger.info(f"Dashboard chart written to {output_path}")
    return output_path


class DashboardFeed:
    """Keeps a periodically refreshed snapshot for dashboard views."""

    def __init__(self, aggregator: SummaryAggregator, score_engine: ScoreEngine, environment: TelemetryEnvironment):
        self.aggregator = aggregator
        self.score_engine = score_engine
        self.environment = environment
        self.snapshot: Dict[str, Any] = {}
        self.health_status = "good"

    def refresh(self) -> Dict[str, Any]:
        self.snapshot = {
            "summary": self.aggregator.get_summary(),
            "metrics": self.aggregator.get_metrics(),
            "refreshed_at": self.environment.now(),
        }
        return self.snapshot

    def refresh_health(self) -> str:
        self.health_status = self.score_engine.get_health_status()
        return self.health_status

    def render(self, output_path: Union[str, Path]) -> Path:
        summary = self.aggregator.get_summary()
        averages = {section: summary[section]["averageLoadTime"] for section in SUMMARY_CATEGORIES}
        return render_chart(averages, self.aggregator.get_metrics_df(), output_path)

    def schedule(self, dashboard_refresh_ms: float, health_refresh_ms: float) -> None:
        self.refresh()
        self.refresh_health()
        self.environment.every(dashboard_refresh_ms, self.refresh, name="dashboard_refresh")
        self.environment.every(health_refresh_ms, self.refresh_health, name="health_refresh")

"""Explicit telemetry context wiring every collaborator together."""

import asyncio
import atexit
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml

from ..core import TelemetryEnvironment
from ..errors import ErrorLog
from ..metrics import MetricStore, SummaryAggregator, TimingRecorder, VitalsCollector
from ..monitoring import DashboardFeed, MemoryWatch, PerformanceAlertMonitor
from ..observation import EntrySource, ObservationAdapter
from ..reporting import ReportGenerator, ReportTransport
from ..scoring import ScoreEngine
from ..utils.config_validator import ConfigurationError, TelemetryConfigValidator, apply_defaults

logger = logging.getLogger(__name__)


class TelemetryContext:
    """Owns the store, vitals holder and error log for one process.

    Construct once at startup, pass it (or its members) to whoever needs
    them, call ``start()`` to begin observing and ``shutdown()`` to
    disconnect observers and remove listeners.
    """

    def __init__(
        self,
        config_data: Optional[Dict[str, Any]] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the context with telemetry configuration.

        Args:
            config_data: Telemetry configuration dictionary (defaults fill gaps)
            http_transport: Optional httpx transport for report delivery

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        is_valid, errors = TelemetryConfigValidator.validate(config_data or {})
        if not is_valid:
            raise ConfigurationError("; ".join(errors))
        self.config = apply_defaults(config_data)

        self.production = self.config["environment"] == "production"
        thresholds = self.config["thresholds"]

        # 1. Clock and scheduler
        self.environment = TelemetryEnvironment(self.config["clock"])

        # 2. Shared state
        self.store = MetricStore()
        self.vitals = VitalsCollector()
        self.error_log = ErrorLog(self.environment.wall_time)

        # 3. Writers
        self.recorder = TimingRecorder(self.store, self.environment)
        self.adapter = ObservationAdapter(self.store, self.vitals)

        # 4. Readers
        self.aggregator = SummaryAggregator(self.store)
        self.score_engine = ScoreEngine(self.vitals, self.aggregator, self.error_log, thresholds)
        self.report_generator = ReportGenerator(
            self.vitals, self.aggregator, self.error_log, self.environment.wall_time, self.config["page"]
        )

        # 5. Emitters and monitors
        self.transport = ReportTransport(
            self.report_generator, self.config["reporting"], self.production, http_transport
        )
        self.alert_monitor = PerformanceAlertMonitor(
            self.aggregator, self.environment, self.config["alerts"], thresholds["alert_ms"], self.production
        )
        self.dashboard = DashboardFeed(self.aggregator, self.score_engine, self.environment)
        self.memory_watch = MemoryWatch(self.environment, self.config["memory"])

        self.started = False
        self.closed = False

        logger.info(f"TelemetryContext initialized (environment={self.config['environment']})")

    def start(
        self,
        source: Optional[EntrySource] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Begin observing and schedule periodic work.

        Args:
            source: Platform entry source to subscribe to (optional)
            loop: asyncio loop whose unhandled task exceptions are captured
        """
        if self.started:
            return

        if source is not None:
            self.adapter.connect(source)

        self.error_log.install()
        if loop is not None:
            self.error_log.attach_loop(loop)

        polling = self.config["polling"]
        self.transport.schedule(self.environment)
        self.alert_monitor.schedule(polling["alert_check_ms"])
        self.dashboard.schedule(polling["dashboard_refresh_ms"], polling["metric_refresh_ms"])
        self.memory_watch.schedule(polling["memory_check_ms"])

        atexit.register(self._on_exit)
        self.started = True
        logger.info("Telemetry started")

    def pump(self) -> None:
        """Run scheduled work that has come due (realtime clock)."""
        self.environment.pump()

    def clear_data(self) -> None:
        """Drop every metric and captured error."""
        self.recorder.clear()
        self.error_log.clear_errors()

    def save_metrics_csv(self, csv_path: str) -> Path:
        """Save one row per metric to ``csv_path``."""
        csv_file = Path(csv_path)
        csv_file.parent.mkdir(parents=True, exist_ok=True)
        self.aggregator.get_metrics_df().to_csv(csv_file, index=False)
        logger.info(f"Saved metrics to {csv_file}")
        return csv_file

    def shutdown(self) -> None:
        """Disconnect observers, remove listeners and attempt a final send.

        The final send runs in the background and is best-effort; this
        returns without waiting and nothing guarantees it arrives.
        """
        if self.closed:
            return
        self.closed = True

        self.adapter.disconnect()
        self.error_log.uninstall()
        self.environment.stop()
        atexit.unregister(self._on_exit)

        if self.config["reporting"].get("send_on_shutdown", True) and self.transport.endpoint:
            self.transport.send_beacon()

        logger.info("Telemetry shut down")

    def _on_exit(self) -> None:
        try:
            self.shutdown()
        except Exception as e:
            logger.warning(f"Telemetry shutdown at exit failed: {e}")

    def __enter__(self) -> "TelemetryContext":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback) -> None:
        self.shutdown()

    @classmethod
    def from_yaml_file(cls, config_path: str, **kwargs) -> "TelemetryContext":
        """Create a context from a YAML configuration file."""
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f)

        return cls(config_data, **kwargs)

    @classmethod
    def from_json_file(cls, config_path: str, **kwargs) -> "TelemetryContext":
        """Create a context from a JSON configuration file."""
        with open(config_path, "r") as f:
            config_data = json.load(f)

        return cls(config_data, **kwargs)

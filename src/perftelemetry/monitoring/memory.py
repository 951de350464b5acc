"""Periodic process memory sampling."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import psutil

from ..core.environment import TelemetryEnvironment

logger = logging.getLogger(__name__)


@dataclass
class MemorySample:
    timestamp: float
    rss_mb: float
    vms_mb: float


class MemoryWatch:
    """Samples resident memory and warns above a configured limit."""

    def __init__(self, environment: TelemetryEnvironment, config: Optional[Dict[str, Any]] = None):
        self.environment = environment
        self.config = config or {}
        self.warn_rss_mb: float = self.config.get("warn_rss_mb", 512)
        self.latest: Optional[MemorySample] = None
        self._process = psutil.Process()

    def sample(self) -> MemorySample:
        info = self._process.memory_info()
        self.latest = MemorySample(
            timestamp=self.environment.now(),
            rss_mb=info.rss / (1024 * 1024),
            vms_mb=info.vms / (1024 * 1024),
        )
        if self.latest.rss_mb > self.warn_rss_mb:
            logger.warning(
                f"High memory usage: {self.latest.rss_mb:.1f} MB RSS (limit {self.warn_rss_mb} MB)"
            )
        return self.latest

    def schedule(self, interval_ms: float) -> None:
        self.environment.every(interval_ms, self.sample, name="memory_check")

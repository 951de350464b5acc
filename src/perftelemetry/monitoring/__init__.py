"""Local monitors: alerts, dashboard feed, memory watch."""

from .alerts import PerformanceAlert, PerformanceAlertMonitor
from .dashboard import DashboardFeed, performance_status, render_chart
from .memory import MemorySample, MemoryWatch

__all__ = [
    "DashboardFeed",
    "MemorySample",
    "MemoryWatch",
    "PerformanceAlert",
    "PerformanceAlertMonitor",
    "performance_status",
    "render_chart",
]

"""Report generation, export and delivery."""

from .generator import Report, ReportGenerator, import_metrics, load_export, parse_export
from .transport import ReportTransport

__all__ = [
    "Report",
    "ReportGenerator",
    "ReportTransport",
    "import_metrics",
    "load_export",
    "parse_export",
]

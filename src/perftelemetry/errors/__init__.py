"""Host application error capture."""

from .error_log import RECENT_ERROR_WINDOW_MS, ErrorLog, ErrorRecord, describe_exception

__all__ = ["ErrorLog", "ErrorRecord", "RECENT_ERROR_WINDOW_MS", "describe_exception"]

"""Data models for platform timing entries."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

ENTRY_KINDS = (
    "navigation",
    "paint",
    "largest-contentful-paint",
    "first-input",
    "layout-shift",
    "resource",
)

# Platform (camelCase) field name -> PerformanceEntry attribute
_FIELD_MAP = {
    "entryType": "entry_type",
    "name": "name",
    "startTime": "start_time",
    "duration": "duration",
    "initiatorType": "initiator_type",
    "transferSize": "transfer_size",
    "hadRecentInput": "had_recent_input",
    "value": "value",
    "processingStart": "processing_start",
    "responseStart": "response_start",
    "requestStart": "request_start",
    "loadEventEnd": "load_event_end",
    "domContentLoadedEventStart": "dom_content_loaded_event_start",
    "domContentLoadedEventEnd": "dom_content_loaded_event_end",
}


@dataclass
class PerformanceEntry:
    """One observation pushed by the platform timing facility.

    Only the fields relevant to ``entry_type`` are populated.
    """

    entry_type: str
    name: str = ""
    start_time: float = 0.0
    duration: float = 0.0

    # resource
    initiator_type: Optional[str] = None
    transfer_size: Optional[float] = None

    # layout-shift
    had_recent_input: bool = False
    value: Optional[float] = None

    # first-input
    processing_start: Optional[float] = None

    # navigation
    response_start: Optional[float] = None
    request_start: Optional[float] = None
    load_event_end: Optional[float] = None
    dom_content_loaded_event_start: Optional[float] = None
    dom_content_loaded_event_end: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformanceEntry":
        """Build an entry from the platform's JSON shape.

        Accepts camelCase platform names as well as snake_case attribute
        names; unknown keys are ignored.
        """
        kwargs: Dict[str, Any] = {}
        attributes = set(_FIELD_MAP.values())
        for key, value in data.items():
            attr = _FIELD_MAP.get(key, key)
            if attr in attributes:
                kwargs[attr] = value
        if "entry_type" not in kwargs:
            raise ValueError(f"Entry has no entryType: {data!r}")
        return cls(**kwargs)

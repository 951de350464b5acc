"""Platform timing observation module."""

from .adapter import ObservationAdapter, is_lazy_resource
from .models import ENTRY_KINDS, PerformanceEntry
from .source import EntrySource, InMemoryEntrySource, UnsupportedEntryKindError

__all__ = [
    "ENTRY_KINDS",
    "EntrySource",
    "InMemoryEntrySource",
    "ObservationAdapter",
    "PerformanceEntry",
    "UnsupportedEntryKindError",
    "is_lazy_resource",
]

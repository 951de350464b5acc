"""Subscription interface to the platform timing facility."""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from .models import ENTRY_KINDS, PerformanceEntry

logger = logging.getLogger(__name__)

EntryCallback = Callable[[List[PerformanceEntry]], None]


class UnsupportedEntryKindError(Exception):
    """Raised by a source that cannot observe the requested entry kind."""
    pass


class Subscription(Protocol):
    def disconnect(self) -> None: ...


class EntrySource(Protocol):
    """What the observation adapter needs from the platform."""

    def register(self, kind: str, callback: EntryCallback) -> Subscription: ...

    def get_entries_by_type(self, kind: str) -> List[PerformanceEntry]: ...


class _CallbackSubscription:
    def __init__(self, source: "InMemoryEntrySource", kind: str, callback: EntryCallback):
        self._source = source
        self.kind = kind
        self.callback = callback
        self.active = True

    def disconnect(self) -> None:
        if self.active:
            self._source._remove(self)
            self.active = False


class InMemoryEntrySource:
    """Entry source fed by the host process.

    Buffers every emitted entry (for ``get_entries_by_type``) and delivers
    it to the callbacks registered for its kind.
    """

    def __init__(self, unsupported_kinds: Optional[Iterable[str]] = None):
        self.unsupported_kinds = set(unsupported_kinds or ())
        self._buffer: Dict[str, List[PerformanceEntry]] = {}
        self._subscriptions: Dict[str, List[_CallbackSubscription]] = {}

    def register(self, kind: str, callback: EntryCallback) -> _CallbackSubscription:
        if kind not in ENTRY_KINDS or kind in self.unsupported_kinds:
            raise UnsupportedEntryKindError(f"Entry kind '{kind}' is not supported")
        subscription = _CallbackSubscription(self, kind, callback)
        self._subscriptions.setdefault(kind, []).append(subscription)
        return subscription

    def get_entries_by_type(self, kind: str) -> List[PerformanceEntry]:
        return list(self._buffer.get(kind, []))

    def emit(self, *entries: PerformanceEntry) -> None:
        """Buffer ``entries`` and notify subscribers, one batch per kind."""
        batches: Dict[str, List[PerformanceEntry]] = {}
        for entry in entries:
            self._buffer.setdefault(entry.entry_type, []).append(entry)
            batches.setdefault(entry.entry_type, []).append(entry)

        for kind, batch in batches.items():
            for subscription in list(self._subscriptions.get(kind, [])):
                subscription.callback(batch)

    def subscriber_count(self, kind: Optional[str] = None) -> int:
        if kind is not None:
            return len(self._subscriptions.get(kind, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def _remove(self, subscription: _CallbackSubscription) -> None:
        subs = self._subscriptions.get(subscription.kind, [])
        if subscription in subs:
            subs.remove(subscription)

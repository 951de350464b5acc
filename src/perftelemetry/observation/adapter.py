"""Ingests platform timing entries into the metric store and vitals holder."""

import logging
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..metrics.models import Metric, MetricMetadata, PageLoadMetric, ResourceMetric, build_metadata
from ..metrics.store import MetricStore
from ..metrics.vitals import VitalsCollector
from .models import ENTRY_KINDS, PerformanceEntry
from .source import EntrySource, Subscription

logger = logging.getLogger(__name__)

LAZY_NAME_MARKERS = ("lazy", "chunk")
LAZY_INITIATOR_TYPES = ("img",)


def is_lazy_resource(entry: PerformanceEntry) -> bool:
    """Resources worth tracking: lazily loaded chunks and image fetches."""
    name = entry.name or ""
    if any(marker in name for marker in LAZY_NAME_MARKERS):
        return True
    return entry.initiator_type in LAZY_INITIATOR_TYPES


class ObservationAdapter:
    """Translates platform entries into metrics and web vitals.

    ``ingest`` can be called directly; ``connect`` subscribes to a live
    ``EntrySource``. Neither raises into the caller: unsupported kinds and
    malformed entries are logged as warnings and leave the affected
    metric or vital unset.
    """

    def __init__(self, store: MetricStore, vitals: VitalsCollector):
        self.store = store
        self.vitals = vitals
        self.source: Optional[EntrySource] = None
        self.subscriptions: Dict[str, Subscription] = {}

        self._fid_recorded = False
        self._fcp_recorded = False
        self._paint_entries: List[PerformanceEntry] = []

        self._handlers: Dict[str, Callable[[List[PerformanceEntry]], None]] = {
            "navigation": self._on_navigation,
            "paint": self._on_paint,
            "largest-contentful-paint": self._on_largest_contentful_paint,
            "first-input": self._on_first_input,
            "layout-shift": self._on_layout_shift,
            "resource": self._on_resource,
        }

    def connect(self, source: EntrySource) -> None:
        """Register one callback per entry kind with ``source``."""
        self.source = source
        for kind in ENTRY_KINDS:
            try:
                self.subscriptions[kind] = source.register(kind, self._make_callback(kind))
            except Exception as e:
                logger.warning(f"Failed to observe {kind} entries: {e}")

        logger.info(f"ObservationAdapter connected ({len(self.subscriptions)}/{len(ENTRY_KINDS)} kinds)")

    def disconnect(self) -> None:
        for kind, subscription in self.subscriptions.items():
            try:
                subscription.disconnect()
            except Exception as e:
                logger.warning(f"Failed to disconnect {kind} observer: {e}")
        self.subscriptions = {}
        self.source = None

    def ingest(self, entry: PerformanceEntry) -> None:
        """Process a single entry as if the platform had delivered it."""
        self.ingest_batch(entry.entry_type, [entry])

    def ingest_batch(self, kind: str, entries: List[PerformanceEntry]) -> None:
        handler = self._handlers.get(kind)
        if handler is None:
            logger.warning(f"Ignoring unsupported entry kind '{kind}'")
            return
        try:
            handler(entries)
        except Exception as e:
            logger.warning(f"Failed to process {kind} entries: {e}")

    def _make_callback(self, kind: str) -> Callable[[List[PerformanceEntry]], None]:
        return lambda entries: self.ingest_batch(kind, entries)

    def _paint_lookup(self) -> List[PerformanceEntry]:
        if self.source is not None:
            try:
                return self.source.get_entries_by_type("paint")
            except Exception as e:
                logger.warning(f"Paint entry query failed: {e}")
        return list(self._paint_entries)

    def _on_navigation(self, entries: List[PerformanceEntry]) -> None:
        if not entries:
            return
        entry = entries[0]

        if entry.response_start is not None and entry.request_start is not None:
            self.vitals.set_ttfb(entry.response_start - entry.request_start)

        paints = {p.name: p.start_time for p in self._paint_lookup()}
        dom_content_loaded = None
        if entry.dom_content_loaded_event_end is not None and entry.dom_content_loaded_event_start is not None:
            dom_content_loaded = entry.dom_content_loaded_event_end - entry.dom_content_loaded_event_start

        metric = Metric(
            name="navigation",
            start_time=entry.start_time,
            metadata=PageLoadMetric(
                dom_content_loaded=dom_content_loaded,
                first_paint=paints.get("first-paint"),
                first_contentful_paint=paints.get("first-contentful-paint"),
            ),
        )
        if entry.load_event_end is not None:
            metric.complete(entry.load_event_end)
        self.store.put(metric)

    def _on_paint(self, entries: List[PerformanceEntry]) -> None:
        self._paint_entries.extend(entries)
        if self._fcp_recorded:
            return
        for entry in entries:
            if entry.name == "first-contentful-paint":
                self.vitals.set_fcp(entry.start_time)
                self._fcp_recorded = True
                break

    def _on_largest_contentful_paint(self, entries: List[PerformanceEntry]) -> None:
        # Later candidates supersede earlier ones
        if entries:
            self.vitals.set_lcp(entries[-1].start_time)

    def _on_first_input(self, entries: List[PerformanceEntry]) -> None:
        if self._fid_recorded or not entries:
            return
        entry = entries[0]
        if entry.processing_start is None:
            return
        self.vitals.set_fid(entry.processing_start - entry.start_time)
        self._fid_recorded = True

    def _on_layout_shift(self, entries: List[PerformanceEntry]) -> None:
        for entry in entries:
            if not entry.had_recent_input and entry.value is not None:
                self.vitals.add_layout_shift(entry.value)

    def _on_resource(self, entries: List[PerformanceEntry]) -> None:
        for entry in entries:
            if not is_lazy_resource(entry):
                continue
            metric = Metric(
                name=f"resource_{entry.name}",
                start_time=entry.start_time,
                metadata=self._resource_metadata(entry),
            )
            metric.complete(entry.start_time + entry.duration)
            self.store.put(metric)

    @staticmethod
    def _resource_metadata(entry: PerformanceEntry) -> Optional[MetricMetadata]:
        cached = entry.transfer_size == 0 if entry.transfer_size is not None else None
        try:
            return ResourceMetric(type=entry.initiator_type, size=entry.transfer_size, cached=cached)
        except ValidationError:
            return build_metadata({"type": entry.initiator_type, "size": entry.transfer_size, "cached": cached})

    def reset(self) -> None:
        """Forget first-only state, for a new page lifetime."""
        self._fid_recorded = False
        self._fcp_recorded = False
        self._paint_entries = []

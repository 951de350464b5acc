"""
Unit tests for the observation adapter and the in-memory entry source.
"""

import pytest
from perftelemetry.metrics import MetricStore, VitalsCollector
from perftelemetry.observation import (
    ENTRY_KINDS,
    InMemoryEntrySource,
    ObservationAdapter,
    PerformanceEntry,
    UnsupportedEntryKindError,
    is_lazy_resource,
)


@pytest.fixture
def store():
    return MetricStore()


@pytest.fixture
def vitals():
    return VitalsCollector()


@pytest.fixture
def adapter(store, vitals):
    return ObservationAdapter(store, vitals)


@pytest.fixture
def source():
    return InMemoryEntrySource()


def navigation_entry(**overrides):
    fields = dict(
        entry_type='navigation',
        name='https://example.com/',
        start_time=0,
        request_start=20,
        response_start=140,
        dom_content_loaded_event_start=600,
        dom_content_loaded_event_end=650,
        load_event_end=1200,
    )
    fields.update(overrides)
    return PerformanceEntry(**fields)


class TestPerformanceEntry:
    """Test entry parsing from the platform JSON shape."""

    def test_from_camel_case(self):
        entry = PerformanceEntry.from_dict({
            'entryType': 'resource',
            'name': 'https://cdn/app.chunk.js',
            'startTime': 10,
            'duration': 90,
            'initiatorType': 'script',
            'transferSize': 0,
            'serverTiming': [],
        })
        assert entry.entry_type == 'resource'
        assert entry.initiator_type == 'script'
        assert entry.transfer_size == 0

    def test_from_snake_case(self):
        entry = PerformanceEntry.from_dict({'entry_type': 'paint', 'name': 'first-paint', 'start_time': 5})
        assert entry.start_time == 5

    def test_missing_entry_type(self):
        with pytest.raises(ValueError):
            PerformanceEntry.from_dict({'name': 'x'})


class TestVitals:
    """Test web vitals derived from entries."""

    def test_navigation_sets_ttfb_and_page_load(self, adapter, store, vitals):
        adapter.ingest(navigation_entry())

        assert vitals.get_web_vitals().TTFB == 120
        metric = store.get('navigation')
        assert metric.duration == 1200
        assert metric.type == 'page_load'
        assert metric.metadata.dom_content_loaded == 50

    def test_navigation_without_load_end_stays_in_flight(self, adapter, store):
        adapter.ingest(navigation_entry(load_event_end=None))
        assert store.get('navigation').end_time is None

    def test_navigation_picks_up_paints(self, adapter, store):
        adapter.ingest(PerformanceEntry('paint', 'first-paint', 300))
        adapter.ingest(PerformanceEntry('paint', 'first-contentful-paint', 450))
        adapter.ingest(navigation_entry())

        metadata = store.get('navigation').metadata
        assert metadata.first_paint == 300
        assert metadata.first_contentful_paint == 450

    def test_fcp_recorded_once(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('paint', 'first-paint', 300))
        assert vitals.get_web_vitals().FCP is None

        adapter.ingest(PerformanceEntry('paint', 'first-contentful-paint', 450))
        adapter.ingest(PerformanceEntry('paint', 'first-contentful-paint', 999))
        assert vitals.get_web_vitals().FCP == 450

    def test_lcp_last_candidate_wins(self, adapter, vitals):
        adapter.ingest_batch('largest-contentful-paint', [
            PerformanceEntry('largest-contentful-paint', start_time=800),
            PerformanceEntry('largest-contentful-paint', start_time=1800),
        ])
        assert vitals.get_web_vitals().LCP == 1800

        adapter.ingest(PerformanceEntry('largest-contentful-paint', start_time=2500))
        assert vitals.get_web_vitals().LCP == 2500

    def test_fid_first_only(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('first-input', start_time=1000, processing_start=1040))
        adapter.ingest(PerformanceEntry('first-input', start_time=2000, processing_start=2500))
        assert vitals.get_web_vitals().FID == 40

    def test_fid_without_processing_start(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('first-input', start_time=1000))
        assert vitals.get_web_vitals().FID is None

        adapter.ingest(PerformanceEntry('first-input', start_time=1500, processing_start=1510))
        assert vitals.get_web_vitals().FID == 10

    def test_cls_ignores_recent_input(self, adapter, vitals):
        adapter.ingest_batch('layout-shift', [
            PerformanceEntry('layout-shift', value=0.05),
            PerformanceEntry('layout-shift', value=0.5, had_recent_input=True),
            PerformanceEntry('layout-shift', value=0.1),
        ])
        assert vitals.get_web_vitals().CLS == pytest.approx(0.15)

    def test_cls_unset_until_first_shift(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('layout-shift', value=0.3, had_recent_input=True))
        assert vitals.get_web_vitals().CLS is None

    def test_reset_allows_new_first_values(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('first-input', start_time=0, processing_start=30))
        adapter.reset()
        vitals.reset()
        adapter.ingest(PerformanceEntry('first-input', start_time=0, processing_start=70))
        assert vitals.get_web_vitals().FID == 70


class TestResources:
    """Test lazy resource capture."""

    def test_lazy_detection(self):
        assert is_lazy_resource(PerformanceEntry('resource', 'https://cdn/lazy-widget.js'))
        assert is_lazy_resource(PerformanceEntry('resource', 'https://cdn/3.chunk.js'))
        assert is_lazy_resource(PerformanceEntry('resource', 'https://cdn/hero.png', initiator_type='img'))
        assert not is_lazy_resource(PerformanceEntry('resource', 'https://cdn/main.css', initiator_type='link'))

    def test_resource_metric(self, adapter, store):
        adapter.ingest(PerformanceEntry(
            'resource', 'https://cdn/3.chunk.js', start_time=100, duration=250,
            initiator_type='script', transfer_size=0,
        ))
        metric = store.get('resource_https://cdn/3.chunk.js')
        assert metric.start_time == 100
        assert metric.end_time == 350
        assert metric.duration == 250
        assert metric.type == 'script'
        assert metric.metadata.cached is True

    def test_non_lazy_resource_ignored(self, adapter, store):
        adapter.ingest(PerformanceEntry('resource', 'https://cdn/main.css', initiator_type='link'))
        assert len(store) == 0


class TestSubscriptions:
    """Test connecting to an entry source."""

    def test_connect_registers_every_kind(self, adapter, source):
        adapter.connect(source)
        assert source.subscriber_count() == len(ENTRY_KINDS)

    def test_unsupported_kind_skipped(self, adapter, vitals):
        source = InMemoryEntrySource(unsupported_kinds=['layout-shift'])
        adapter.connect(source)

        assert source.subscriber_count('layout-shift') == 0
        assert source.subscriber_count() == len(ENTRY_KINDS) - 1

        source.emit(PerformanceEntry('layout-shift', value=0.2))
        source.emit(PerformanceEntry('largest-contentful-paint', start_time=900))
        assert vitals.get_web_vitals().CLS is None
        assert vitals.get_web_vitals().LCP == 900

    def test_register_raises_for_unsupported(self):
        source = InMemoryEntrySource(unsupported_kinds=['paint'])
        with pytest.raises(UnsupportedEntryKindError):
            source.register('paint', lambda entries: None)
        with pytest.raises(UnsupportedEntryKindError):
            source.register('longtask', lambda entries: None)

    def test_emit_delivers_batches(self, adapter, source, vitals, store):
        adapter.connect(source)
        source.emit(
            PerformanceEntry('paint', 'first-contentful-paint', 400),
            navigation_entry(),
            PerformanceEntry('layout-shift', value=0.02),
        )
        assert vitals.get_web_vitals().FCP == 400
        assert vitals.get_web_vitals().TTFB == 120
        assert store.get('navigation').metadata.first_contentful_paint == 400

    def test_disconnect_stops_delivery(self, adapter, source, vitals):
        adapter.connect(source)
        adapter.disconnect()
        assert source.subscriber_count() == 0

        source.emit(PerformanceEntry('largest-contentful-paint', start_time=900))
        assert vitals.get_web_vitals().LCP is None

    def test_malformed_entry_does_not_raise(self, adapter, vitals):
        adapter.ingest(PerformanceEntry('first-input', start_time=None, processing_start=10))
        adapter.ingest(PerformanceEntry('largest-contentful-paint', start_time=700))
        assert vitals.get_web_vitals().FID is None
        assert vitals.get_web_vitals().LCP == 700

    def test_unknown_kind_ignored(self, adapter, store):
        adapter.ingest(PerformanceEntry('longtask', 'self', start_time=0, duration=80))
        assert len(store) == 0

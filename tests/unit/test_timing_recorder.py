"""
Unit tests for the metric store and timing recorder.
"""

import asyncio

import pytest
from perftelemetry.core import TelemetryEnvironment
from perftelemetry.metrics import (
    ComponentMetric,
    ImageMetric,
    MetricMetadata,
    MetricStore,
    SummaryAggregator,
    TimingRecorder,
)


@pytest.fixture
def environment():
    return TelemetryEnvironment({"realtime": False, "epoch_ms": 1_700_000_000_000})


@pytest.fixture
def store():
    return MetricStore()


@pytest.fixture
def recorder(store, environment):
    return TimingRecorder(store, environment)


class TestStartEndTiming:
    """Test the basic start/end timing lifecycle."""

    def test_duration_matches_times(self, recorder, store, environment):
        """Test that duration equals end_time - start_time."""
        environment.advance(40)
        recorder.start_timing("fetch_profile")
        environment.advance(120)
        recorder.end_timing("fetch_profile")

        metric = store.get("fetch_profile")
        assert metric.start_time == 40
        assert metric.end_time == 160
        assert metric.duration == metric.end_time - metric.start_time
        assert metric.duration >= 0

    def test_zero_duration(self, recorder, store):
        """Test ending immediately gives a zero, not missing, duration."""
        recorder.start_timing("instant")
        recorder.end_timing("instant")
        assert store.get("instant").duration == 0

    def test_end_unknown_is_noop(self, recorder, store):
        """Test that ending a never-started timing changes nothing."""
        recorder.start_timing("known")
        before = [m.to_dict() for m in store.values()]

        recorder.end_timing("never-started")

        assert len(store) == 1
        assert [m.to_dict() for m in store.values()] == before

    def test_start_without_end_stays_in_flight(self, recorder, store):
        recorder.start_timing("pending")
        metric = store.get("pending")
        assert metric.end_time is None
        assert metric.duration is None
        assert store.in_flight() == [metric]

    def test_component_scenario(self, recorder, store, environment):
        """Test a 300ms component load feeds the summary average."""
        recorder.start_timing("component_Foo")
        environment.advance(300)
        recorder.end_timing("component_Foo")

        assert store.get("component_Foo").duration == pytest.approx(300)
        summary = SummaryAggregator(store).get_summary()
        assert summary["components"]["count"] == 1
        assert summary["components"]["averageLoadTime"] == pytest.approx(300)

    def test_clear_empties_store(self, recorder, store):
        recorder.start_timing("a")
        recorder.start_timing("b")
        recorder.clear()
        assert len(store) == 0
        # Names are reusable after a clear
        assert recorder.start_timing("a") == "a"


class TestMetadata:
    """Test metadata handling on start/end."""

    def test_extra_metadata_wins(self, recorder, store):
        """Test that end metadata overrides start metadata on conflict."""
        recorder.start_timing("upload", {"type": "api", "endpoint": "/upload", "success": False})
        recorder.end_timing("upload", {"success": True, "status_code": 201})

        metadata = store.get("upload").metadata.to_dict()
        assert metadata["success"] is True
        assert metadata["status_code"] == 201
        assert metadata["endpoint"] == "/upload"

    def test_typed_variant_selected(self, recorder, store):
        recorder.start_timing("component_Card", {"type": "component"})
        assert isinstance(store.get("component_Card").metadata, ComponentMetric)

    def test_unknown_keys_preserved(self, recorder, store):
        """Test the generic variant keeps keys it does not know."""
        recorder.start_timing("custom", {"type": "widget", "widget_id": 7})
        metadata = store.get("custom").metadata
        assert type(metadata) is MetricMetadata
        assert metadata.to_dict() == {"type": "widget", "widget_id": 7}

    def test_invalid_typed_metadata_does_not_raise(self, recorder, store):
        """Test metadata failing validation degrades instead of raising."""
        recorder.start_timing("image_hero", {"type": "image", "size": "huge"})
        metadata = store.get("image_hero").metadata
        assert not isinstance(metadata, ImageMetric)
        assert metadata.to_dict()["size"] == "huge"

    def test_non_mapping_extra_ignored(self, recorder, store):
        recorder.start_timing("x", {"type": "api"})
        recorder.end_timing("x", ["not", "a", "dict"])
        assert store.get("x").duration == 0
        assert store.get("x").metadata.type == "api"


class TestOverlappingNames:
    """Test overlapping operations that share a logical name."""

    def test_second_start_gets_distinct_key(self, recorder, store, environment):
        first = recorder.start_timing("component_List")
        environment.advance(10)
        second = recorder.start_timing("component_List")

        assert first == "component_List"
        assert second == "component_List#2"
        assert store.get(first).start_time == 0
        assert store.get(second).start_time == 10

    def test_end_closes_oldest_first(self, recorder, store, environment):
        recorder.start_timing("load")
        environment.advance(10)
        recorder.start_timing("load")
        environment.advance(30)

        recorder.end_timing("load")
        assert store.get("load").duration == 40
        assert store.get("load#2").end_time is None

        environment.advance(5)
        recorder.end_timing("load")
        assert store.get("load#2").duration == 35

    def test_end_by_exact_key(self, recorder, store, environment):
        recorder.start_timing("load")
        key = recorder.start_timing("load")
        environment.advance(20)

        recorder.end_timing(key)
        assert store.get(key).duration == 20
        assert store.get("load").end_time is None

        recorder.end_timing("load")
        assert store.get("load").duration == 20

    def test_restart_after_completion_overwrites(self, recorder, store, environment):
        recorder.start_timing("refresh")
        environment.advance(50)
        recorder.end_timing("refresh")

        environment.advance(10)
        assert recorder.start_timing("refresh") == "refresh"
        assert store.get("refresh").start_time == 60
        assert store.get("refresh").end_time is None
        assert len(store) == 1

    def test_store_cleared_between_starts(self, recorder, store, environment):
        """Test clearing the store directly does not leave stale in-flight keys."""
        recorder.start_component_load('Foo')
        store.clear()

        assert recorder.start_component_load('Foo') == 'component_Foo'
        environment.advance(300)
        recorder.end_component_load('Foo')

        assert {m.name: m.duration for m in store.values()} == {'component_Foo': 300}

    def test_store_cleared_while_overlapping(self, recorder, store, environment):
        recorder.start_timing('load')
        recorder.start_timing('load')
        store.clear()

        recorder.start_timing('load')
        environment.advance(10)
        recorder.end_timing('load')
        assert store.get('load').duration == 10
        assert 'load#2' not in store

    def test_suffixes_reused_once_settled(self, recorder, store, environment):
        recorder.start_timing('fetch')
        recorder.start_timing('fetch')
        recorder.start_timing('fetch')
        for _ in range(3):
            recorder.end_timing('fetch')

        assert recorder.start_timing('fetch') == 'fetch'
        assert recorder.start_timing('fetch') == 'fetch#2'
        assert store.in_flight() == [store.get('fetch'), store.get('fetch#2')]

    def test_end_after_clear_is_noop(self, recorder, store):
        recorder.start_timing('pending')
        store.clear()
        recorder.end_timing('pending')
        assert len(store) == 0

    def test_overlaps_both_counted(self, recorder, store, environment):
        recorder.start_component_load("Avatar")
        recorder.start_component_load("Avatar")
        environment.advance(100)
        recorder.end_component_load("Avatar")
        recorder.end_component_load("Avatar")

        summary = SummaryAggregator(store).get_summary()
        assert summary["components"]["count"] == 2
        assert summary["components"]["averageLoadTime"] == pytest.approx(100)


class TestCategoryHelpers:
    """Test category-specific helpers."""

    def test_component_helper(self, recorder, store, environment):
        recorder.start_component_load("Header")
        environment.advance(25)
        recorder.end_component_load("Header", success=False)

        metric = store.get("component_Header")
        assert metric.type == "component"
        assert metric.metadata.success is False
        assert metric.metadata.component == "Header"

    def test_image_helper_records_size(self, recorder, store, environment):
        recorder.start_image_load("/logo.png")
        environment.advance(80)
        recorder.end_image_load("/logo.png", size=2048)

        metric = store.get("image_/logo.png")
        assert metric.type == "image"
        assert metric.metadata.size == 2048
        assert metric.metadata.success is True

    def test_bundle_helper(self, recorder, store):
        recorder.start_bundle_load("vendor")
        recorder.end_bundle_load("vendor")
        assert store.get("bundle_vendor").type == "bundle"

    def test_api_helper_key_and_type(self, recorder, store, environment):
        recorder.start_api_call("/api/certificates/42", "POST")
        environment.advance(300)
        recorder.end_api_call("/api/certificates/42", "POST", status_code=200)

        metric = store.get("api_post__api_certificates_42")
        assert metric.type == "api"
        assert metric.duration == 300
        assert metric.metadata.status_code == 200

    def test_route_change_closes_after_settle(self, recorder, store, environment):
        key = recorder.track_route_change("/login", "/dashboard")
        assert key == "route_change__login_to__dashboard"
        assert store.get(key).end_time is None

        environment.advance(100)
        metric = store.get(key)
        assert metric.duration == 100
        assert metric.type == "navigation"
        assert metric.metadata.success is True

    def test_user_interaction_closes_after_settle(self, recorder, store, environment):
        key = recorder.track_user_interaction("click", "verify_button")
        environment.advance(50)
        assert store.get(key).duration == 50
        assert store.get(key).type == "user_interaction"

    def test_page_view_starts_timing(self, recorder, store):
        key = recorder.track_page_view("verify")
        assert store.get(key).type == "page_view"


class TestMeasure:
    """Test the measure context manager and timed decorator."""

    def test_measure_success(self, recorder, store, environment):
        with recorder.measure("render_table"):
            environment.advance(15)
        metric = store.get("render_table")
        assert metric.duration == 15
        assert metric.metadata.success is True

    def test_measure_failure_reraises(self, recorder, store):
        with pytest.raises(RuntimeError):
            with recorder.measure("submit"):
                raise RuntimeError("network down")

        metadata = store.get("submit").metadata
        assert metadata.success is False
        assert metadata.error == "network down"

    def test_timed_sync_function(self, recorder, store):
        @recorder.timed("compute_hash")
        def compute(x):
            return x * 2

        assert compute(21) == 42
        assert store.get("compute_hash").metadata.success is True

    def test_timed_coroutine(self, recorder, store):
        @recorder.track_form_submission("issue_certificate")
        async def submit():
            await asyncio.sleep(0)
            return "ok"

        assert asyncio.run(submit()) == "ok"
        metric = store.get("form_submit_issue_certificate")
        assert metric.type == "form_submission"
        assert metric.metadata.success is True

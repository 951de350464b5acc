"""
Unit tests for report generation and the export document.
"""

import json

import pytest
from perftelemetry.core import TelemetryEnvironment
from perftelemetry.errors import ErrorLog
from perftelemetry.metrics import MetricStore, SummaryAggregator, TimingRecorder, VitalsCollector
from perftelemetry.reporting import ReportGenerator, import_metrics, load_export, parse_export
from perftelemetry.reporting.generator import iso_timestamp

EPOCH_MS = 1_700_000_000_000  # 2023-11-14T22:13:20Z


@pytest.fixture
def env():
    return TelemetryEnvironment({'realtime': False, 'epoch_ms': EPOCH_MS})


@pytest.fixture
def parts(env):
    store = MetricStore()
    vitals = VitalsCollector()
    error_log = ErrorLog(env.wall_time)
    recorder = TimingRecorder(store, env)
    aggregator = SummaryAggregator(store)
    generator = ReportGenerator(
        vitals, aggregator, error_log, env.wall_time,
        {'url': 'https://certs.example.com/verify', 'user_agent': 'pytest-agent'},
    )
    return {
        'store': store,
        'vitals': vitals,
        'error_log': error_log,
        'recorder': recorder,
        'generator': generator,
    }


class TestReport:
    """Test report contents."""

    def test_iso_timestamp(self):
        assert iso_timestamp(EPOCH_MS) == '2023-11-14T22:13:20Z'

    def test_report_shape(self, parts, env):
        parts['vitals'].set_fcp(900)
        parts['recorder'].start_image_load('/hero.png')
        env.advance(800)
        parts['recorder'].end_image_load('/hero.png')
        parts['recorder'].start_api_call('/api/ping')
        env.advance(100)
        parts['recorder'].end_api_call('/api/ping')
        parts['error_log'].record('TypeError: boom')

        report = parts['generator'].generate_report().to_dict()

        assert set(report) == {
            'timestamp', 'url', 'userAgent', 'webVitals', 'customMetrics', 'slowResources', 'errors'
        }
        assert report['url'] == 'https://certs.example.com/verify'
        assert report['userAgent'] == 'pytest-agent'
        assert report['webVitals'] == {'FCP': 900}
        assert report['customMetrics']['imageLoadTime'] == pytest.approx(800)
        assert report['customMetrics']['apiResponseTime'] == pytest.approx(100)
        assert report['slowResources'] == [{'name': 'image_/hero.png', 'duration': 800, 'type': 'image'}]
        assert report['errors'] == [{'message': 'TypeError: boom', 'timestamp': EPOCH_MS + 900}]
        assert report['timestamp'] == iso_timestamp(EPOCH_MS + 900)

    def test_cleared_errors_not_reported(self, parts):
        parts['error_log'].record('Error: gone')
        parts['error_log'].clear_errors()
        assert parts['generator'].generate_report().to_dict()['errors'] == []

    def test_report_json(self, parts):
        data = json.loads(parts['generator'].generate_report().to_json())
        assert data['webVitals'] == {}
        assert data['slowResources'] == []


class TestExport:
    """Test the export document."""

    def test_export_document(self, parts, env):
        parts['recorder'].start_component_load('Table')
        env.advance(120)
        parts['recorder'].end_component_load('Table')

        document = json.loads(parts['generator'].export_data())
        assert set(document) == {'timestamp', 'userAgent', 'metrics', 'summary'}
        assert document['metrics'][0]['name'] == 'component_Table'
        assert document['metrics'][0]['duration'] == 120
        assert document['summary']['components']['count'] == 1

    def test_import_restores_metrics(self, parts, env):
        parts['recorder'].start_bundle_load('vendor')
        env.advance(640)
        parts['recorder'].end_bundle_load('vendor', size=1024)

        metrics = import_metrics(parts['generator'].export_data())
        assert len(metrics) == 1
        assert metrics[0].name == 'bundle_vendor'
        assert metrics[0].duration == 640
        assert metrics[0].type == 'bundle'
        assert metrics[0].metadata.size == 1024
        assert [m.to_dict() for m in metrics] == [m.to_dict() for m in parts['store'].values()]

    def test_parse_export_rejects_missing_fields(self):
        with pytest.raises(ValueError, match='metrics'):
            parse_export({'timestamp': 'x', 'userAgent': 'y', 'summary': {}})

    def test_write_export(self, parts, tmp_path):
        path = parts['generator'].write_export(tmp_path / 'exports')
        assert path.name == 'performance-metrics-2023-11-14T22-13-20Z.json'
        assert load_export(path)['userAgent'] == 'pytest-agent'

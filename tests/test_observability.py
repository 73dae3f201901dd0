import pytest
import os
import sys
from unittest.mock import patch, MagicMock

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prometheus_client import REGISTRY

from observability.metrics import metrics
from observability.tracing import setup_tracing, get_tracer, template_span


def test_exporter_disabled():
    with patch("observability.metrics.start_http_server") as mock_start:
        assert metrics.start_exporter(0) is False
    mock_start.assert_not_called()


def test_exporter_started():
    with patch("observability.metrics.start_http_server") as mock_start:
        assert metrics.start_exporter(9100, "127.0.0.1") is True
    mock_start.assert_called_once_with(9100, addr="127.0.0.1")


def test_render_timer_observes():
    """Test render durations land in the histogram."""
    labels = {"extension": "timer-test"}
    before = REGISTRY.get_sample_value("staticserve_template_render_seconds_count", labels) or 0.0

    with metrics.render_timer("timer-test"):
        pass

    assert REGISTRY.get_sample_value("staticserve_template_render_seconds_count", labels) == before + 1


def test_in_flight_gauge_balances():
    before = REGISTRY.get_sample_value("staticserve_requests_in_flight")

    with metrics.in_flight():
        assert REGISTRY.get_sample_value("staticserve_requests_in_flight") == before + 1
    assert REGISTRY.get_sample_value("staticserve_requests_in_flight") == before

    with pytest.raises(ValueError):
        with metrics.in_flight():
            raise ValueError("boom")
    assert REGISTRY.get_sample_value("staticserve_requests_in_flight") == before


def test_tracing_disabled():
    with patch("observability.tracing.TracerProvider") as mock_provider:
        assert setup_tracing(MagicMock(), enabled=False) is False
    mock_provider.assert_not_called()


def test_tracing_enabled():
    """Test tracing installs a provider and instruments the app."""
    app = MagicMock()
    with patch("observability.tracing.TracerProvider") as mock_provider, \
         patch("observability.tracing.OTLPSpanExporter") as mock_exporter, \
         patch("observability.tracing.BatchSpanProcessor"), \
         patch("observability.tracing.trace.set_tracer_provider") as mock_set, \
         patch("observability.tracing.FastAPIInstrumentor") as mock_instrumentor:
        assert setup_tracing(app, enabled=True, endpoint="collector:4317") is True

    mock_exporter.assert_called_once_with(endpoint="collector:4317")
    mock_set.assert_called_once_with(mock_provider.return_value)
    mock_instrumentor.instrument_app.assert_called_once_with(app, tracer_provider=mock_provider.return_value)
    resource = mock_provider.call_args.kwargs["resource"]
    assert resource.attributes["service.name"] == "staticserve"


def test_tracing_failure_is_logged():
    with patch("observability.tracing.TracerProvider", side_effect=RuntimeError("no sdk")):
        assert setup_tracing(None, enabled=True) is False


def test_get_tracer():
    with get_tracer().start_as_current_span("test-span"):
        pass


def test_tracing_custom_service_name():
    with patch("observability.tracing.TracerProvider") as mock_provider, \
         patch("observability.tracing.OTLPSpanExporter"), \
         patch("observability.tracing.BatchSpanProcessor"), \
         patch("observability.tracing.trace.set_tracer_provider"):
        assert setup_tracing(None, enabled=True, service_name="docs-preview") is True

    resource = mock_provider.call_args.kwargs["resource"]
    assert resource.attributes["service.name"] == "docs-preview"


def test_template_span_attributes():
    span = MagicMock()
    tracer = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = span

    with patch("observability.tracing.get_tracer", return_value=tracer):
        with template_span("erb", "/page.erb") as current:
            assert current is span

    tracer.start_as_current_span.assert_called_once_with("render_template")
    span.set_attribute.assert_any_call("template.extension", "erb")
    span.set_attribute.assert_any_call("url.path", "/page.erb")

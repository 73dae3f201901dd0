"""
OpenTelemetry wiring for staticserve.

Tracing is off unless ENABLE_TRACING is set. With it on, spans are exported
over OTLP gRPC under the "staticserve" service name and every request gets a
server span from the FastAPI instrumentation.
"""

from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
import logging

logger = logging.getLogger(__name__)

TRACER_NAME = "staticserve.tracer"


def setup_tracing(app=None, enabled=False, endpoint="localhost:4317", service_name="staticserve"):
    """
    Install an OTLP-exporting tracer provider.

    Args:
        app (FastAPI, optional): Application whose requests get server spans
        enabled (bool): Whether tracing is switched on
        endpoint (str): OTLP gRPC collector endpoint
        service_name (str): service.name resource attribute of every span

    Returns:
        bool: True if tracing was installed
    """
    if not enabled:
        logger.info("Tracing is disabled")
        return False

    try:
        resource = Resource.create({SERVICE_NAME: service_name})
        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(tracer_provider)

        if app:
            FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)
    except Exception as e:
        # Tracing is optional: serve without it
        logger.error(f"Failed to set up tracing: {e}")
        return False

    logger.info(f"Tracing {service_name} to {endpoint}")
    return True


def get_tracer():
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def template_span(extension, url_path):
    """Span around one template render, tagged with what was rendered."""
    with get_tracer().start_as_current_span("render_template") as span:
        span.set_attribute("template.extension", extension)
        span.set_attribute("url.path", url_path)
        yield span

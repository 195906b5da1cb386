"""OpenTelemetry tracing for the IPAM service.

`setup_telemetry` installs the provider once at startup. Services open
spans through `get_tracer` or `trace_operation` and tag them with the
subnet, device and scheme they act on.
"""

import logging
from contextlib import contextmanager
from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from subnetly import __version__
from subnetly.config import settings

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None


def _set_attributes(span: trace.Span, attributes: dict) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)


def setup_telemetry() -> None:
    """Install the tracer provider and the module tracer."""
    global _tracer

    resource = Resource(
        attributes={
            SERVICE_NAME: settings.OTEL_SERVICE_NAME,
            SERVICE_VERSION: __version__,
            "environment": settings.ENVIRONMENT,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.OTEL_TRACE_SAMPLE_RATE),
    )
    if settings.OTEL_EXPORT_CONSOLE:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(__name__, __version__)

    logger.info(
        "OpenTelemetry initialized",
        extra={
            "service_name": settings.OTEL_SERVICE_NAME,
            "sample_rate": settings.OTEL_TRACE_SAMPLE_RATE,
            "export_console": settings.OTEL_EXPORT_CONSOLE,
        },
    )


def instrument_app(app: Any) -> None:
    """Attach the FastAPI instrumentation; failures only log a warning."""
    try:
        FastAPIInstrumentor.instrument_app(app)
    except Exception as e:
        logger.warning(f"Failed to instrument FastAPI: {e}")
    else:
        logger.info("FastAPI instrumented with OpenTelemetry")


def instrument_sqlalchemy(engine: Any) -> None:
    """Trace the inventory database engine."""
    try:
        SQLAlchemyInstrumentor().instrument(engine=engine)
    except Exception as e:
        logger.warning(f"Failed to instrument SQLAlchemy: {e}")
    else:
        logger.info("SQLAlchemy instrumented with OpenTelemetry")


def get_tracer() -> trace.Tracer:
    """Return the module tracer, falling back to the global provider."""
    global _tracer

    if _tracer is None:
        logger.warning("Tracer not initialized, creating default tracer")
        _tracer = trace.get_tracer(__name__, __version__)
    return _tracer


@contextmanager
def trace_operation(name: str, attributes: Optional[dict] = None):
    """Run a block inside a span, marking the span as errored if it raises.

    Example:
        with trace_operation("service.range_scheme.apply", {"subnet.id": 3}):
            ...
    """
    with get_tracer().start_as_current_span(name) as span:
        _set_attributes(span, attributes or {})
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attributes(**attributes) -> None:
    """Tag the current span, skipping None values."""
    span = trace.get_current_span()
    if span.is_recording():
        _set_attributes(span, attributes)


def add_span_event(name: str, attributes: Optional[dict] = None) -> None:
    """Record an event such as `ipam.device_vacated` on the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes or {})

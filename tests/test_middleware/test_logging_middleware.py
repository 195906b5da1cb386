"""Integration tests for logging middleware."""

import json
import logging
from io import StringIO
from unittest.mock import patch

import pytest
from fastapi import APIRouter, FastAPI
from httpx import ASGITransport, AsyncClient
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from subnetly.middleware.logging import LoggingMiddleware
from subnetly.utils.context import get_context
from subnetly.utils.logger import ContextInjectionFilter, CustomJsonFormatter, get_logger


def create_test_app() -> FastAPI:
    """Create a test FastAPI app with logging middleware."""
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    router = APIRouter()

    @router.get("/subnets")
    async def list_subnets():
        return []

    @router.get("/fail")
    async def fail():
        raise ValueError("database is locked")

    @router.get("/context")
    async def context():
        return get_context()

    app.include_router(router)
    return app


@pytest.fixture
def exporter():
    """Record middleware spans in memory."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    with patch("subnetly.utils.telemetry._tracer", provider.get_tracer(__name__)):
        yield span_exporter


@pytest.fixture
def log_stream():
    """Capture middleware logs as JSON lines."""
    logger = get_logger("subnetly.middleware.logging")
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(ContextInjectionFilter())
    handler.setFormatter(CustomJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    yield stream
    logger.removeHandler(handler)


def read_logs(stream: StringIO) -> dict:
    logs = [json.loads(line) for line in stream.getvalue().splitlines() if line]
    return {log["message"]: log for log in logs}


def make_client(app: FastAPI) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    )


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    @pytest.mark.asyncio
    async def test_logs_request_and_response(self, exporter, log_stream):
        """Test that middleware logs both request start and completion."""
        async with make_client(create_test_app()) as client:
            response = await client.get("/subnets", headers={"X-Site-ID": "2"})

        assert response.status_code == 200
        logs = read_logs(log_stream)
        started = logs["Request started"]
        completed = logs["Request completed"]

        assert started["method"] == "GET"
        assert started["path"] == "/subnets"
        assert started["site_id"] == "2"
        assert started["action"] == "http.request"
        assert completed["status_code"] == 200
        assert completed["request_id"] == started["request_id"]
        assert completed["trace_id"] == started["trace_id"]

    @pytest.mark.asyncio
    async def test_request_id_header(self, exporter):
        """Test a supplied X-Request-ID is echoed back."""
        async with make_client(create_test_app()) as client:
            response = await client.get("/subnets", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Process-Time"].endswith("ms")

    @pytest.mark.asyncio
    async def test_sets_context_during_request(self, exporter):
        """Test handlers see the request context."""
        async with make_client(create_test_app()) as client:
            response = await client.get("/context", headers={"X-Request-ID": "req-7"})

        assert response.json() == {"request_id": "req-7", "action": "http.request"}
        assert get_context() == {}

    @pytest.mark.asyncio
    async def test_span_attributes(self, exporter):
        """Test the request span carries HTTP and site attributes."""
        async with make_client(create_test_app()) as client:
            await client.get("/subnets", headers={"X-Site-ID": "3"})

        span = exporter.get_finished_spans()[0]
        assert span.name == "GET /subnets"
        assert span.attributes["http.method"] == "GET"
        assert span.attributes["http.status_code"] == 200
        assert span.attributes["site.id"] == "3"

    @pytest.mark.asyncio
    async def test_site_attribute_absent_without_header(self, exporter):
        async with make_client(create_test_app()) as client:
            await client.get("/subnets")

        assert "site.id" not in exporter.get_finished_spans()[0].attributes

    @pytest.mark.asyncio
    async def test_logs_failed_request(self, exporter, log_stream):
        """Test unhandled errors are logged and recorded on the span."""
        async with make_client(create_test_app()) as client:
            response = await client.get("/fail")

        assert response.status_code == 500
        failed = read_logs(log_stream)["Request failed"]
        assert failed["error_type"] == "ValueError"
        assert failed["error"] == "database is locked"

        span = exporter.get_finished_spans()[0]
        assert span.events[0].name == "exception"

    @pytest.mark.asyncio
    async def test_generates_request_id(self, exporter, log_stream):
        """Test a request id is generated when none is supplied."""
        async with make_client(create_test_app()) as client:
            response = await client.get("/subnets", headers={"X-Site-ID": "4"})

        request_id = response.headers["X-Request-ID"]
        assert len(request_id) == 32
        completed = read_logs(log_stream)["Request completed"]
        assert completed["request_id"] == request_id
        assert completed["site_id"] == "4"

    @pytest.mark.asyncio
    async def test_failed_request_marks_span_error(self, exporter):
        async with make_client(create_test_app()) as client:
            await client.get("/fail", headers={"X-Site-ID": "2"})

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == trace.StatusCode.ERROR
        assert span.attributes["site.id"] == "2"
        assert get_context() == {}

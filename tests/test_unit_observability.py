"""
Unit tests for observability and tracing helpers.

Tests cover:
- Structured JSON logging with request and principal context
- Request correlation IDs on responses
- Prometheus request metrics
- OTLP header parsing and sampler selection
"""

import json
import logging
import re
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ALWAYS_ON, ParentBased, TraceIdRatioBased
from prometheus_client import CollectorRegistry, generate_latest

from cavgo.core import telemetry
from cavgo.core.observability import (
    Metrics,
    ObservabilityMiddleware,
    StructuredFormatter,
    extract_request_context,
    generate_request_id,
    get_request_id,
    set_correlation_id,
    set_principal,
)
from cavgo.core.telemetry import build_sampler, parse_headers


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="cavgo.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContext:
    @pytest.mark.anyio
    async def test_request_id_is_a_uuid(self):
        assert re.fullmatch(r"[0-9a-f-]{36}", generate_request_id())

    @pytest.mark.anyio
    async def test_request_context_defaults_to_anonymous(self):
        set_correlation_id("req-1")
        set_principal("", "")

        context = extract_request_context(None)

        assert context == {
            "request_id": "req-1",
            "principal_id": "anonymous",
            "principal_kind": "anonymous",
        }


class TestStructuredFormatter:
    @pytest.mark.anyio
    async def test_json_entry_carries_context_and_extra(self):
        set_correlation_id("req-42")
        set_principal("agent-7", "agent")

        entry = json.loads(StructuredFormatter().format(_record("Booked", booking_id="b-1")))

        assert entry["message"] == "Booked"
        assert entry["level"] == "INFO"
        assert entry["request_id"] == "req-42"
        assert entry["principal_id"] == "agent-7"
        assert entry["principal_kind"] == "agent"
        assert entry["extra"] == {"booking_id": "b-1"}
        set_principal("", "")

    @pytest.mark.anyio
    async def test_exception_info_is_summarized(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record("failed")
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["exception"] == {"type": "ValueError", "message": "boom"}


class TestObservabilityMiddleware:
    def _app(self, registry: CollectorRegistry) -> FastAPI:
        app = FastAPI()
        app.add_middleware(ObservabilityMiddleware, metrics_instance=Metrics(registry))

        @app.get("/api/v1/trips")
        async def trips():
            return {"request_id": get_request_id()}

        return app

    def test_request_id_is_propagated(self):
        client = TestClient(self._app(CollectorRegistry()))

        response = client.get("/api/v1/trips", headers={"X-Request-ID": "from-gateway"})

        assert response.headers["X-Request-ID"] == "from-gateway"
        assert response.json()["request_id"] == "from-gateway"

    def test_request_id_is_generated(self):
        client = TestClient(self._app(CollectorRegistry()))

        response = client.get("/api/v1/trips")

        assert re.fullmatch(r"[0-9a-f-]{36}", response.headers["X-Request-ID"])

    def test_requests_are_counted(self):
        registry = CollectorRegistry()
        client = TestClient(self._app(registry))

        client.get("/api/v1/trips")
        client.get("/api/v1/trips")

        exposition = generate_latest(registry).decode()
        assert re.search(
            r'http_requests_total\{method="GET",route="/api/v1/trips",status_code="200"\} 2\.0',
            exposition,
        )


class TestTelemetry:
    @pytest.mark.anyio
    async def test_parse_headers(self):
        assert parse_headers(" api-key = abc , tenant=cavgo ") == {
            "api-key": "abc",
            "tenant": "cavgo",
        }
        assert parse_headers("novalue,k=v") == {"k": "v"}
        assert parse_headers(None) == {}

    @pytest.mark.anyio
    async def test_build_sampler(self):
        assert build_sampler("always_on", 1.0) is ALWAYS_ON
        assert build_sampler("always_off", 1.0) is ALWAYS_OFF
        assert isinstance(build_sampler("traceidratio", 0.5), TraceIdRatioBased)
        assert isinstance(build_sampler("parentbased_traceidratio", 0.5), ParentBased)

    @pytest.mark.anyio
    async def test_disabled_tracing_is_a_no_op(self, monkeypatch):
        monkeypatch.setattr(telemetry.settings, "otel_enabled", False)

        assert telemetry.init_telemetry() is None
        telemetry.shutdown_telemetry()

    @pytest.mark.anyio
    async def test_no_trace_id_outside_a_span(self):
        assert telemetry.get_trace_id() is None

"""
OpenTelemetry tracing for the Cavgo booking API.

Instruments:
- FastAPI (inbound HTTP)
- SQLAlchemy (database queries)
- HTTPX (mobile-money gateway calls)

Configured through OTEL_* settings; tracing is off unless OTEL_ENABLED=true.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)

from cavgo.core.config import settings

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None


def parse_headers(headers_string: str | None) -> dict[str, str]:
    """Parse "key1=value1,key2=value2" exporter headers."""
    if not headers_string:
        return {}

    headers = {}
    for pair in headers_string.split(","):
        key, sep, value = pair.strip().partition("=")
        if sep:
            headers[key.strip()] = value.strip()
    return headers


def build_sampler(name: str, ratio: float) -> Sampler:
    if name == "always_on":
        return ALWAYS_ON
    if name == "always_off":
        return ALWAYS_OFF
    if name == "traceidratio":
        return TraceIdRatioBased(ratio)
    return ParentBased(root=TraceIdRatioBased(ratio))


def init_telemetry() -> TracerProvider | None:
    """
    Set up the tracer provider and OTLP exporter.

    Returns:
        The provider when tracing is enabled, None otherwise
    """
    global _tracer_provider

    if not settings.otel_enabled:
        logger.info("OpenTelemetry tracing is disabled (OTEL_ENABLED=false)")
        return None

    try:
        resource = Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                DEPLOYMENT_ENVIRONMENT: settings.app_env.value,
            }
        )
        provider = TracerProvider(
            resource=resource,
            sampler=build_sampler(
                settings.otel_traces_sampler, settings.otel_traces_sampler_arg
            ),
        )
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(
                    endpoint=settings.otel_exporter_otlp_endpoint,
                    headers=parse_headers(settings.otel_exporter_otlp_headers),
                )
            )
        )
        trace.set_tracer_provider(provider)
        _tracer_provider = provider

        logger.info(
            "OpenTelemetry initialized: service=%s, endpoint=%s, sampler=%s",
            settings.otel_service_name,
            settings.otel_exporter_otlp_endpoint,
            settings.otel_traces_sampler,
        )
        return provider
    except Exception as e:
        logger.error("Failed to initialize OpenTelemetry: %s", e, exc_info=True)
        return None


def instrument_app(app: Any, engine: Any = None) -> None:
    """Instrument FastAPI, the SQLAlchemy engine and outbound HTTPX calls."""
    if not settings.otel_enabled:
        logger.debug("OpenTelemetry disabled - skipping instrumentation")
        return

    try:
        FastAPIInstrumentor.instrument_app(app)
        HTTPXClientInstrumentor().instrument()
        if engine is not None:
            SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
        logger.info("OpenTelemetry instrumentation enabled")
    except Exception as e:
        logger.error("Failed to instrument application: %s", e, exc_info=True)


def shutdown_telemetry() -> None:
    """Flush pending spans and drop the provider."""
    global _tracer_provider

    if _tracer_provider is None:
        return

    try:
        _tracer_provider.shutdown()
        logger.info("OpenTelemetry shutdown complete")
    except Exception as e:
        logger.error("Error during OpenTelemetry shutdown: %s", e, exc_info=True)
    finally:
        _tracer_provider = None


def get_trace_id() -> str | None:
    """Current trace id as hex, or None outside a recording span."""
    span = trace.get_current_span()
    if not span.is_recording():
        return None
    return format(span.get_span_context().trace_id, "032x")

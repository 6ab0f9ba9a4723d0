"""
Observability module for the Cavgo booking API.

Provides:
- Structured logging with JSON format and correlation IDs
- Request correlation ID (request_id) generation and propagation
- Prometheus metrics collection (HTTP, bookings, payments, replication)
- Request tracking middleware for latency and status codes

Usage:
    from cavgo.core.observability import get_request_id, metrics
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cavgo.core.telemetry import get_trace_id

# ============================================================================
# Context Variables for Request Tracking
# ============================================================================

_request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
_principal_id_ctx: ContextVar[str] = ContextVar("principal_id", default="")
_principal_kind_ctx: ContextVar[str] = ContextVar("principal_kind", default="")


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


def set_correlation_id(request_id: str) -> None:
    """Set the correlation ID for the current request context."""
    _request_id_ctx.set(request_id)


def get_principal_id() -> str:
    return _principal_id_ctx.get()


def get_principal_kind() -> str:
    return _principal_kind_ctx.get()


def set_principal(principal_id: str, kind: str) -> None:
    """Record who is acting in the current request context."""
    _principal_id_ctx.set(principal_id)
    _principal_kind_ctx.set(kind)


# ============================================================================
# Structured Logging Configuration
# ============================================================================

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON with standard fields:
    - timestamp: ISO 8601 format
    - level, logger, message
    - request_id: Correlation ID (if available)
    - principal_id / principal_kind: who made the request (if known)
    - trace_id: OpenTelemetry trace id (if a span is recording)
    - extra: Any additional context passed via logging's extra=
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_entry["request_id"] = request_id

        principal_id = get_principal_id()
        if principal_id:
            log_entry["principal_id"] = principal_id
            log_entry["principal_kind"] = get_principal_kind()

        trace_id = get_trace_id()
        if trace_id:
            log_entry["trace_id"] = trace_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        log_entry["file"] = record.pathname
        log_entry["line"] = record.lineno
        log_entry["function"] = record.funcName

        extra_keys = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS
        }
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """
    Configure root logger with structured JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)


# ============================================================================
# Prometheus Metrics
# ============================================================================

# Use a custom registry to avoid conflicts with other Prometheus metrics
_registry = CollectorRegistry()


class Metrics:
    """
    Centralized metrics collection for the application.

    Metrics groups:
    - HTTP: Request rate, errors, latency
    - Bookings: created / expired, payment requests
    - Replication: Firestore trip writes
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "route", "status_code"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "route"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=registry,
        )
        self.http_requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently being processed",
            ["method", "route"],
            registry=registry,
        )
        self.http_errors_total = Counter(
            "http_errors_total",
            "Unhandled errors raised while serving HTTP requests",
            ["error_type", "method", "route"],
            registry=registry,
        )

        self.bookings_created_total = Counter(
            "bookings_created_total",
            "Bookings created, by channel and initial status",
            ["channel", "status"],
            registry=registry,
        )
        self.bookings_expired_total = Counter(
            "bookings_expired_total",
            "Pending bookings expired by the payment watcher",
            registry=registry,
        )
        self.payment_requests_total = Counter(
            "payment_requests_total",
            "Mobile-money gateway requests",
            ["operation", "outcome"],
            registry=registry,
        )
        self.trip_replications_total = Counter(
            "trip_replications_total",
            "Firestore trip replication writes",
            ["operation", "outcome"],
            registry=registry,
        )


metrics = Metrics(_registry)


# ============================================================================
# Middleware
# ============================================================================


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds observability to all requests.

    Features:
    - Generates and propagates request_id (correlation ID)
    - Logs all requests with structured fields
    - Tracks request latency and records Prometheus metrics
    - Adds request_id to response headers
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics_instance: Metrics | None = None,
        skip_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.metrics = metrics_instance or metrics
        self.skip_paths = set(skip_paths or ["/api/v1/health", "/api/v1/readyz", "/metrics"])

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_correlation_id(request_id)
        set_principal("", "")

        route = request.scope.get("route")
        route_pattern = getattr(route, "path", None) or request.url.path
        is_skipped_path = any(route_pattern.startswith(path) for path in self.skip_paths)

        self.metrics.http_requests_in_progress.labels(
            method=request.method, route=route_pattern
        ).inc()
        start_time = time.time()

        try:
            response = await call_next(request)
            latency_ms = (time.time() - start_time) * 1000

            self.metrics.http_requests_total.labels(
                method=request.method,
                route=route_pattern,
                status_code=response.status_code,
            ).inc()
            self.metrics.http_request_duration_seconds.labels(
                method=request.method, route=route_pattern
            ).observe(latency_ms / 1000)

            response.headers["X-Request-ID"] = request_id

            if not is_skipped_path:
                logging.getLogger("cavgo.request").info(
                    "%s %s",
                    request.method,
                    route_pattern,
                    extra={
                        "method": request.method,
                        "route": route_pattern,
                        "status_code": response.status_code,
                        "latency_ms": round(latency_ms, 2),
                    },
                )
            return response

        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            error_type = type(e).__name__
            self.metrics.http_requests_total.labels(
                method=request.method, route=route_pattern, status_code=500
            ).inc()
            self.metrics.http_errors_total.labels(
                error_type=error_type, method=request.method, route=route_pattern
            ).inc()
            logging.getLogger("cavgo.request").error(
                "%s %s - %s: %s",
                request.method,
                route_pattern,
                error_type,
                e,
                extra={"latency_ms": round(latency_ms, 2), "error_type": error_type},
                exc_info=True,
            )
            raise

        finally:
            self.metrics.http_requests_in_progress.labels(
                method=request.method, route=route_pattern
            ).dec()


# ============================================================================
# Metrics Endpoint
# ============================================================================


def metrics_endpoint() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(_registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


def extract_request_context(request: Request) -> dict[str, Any]:
    """
    Extract observability context from request for logging.

    Returns:
        Dictionary with request_id and the acting principal
    """
    return {
        "request_id": get_request_id(),
        "principal_id": get_principal_id() or "anonymous",
        "principal_kind": get_principal_kind() or "anonymous",
    }

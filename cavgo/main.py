import hmac
import logging
import re
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cavgo.api.routes.agents import router as agents_router
from cavgo.api.routes.bookings import router as bookings_router
from cavgo.api.routes.cards import router as cards_router
from cavgo.api.routes.cars import router as cars_router
from cavgo.api.routes.drivers import router as drivers_router
from cavgo.api.routes.health import router as health_router
from cavgo.api.routes.locations import router as locations_router
from cavgo.api.routes.payments import router as payments_router
from cavgo.api.routes.pos_machines import router as pos_machines_router
from cavgo.api.routes.schedules import router as schedules_router
from cavgo.api.routes.superusers import router as superusers_router
from cavgo.api.routes.tickets import router as tickets_router
from cavgo.api.routes.trip_presets import router as trip_presets_router
from cavgo.api.routes.trips import router as trips_router
from cavgo.api.routes.users import router as users_router
from cavgo.api.routes.wallets import router as wallets_router
from cavgo.core.config import settings
from cavgo.core.db import create_all_tables, get_async_engine
from cavgo.core.errors import CavgoError, get_status_code
from cavgo.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from cavgo.core.observability import (
    ObservabilityMiddleware,
    configure_structured_logging,
    extract_request_context,
    metrics_endpoint,
)
from cavgo.core.telemetry import init_telemetry, instrument_app, shutdown_telemetry
from cavgo.services.booking_events import BookingEventBus
from cavgo.services.momo import MomoClient
from cavgo.services.payment_watcher import PaymentWatcher
from cavgo.services.trip_replicator import build_trip_replicator

# Configure structured logging before creating logger
if settings.observability_structured_logs:
    configure_structured_logging(settings.app_log_level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# File paths, SQL fragments and driver messages that must not reach clients in prod
_LEAKY = re.compile(
    r"[/\\][\w/-]+\.py|SELECT .* FROM|INSERT INTO|UPDATE .* SET|DELETE FROM"
    r"|UNIQUE constraint|duplicate key value|asyncpg\.|sqlite3\.",
    re.IGNORECASE,
)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return "[REDACTED]" if _LEAKY.search(value) else value
    if isinstance(value, dict):
        return {key: _redact(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def _public_details(details: dict[str, Any]) -> dict[str, Any]:
    """Error details as sent to clients; redacted in prod only."""
    if settings.app_env != "prod":
        return details
    return _redact(details)


def _log_security_event(
    request: Request,
    event_type: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log an authentication or authorization failure for the audit trail.

    Args:
        request: The incoming request
        event_type: "AUTH_FAILURE" or "AUTHZ_FAILURE"
        status_code: HTTP status code
        details: Additional event details
    """
    logger.warning(
        f"Security event: {event_type}",
        extra={
            "security_event": True,
            "event_type": event_type,
            "client_ip": request.client.host if request.client else "unknown",
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "user_agent": request.headers.get("user-agent", "unknown"),
            "details": details or {},
            **extract_request_context(request),
        },
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Sets up:
    - OpenTelemetry tracing (when OTEL_ENABLED)
    - Structured logging, request metrics and security middleware
    - Exception handlers for domain errors
    - Long-lived services on app.state (event bus, trip replicator,
      payment watcher, mobile-money client)
    - API routers and the Prometheus metrics endpoint
    """
    app = FastAPI(
        title="Cavgo Booking API",
        description="Transit trip booking, ticketing and payments",
        version="0.1.0",
    )

    # ============================================================================
    # Long-lived services
    # ============================================================================

    app.state.event_bus = BookingEventBus()
    app.state.trip_replicator = build_trip_replicator(settings)
    app.state.momo_client = MomoClient()
    app.state.payment_watcher = PaymentWatcher(
        replicator=app.state.trip_replicator,
        event_bus=app.state.event_bus,
    )

    @app.on_event("startup")
    async def startup_app():
        """Initialize tracing and, for local SQLite, the schema."""
        init_telemetry()
        instrument_app(app, get_async_engine())

        if settings.is_sqlite and settings.app_env in ("local", "test"):
            await create_all_tables()

    @app.on_event("shutdown")
    async def shutdown_app():
        """Stop payment watchers, close the gateway client and flush spans."""
        await app.state.payment_watcher.shutdown()
        await app.state.momo_client.aclose()
        shutdown_telemetry()

    # ============================================================================
    # Middleware
    # ============================================================================

    if settings.observability_enabled:
        app.add_middleware(ObservabilityMiddleware)

    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=1)

    # ============================================================================
    # Exception Handlers
    # ============================================================================

    @app.exception_handler(CavgoError)
    async def cavgo_error_handler(request: Request, exc: CavgoError) -> JSONResponse:
        """
        Map domain exceptions to HTTP status codes.

        Args:
            request: The incoming request
            exc: The domain exception raised

        Returns:
            JSON response with error details
        """
        status_code = get_status_code(exc)
        context = {
            "details": exc.details,
            "path": request.url.path,
            **extract_request_context(request),
        }

        if status_code >= 500:
            logger.error(f"{exc.__class__.__name__}: {exc.message}", extra=context)
        elif status_code == 401:
            _log_security_event(request, "AUTH_FAILURE", 401, {"reason": exc.message})
        elif status_code == 403:
            _log_security_event(request, "AUTHZ_FAILURE", 403, {"reason": exc.message})
        else:
            logger.warning(f"{exc.__class__.__name__}: {exc.message}", extra=context)

        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.__class__.__name__,
                "message": exc.message,
                "details": _public_details(exc.details),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Give FastAPI HTTP exceptions the same error body as domain errors."""
        if exc.status_code == 401:
            _log_security_event(request, "AUTH_FAILURE", 401, {"reason": str(exc.detail)})
        elif exc.status_code == 403:
            _log_security_event(request, "AUTHZ_FAILURE", 403, {"reason": str(exc.detail)})
        elif exc.status_code >= 500:
            logger.error(
                f"HTTP {exc.status_code}: {exc.detail}",
                extra={"path": request.url.path, **extract_request_context(request)},
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "HTTPException", "message": exc.detail, "details": {}},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Catch-all handler for unexpected exceptions.

        Logs the full exception and returns a generic 500 without internal
        details.
        """
        logger.error(
            f"Unhandled exception: {exc}",
            exc_info=True,
            extra={"path": request.url.path, **extract_request_context(request)},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "details": {},
            },
        )

    # ============================================================================
    # Router Registration
    # ============================================================================

    for router in (
        health_router,
        users_router,
        drivers_router,
        agents_router,
        superusers_router,
        cars_router,
        locations_router,
        trips_router,
        trip_presets_router,
        bookings_router,
        tickets_router,
        cards_router,
        wallets_router,
        pos_machines_router,
        payments_router,
        schedules_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    # ============================================================================
    # Metrics Endpoint (Prometheus) - Token Protected
    # ============================================================================

    async def protected_metrics(request: Request) -> Response:
        """Prometheus metrics, readable only with the X-Metrics-Token header."""
        expected_token = settings.metrics_token
        if not expected_token:
            logger.error(
                "Metrics endpoint accessed but METRICS_TOKEN not configured",
                extra={"security_event": True, "event_type": "METRICS_NOT_CONFIGURED"},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Metrics token not configured. Set METRICS_TOKEN environment variable.",
            )

        metrics_token = request.headers.get("X-Metrics-Token")
        if not hmac.compare_digest(metrics_token or "", expected_token):
            logger.warning(
                "Unauthorized metrics access attempt",
                extra={
                    "security_event": True,
                    "event_type": "METRICS_ACCESS_DENIED",
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid metrics token")

        return metrics_endpoint()

    if settings.observability_enabled:
        app.add_route("/metrics", protected_metrics)

    return app


app = create_app()

"""Application configuration using Pydantic Settings.

Configuration is loaded from environment variables. Optionally, point
`ENV_FILE` at a local env file for development.
"""

import os
from enum import Enum
from urllib.parse import parse_qsl, urlencode

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Query options that configure the SQLAlchemy pool rather than the driver.
_ENGINE_ONLY_OPTIONS = {"pool_size", "max_overflow", "pool_timeout", "pool_recycle"}


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


def _strip_engine_options(url: str) -> str:
    base, sep, query = url.partition("?")
    if not sep:
        return url
    kept = [(k, v) for k, v in parse_qsl(query) if k not in _ENGINE_ONLY_OPTIONS]
    return f"{base}?{urlencode(kept)}" if kept else base


def _with_driver(url: str, driver: str) -> str:
    scheme, sep, rest = url.partition("://")
    base = scheme.split("+", 1)[0]
    if base in ("postgres", "postgresql"):
        base = "postgresql"
    return f"{base}+{driver}{sep}{rest}"


class Settings(BaseSettings):
    """
    Application settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "cavgo-booking-api"
    app_log_level: str = "INFO"

    # Observability
    observability_enabled: bool = True
    observability_structured_logs: bool = True

    # OpenTelemetry tracing
    otel_enabled: bool = False
    otel_service_name: str = "cavgo-booking-api"
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_exporter_otlp_headers: str | None = None
    otel_traces_sampler: str = "parent_trace_always"
    otel_traces_sampler_arg: float = 1.0

    # Database
    database_url_app: str = "sqlite:///./cavgo.db"

    # Token signing
    jwt_secret: str = Field(default="change-me-local-secret")
    jwt_refresh_secret: str = Field(default="change-me-local-refresh-secret")
    jwt_algorithm: str = "HS256"

    # Token lifetimes (hours) per principal kind
    user_token_hours: int = 7
    driver_token_hours: int = 1
    agent_token_hours: int = 7
    pos_token_hours: int = 24
    superuser_token_hours: int = 1
    superuser_refresh_hours: int = 3

    # Tickets
    qr_secret_key: str = "change-me-qr-secret"
    ticket_validity_hours: int = 4

    # Pending-booking payment watcher
    payment_poll_interval_seconds: float = 30.0
    payment_timeout_seconds: float = 300.0

    # Mobile money gateway
    momo_base_url: str = "https://www.intouchpay.co.rw/api"
    momo_username: str = ""
    momo_account_no: str = ""
    momo_partner_password: str = ""
    momo_callback_url: str = ""
    # Shared secret the gateway presents on payment callbacks (X-Callback-Token
    # header or `token` query parameter of MOMO_CALLBACK_URL)
    momo_callback_token: str | None = None
    momo_sid: str = ""
    momo_timeout_seconds: float = 30.0

    # Firestore trip replication
    firestore_enabled: bool = False
    firestore_project_id: str | None = None
    firestore_credentials_path: str | None = None
    firestore_trips_collection: str = "trips"

    # Customers created while issuing a card get this password
    default_card_user_password: str = "ChangeMe123!"

    # Metrics token for protecting /metrics endpoint
    metrics_token: str | None = None

    # When set, /health and /readyz require X-Health-Token
    health_token: str | None = None

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def async_url(self) -> str:
        """Database URL with an async driver and without pool-only options."""
        url = _strip_engine_options(self.database_url_app)
        if url.startswith("sqlite"):
            return _with_driver(url, "aiosqlite")
        return _with_driver(url, "asyncpg")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url_app.startswith("sqlite")

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("payment_poll_interval_seconds", "payment_timeout_seconds")
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("payment watcher intervals must be positive")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """
        Validate production-specific settings.

        These checks prevent insecure configurations from being deployed to production.
        """
        if self.payment_poll_interval_seconds > self.payment_timeout_seconds:
            raise ValueError("PAYMENT_POLL_INTERVAL_SECONDS must not exceed the timeout")

        if self.app_env == AppEnvironment.PROD:
            for name in ("jwt_secret", "jwt_refresh_secret", "qr_secret_key"):
                value = getattr(self, name)
                if len(value) < 32 or value.startswith("change-me"):
                    raise ValueError(
                        f"{name.upper()} must be set and at least 32 characters in production"
                    )

            if not self.momo_callback_token or len(self.momo_callback_token) < 16:
                raise ValueError("MOMO_CALLBACK_TOKEN must be set and at least 16 characters in production")

            if not self.database_url_app.startswith(("postgresql", "postgres")):
                raise ValueError("DATABASE_URL_APP must use PostgreSQL in production")

            for origin in self.cors_origins_list:
                if "localhost" in origin or "127.0.0.1" in origin:
                    raise ValueError(
                        f"CORS origins must not contain localhost in production: {origin}"
                    )

        return self


settings = Settings()

"""Reusable column validators for the ORM models."""

import uuid
from datetime import date, datetime
from typing import Any

JsonType = dict[str, "JsonType"] | list["JsonType"] | str | int | float | bool | None


def normalize_email(value: str) -> str:
    """Trim and lowercase an email address.

    Raises:
        ValueError: If the value does not look like an email address
    """
    value = value.strip().lower()
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise ValueError(f"Invalid email address: {value}")
    return value


def validate_digits(value: str, *, field: str) -> str:
    """Ensure a phone-like field contains only digits."""
    value = value.strip()
    if not value.isdigit():
        raise ValueError(f"{field} must contain only digits")
    return value


def to_jsonable(value: Any) -> JsonType:
    """Convert UUIDs, datetimes and nested containers to JSON-serializable values.

    Used for JSON columns and for documents replicated to Firestore.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "value") and isinstance(value.value, (str, int)):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return str(value)

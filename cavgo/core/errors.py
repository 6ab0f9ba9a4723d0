"""
Domain-specific exceptions for the Cavgo booking API.

These exceptions represent business rule violations and are mapped
to HTTP status codes in the API layer.
"""

from typing import Any


class CavgoError(Exception):
    """Base exception for all booking domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(CavgoError):
    """
    Raised when input data fails a business validation.

    Examples:
    - Driver of type company registered without a company
    - Car registered by an admin without any owner
    - Wallet transaction type other than credit/debit

    HTTP Status: 400 Bad Request
    """

    pass


class NotFoundError(CavgoError):
    """
    Raised when a requested resource does not exist.

    Examples:
    - Trip, route or location not found
    - Card with the given NFC id not found

    HTTP Status: 404 Not Found
    """

    pass


class UnauthorizedError(CavgoError):
    """
    Raised when the request carries no usable identity.

    Examples:
    - Missing or invalid bearer token
    - Wrong login credentials
    - Endpoint requires an agent but the caller is anonymous

    HTTP Status: 401 Unauthorized
    """

    pass


class ForbiddenError(CavgoError):
    """
    Raised when the caller is authenticated but not allowed to act.

    Examples:
    - Reading another passenger's booking
    - Company user deleting a trip on another company's car

    HTTP Status: 403 Forbidden
    """

    pass


class InsufficientFundsError(CavgoError):
    """
    Raised when a wallet or agent balance cannot cover an amount.

    HTTP Status: 402 Payment Required
    """

    pass


class ConflictError(CavgoError):
    """
    Raised when an operation conflicts with current state.

    Examples:
    - Duplicate email, plate number or serial number
    - Card already has a wallet
    - Not enough seats left on the trip

    HTTP Status: 409 Conflict
    """

    pass


class PaymentGatewayError(CavgoError):
    """
    Raised when the mobile-money gateway fails or rejects a request.

    HTTP Status: 502 Bad Gateway
    """

    pass


# HTTP Status Code Mapping
ERROR_STATUS_MAP = {
    ValidationError: 400,
    UnauthorizedError: 401,
    InsufficientFundsError: 402,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    PaymentGatewayError: 502,
}


def get_status_code(error: Exception) -> int:
    """
    Get the HTTP status code for a given exception.

    Args:
        error: The exception instance

    Returns:
        HTTP status code (defaults to 500 for unknown errors)
    """
    return ERROR_STATUS_MAP.get(type(error), 500)

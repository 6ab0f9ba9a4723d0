"""
Ticket issuing and ticket-code utilities.

- 18-digit Luhn-checked ticket references
- NFC ids and validity windows
- HMAC-signed QR payloads
- Trip-derived boarding codes
"""

import base64
import hashlib
import hmac
import json
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.config import settings
from cavgo.core.errors import ValidationError
from cavgo.core.timeutils import ensure_utc, utcnow
from cavgo.db.models import Booking, Card, Ticket

logger = logging.getLogger(__name__)


def luhn_check_digit(digits: str) -> int:
    """Return the Luhn digit that makes `digits + check` a valid Luhn number."""
    total = 0
    double = True
    for char in reversed(digits):
        digit = int(char)
        if double:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
        double = not double
    return (10 - total % 10) % 10


def is_luhn_valid(number: str) -> bool:
    return number.isdigit() and luhn_check_digit(number[:-1]) == int(number[-1])


def _random_digits(length: int) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def generate_id() -> str:
    """18-digit id: 17 random digits followed by their Luhn check digit."""
    base = _random_digits(17)
    return f"{base}{luhn_check_digit(base)}"


def generate_nfc_id(booking_id: Any, now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"NFC-{booking_id}-{int(now.timestamp() * 1000)}"


def calculate_ticket_expiry(start: datetime) -> datetime:
    return start + timedelta(hours=settings.ticket_validity_hours)


def generate_secure_id(trip_id: Any) -> str:
    """
    Boarding code derived from a trip id.

    The hex digits of the trip id are summed; a random 8-digit number with its
    Luhn digit appended is floor-divided by that sum. The result is
    "{quotient}-{sum}", so a driver can check the suffix against the trip.

    Raises:
        ValidationError: If the trip id has no hex digits or they sum to zero
    """
    hex_values = [int(char, 16) for char in str(trip_id) if char in "0123456789abcdefABCDEF"]
    if not hex_values:
        raise ValidationError(
            "Trip ID contains no hexadecimal characters", details={"trip_id": str(trip_id)}
        )
    digit_sum = sum(hex_values)
    if digit_sum == 0:
        raise ValidationError(
            "Sum of digits from trip ID is zero", details={"trip_id": str(trip_id)}
        )

    base = _random_digits(8)
    luhn_number = int(f"{base}{luhn_check_digit(base)}")
    return f"{luhn_number // digit_sum}-{digit_sum}"


def _sign(payload: dict[str, str]) -> str:
    message = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return hmac.new(settings.qr_secret_key.encode("utf-8"), message, hashlib.sha256).hexdigest()


def generate_qr_code(
    booking_id: Any,
    trip_id: Any,
    valid_from: datetime,
    valid_until: datetime,
    *,
    user_id: Any = None,
    agent_id: Any = None,
) -> str:
    """
    Build the signed QR payload for a ticket.

    Exactly one of `user_id` / `agent_id` owns the ticket.

    Returns:
        Base64 of JSON {"payload": {...}, "hash": hmac_sha256_hex}
    """
    if (user_id is None) == (agent_id is None):
        raise ValidationError("Either user or agent must be present, but not both")

    payload = {
        "bookingId": str(booking_id),
        "ownerId": str(user_id if user_id is not None else agent_id),
        "tripId": str(trip_id),
        "validFrom": ensure_utc(valid_from).isoformat(),
        "validUntil": ensure_utc(valid_until).isoformat(),
    }
    document = {"payload": payload, "hash": _sign(payload)}
    return base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")


def verify_qr_code(qr_code_data: str) -> dict[str, str]:
    """
    Check a QR payload's signature and return the payload.

    Raises:
        ValidationError: If the data is malformed or the hash does not match
    """
    try:
        document = json.loads(base64.b64decode(qr_code_data.encode("ascii"), validate=True))
        payload = document["payload"]
        signature = document["hash"]
    except (ValueError, KeyError, TypeError) as e:
        raise ValidationError("Malformed QR code data") from e

    if not isinstance(payload, dict) or not hmac.compare_digest(_sign(payload), str(signature)):
        raise ValidationError("QR code signature mismatch")
    return payload


async def get_ticket_for_booking(db: AsyncSession, booking_id: uuid.UUID) -> Ticket | None:
    result = await db.execute(select(Ticket).where(Ticket.booking_id == booking_id))
    return result.scalar_one_or_none()


async def issue_ticket_for_booking(db: AsyncSession, booking: Booking) -> Ticket:
    """
    Issue the ticket for a paid booking, or return the one already issued.

    The ticket is valid from the booking's creation for the configured number
    of hours. Its NFC id is the booking card's id when there is one.
    """
    existing = await get_ticket_for_booking(db, booking.id)
    if existing is not None:
        return existing

    valid_from = ensure_utc(booking.created_at or utcnow())
    valid_until = calculate_ticket_expiry(valid_from)

    nfc_id = None
    if booking.card_id is not None:
        card = await db.get(Card, booking.card_id)
        nfc_id = card.nfc_id if card else None

    owner = (
        {"user_id": booking.user_id}
        if booking.user_id is not None
        else {"agent_id": booking.agent_id}
    )
    ticket = Ticket(
        booking_id=booking.id,
        user_id=booking.user_id,
        trip_id=booking.trip_id,
        reference=generate_id(),
        boarding_code=generate_secure_id(booking.trip_id),
        qr_code_data=generate_qr_code(
            booking.id, booking.trip_id, valid_from, valid_until, **owner
        ),
        nfc_id=nfc_id or generate_nfc_id(booking.id),
        valid_from=valid_from,
        valid_until=valid_until,
        is_valid=True,
    )
    db.add(ticket)
    await db.flush()
    logger.info("Issued ticket %s for booking %s", ticket.reference, booking.id)
    return ticket

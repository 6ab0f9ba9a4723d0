"""
Unit tests for ticket codes and ticket issuing.

Tests cover:
- Luhn check digits and 18-digit ticket references
- Trip-derived boarding codes
- HMAC-signed QR payloads
- Idempotent ticket issuing for paid bookings
"""

import base64
import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.config import settings
from cavgo.core.errors import ValidationError
from cavgo.core.timeutils import ensure_utc, utcnow
from cavgo.db.models import Booking, Ticket, Trip, User
from cavgo.domain.enums import BookingStatus
from cavgo.services.tickets import (
    calculate_ticket_expiry,
    generate_id,
    generate_nfc_id,
    generate_qr_code,
    generate_secure_id,
    is_luhn_valid,
    issue_ticket_for_booking,
    luhn_check_digit,
    verify_qr_code,
)


class TestLuhn:
    def test_should_compute_known_check_digit(self):
        # 7992739871 is the textbook example; its check digit is 3
        assert luhn_check_digit("7992739871") == 3
        assert is_luhn_valid("79927398713")

    def test_should_reject_wrong_check_digit(self):
        assert not is_luhn_valid("79927398710")

    def test_should_reject_non_digits(self):
        assert not is_luhn_valid("79927a98713")

    def test_generate_id_is_18_luhn_valid_digits(self):
        for _ in range(20):
            ticket_id = generate_id()
            assert len(ticket_id) == 18
            assert ticket_id.isdigit()
            assert is_luhn_valid(ticket_id)


class TestBoardingCode:
    def test_suffix_is_hex_digit_sum_of_trip_id(self):
        trip_id = "64b7f1c2e4b0a1a2b3c4d5e6"
        expected_sum = sum(int(c, 16) for c in trip_id)

        code = generate_secure_id(trip_id)

        quotient, digit_sum = code.split("-")
        assert int(digit_sum) == expected_sum
        assert quotient.isdigit()

    def test_should_reject_trip_id_without_hex_digits(self):
        with pytest.raises(ValidationError, match="no hexadecimal"):
            generate_secure_id("zzzz-xxxx")

    def test_should_reject_trip_id_summing_to_zero(self):
        with pytest.raises(ValidationError, match="zero"):
            generate_secure_id("0000-0000")


class TestQrCode:
    def test_should_verify_untampered_payload(self):
        now = utcnow()
        data = generate_qr_code("b1", "t1", now, now + timedelta(hours=4), user_id="u1")

        payload = verify_qr_code(data)

        assert payload["bookingId"] == "b1"
        assert payload["ownerId"] == "u1"
        assert payload["tripId"] == "t1"

    def test_should_reject_tampered_payload(self):
        now = utcnow()
        data = generate_qr_code("b1", "t1", now, now + timedelta(hours=4), agent_id="a1")
        document = json.loads(base64.b64decode(data))
        document["payload"]["ownerId"] = "someone-else"
        tampered = base64.b64encode(json.dumps(document).encode()).decode()

        with pytest.raises(ValidationError, match="signature"):
            verify_qr_code(tampered)

    def test_should_reject_garbage(self):
        with pytest.raises(ValidationError, match="Malformed"):
            verify_qr_code("not-base64-json!!")

    def test_should_require_exactly_one_owner(self):
        now = utcnow()
        with pytest.raises(ValidationError):
            generate_qr_code("b1", "t1", now, now, user_id="u1", agent_id="a1")
        with pytest.raises(ValidationError):
            generate_qr_code("b1", "t1", now, now)


class TestValidityWindow:
    def test_expiry_adds_configured_hours(self):
        start = utcnow()
        assert calculate_ticket_expiry(start) - start == timedelta(
            hours=settings.ticket_validity_hours
        )

    def test_nfc_id_embeds_booking_and_millis(self):
        now = utcnow()
        assert generate_nfc_id("abc", now) == f"NFC-abc-{int(now.timestamp() * 1000)}"


class TestIssueTicket:
    @pytest.mark.anyio
    async def test_should_issue_ticket_once(self, db: AsyncSession, trip: Trip, customer: User):
        booking = Booking(
            trip_id=trip.id,
            user_id=customer.id,
            number_of_tickets=1,
            price=500,
            status=BookingStatus.WAITING_BOARD,
        )
        db.add(booking)
        await db.flush()

        first = await issue_ticket_for_booking(db, booking)
        second = await issue_ticket_for_booking(db, booking)
        await db.commit()

        assert first.id == second.id
        count = await db.scalar(select(func.count(Ticket.id)).where(Ticket.booking_id == booking.id))
        assert count == 1
        assert first.user_id == customer.id
        assert is_luhn_valid(first.reference)
        assert first.nfc_id.startswith(f"NFC-{booking.id}-")
        assert ensure_utc(first.valid_until) - ensure_utc(first.valid_from) == timedelta(
            hours=settings.ticket_validity_hours
        )
        assert verify_qr_code(first.qr_code_data)["bookingId"] == str(booking.id)

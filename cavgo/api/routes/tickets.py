"""
FastAPI routes for tickets: fetching a booking's ticket and checking QR
codes at boarding.
"""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends

from cavgo.api.schemas.bookings import TicketResponse, TicketVerifyRequest, TicketVerifyResponse
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import ForbiddenError, NotFoundError, ValidationError
from cavgo.core.security import Principal, require_any
from cavgo.core.timeutils import ensure_utc, utcnow
from cavgo.db.models import Ticket
from cavgo.domain.enums import PrincipalKind
from cavgo.repos import booking_repo
from cavgo.services.tickets import get_ticket_for_booking, verify_qr_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("/{booking_id}", response_model=TicketResponse)
async def get_ticket(
    booking_id: uuid.UUID,
    db: AsyncDbSession,
    principal: Principal = Depends(require_any(PrincipalKind.USER, PrincipalKind.AGENT)),
) -> Ticket:
    """The ticket of a paid booking, for the passenger or agent who owns it."""
    booking = await booking_repo.get_booking(db, booking_id)
    owner_id = booking.user_id if principal.user is not None else booking.agent_id
    if owner_id != principal.id:
        raise ForbiddenError("Permission denied", details={"booking_id": str(booking_id)})

    ticket = await get_ticket_for_booking(db, booking_id)
    if ticket is None:
        raise NotFoundError("Ticket not found", details={"booking_id": str(booking_id)})
    return ticket


@router.post("/verify", response_model=TicketVerifyResponse)
async def verify_ticket(
    payload: TicketVerifyRequest,
    db: AsyncDbSession,
    principal: Principal = Depends(require_any(PrincipalKind.POS, PrincipalKind.DRIVER)),
) -> TicketVerifyResponse:
    """
    Check a scanned QR code.

    The signature must match, the current time must fall inside the
    validity window, and the ticket must still exist and be valid.
    """
    try:
        claims = verify_qr_code(payload.qr_code_data)
        booking_id = uuid.UUID(claims["bookingId"])
        valid_from = ensure_utc(datetime.fromisoformat(claims["validFrom"]))
        valid_until = ensure_utc(datetime.fromisoformat(claims["validUntil"]))
    except ValidationError as e:
        logger.warning("Rejected QR code from %s %s: %s", principal.kind.value, principal.id, e.message)
        return TicketVerifyResponse(valid=False, reason=e.message)
    except (KeyError, ValueError):
        return TicketVerifyResponse(valid=False, reason="Malformed QR code data")

    result = TicketVerifyResponse(
        valid=False,
        booking_id=booking_id,
        trip_id=claims.get("tripId"),
        owner_id=claims.get("ownerId"),
        valid_from=valid_from,
        valid_until=valid_until,
    )

    now = utcnow()
    if now < valid_from:
        result.reason = "Ticket is not valid yet"
        return result
    if now > valid_until:
        result.reason = "Ticket has expired"
        return result

    ticket = await get_ticket_for_booking(db, booking_id)
    if ticket is None or not ticket.is_valid:
        result.reason = "Ticket not found or revoked"
        return result

    result.valid = True
    return result

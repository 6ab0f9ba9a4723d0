"""
One-off data maintenance jobs, run from the scripts/ entry points.
"""

import logging
import random

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.db.models import Booking, Company, Ticket, TripPreset
from cavgo.domain.enums import BookingStatus
from cavgo.services.tickets import issue_ticket_for_booking

logger = logging.getLogger(__name__)


async def backfill_tickets(db: AsyncSession) -> int:
    """
    Issue tickets for Waiting Board bookings that have none.

    Returns:
        Number of tickets issued
    """
    stmt = (
        select(Booking)
        .outerjoin(Ticket, Ticket.booking_id == Booking.id)
        .where(Booking.status == BookingStatus.WAITING_BOARD, Ticket.id.is_(None))
        .order_by(Booking.created_at)
    )
    bookings = list((await db.execute(stmt)).scalars().all())
    logger.info("Found %d waiting bookings without tickets", len(bookings))

    for booking in bookings:
        ticket = await issue_ticket_for_booking(db, booking)
        logger.info("Ticket %s created for booking %s", ticket.reference, booking.id)
    return len(bookings)


async def assign_preset_companies(db: AsyncSession, rng: random.Random | None = None) -> int:
    """
    Give every trip preset without a company a randomly chosen one.

    Returns:
        Number of presets updated (0 when there are no companies)
    """
    rng = rng or random.Random()
    companies = list((await db.execute(select(Company.id))).scalars().all())
    if not companies:
        logger.warning("No companies found; presets left unassigned")
        return 0

    presets = list(
        (await db.execute(select(TripPreset).where(TripPreset.company_id.is_(None)))).scalars().all()
    )
    logger.info("Found %d presets without a company", len(presets))
    for preset in presets:
        preset.company_id = rng.choice(companies)
    await db.flush()
    return len(presets)

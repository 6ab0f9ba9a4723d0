"""
Repository functions for NFC cards.
"""

import logging
import secrets
import string
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.config import settings
from cavgo.core.errors import NotFoundError
from cavgo.db.models import Card, User
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404
from cavgo.repos.user_repo import create_user, find_user_by_email_or_phone

logger = logging.getLogger(__name__)

_CARD_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_card_id() -> str:
    """Printed card id: CARD- followed by 9 uppercase alphanumerics."""
    return "CARD-" + "".join(secrets.choice(_CARD_ID_ALPHABET) for _ in range(9))


async def list_cards(db: AsyncSession) -> list[Card]:
    result = await db.execute(select(Card).order_by(Card.created_at))
    return list(result.scalars().all())


async def get_card(db: AsyncSession, card_id: Any) -> Card:
    return await get_or_404(db, Card, card_id, label="Card", id_field="card_id")


async def find_card_by_nfc(db: AsyncSession, nfc_id: str) -> Card | None:
    result = await db.execute(select(Card).where(Card.nfc_id == nfc_id))
    return result.scalar_one_or_none()


async def get_card_by_nfc(db: AsyncSession, nfc_id: str) -> Card:
    card = await find_card_by_nfc(db, nfc_id)
    if card is None:
        raise NotFoundError("Card not found", details={"nfc_id": nfc_id})
    return card


async def issue_card(
    db: AsyncSession,
    *,
    creator: User,
    nfc_id: str,
    email: str,
    phone_number: str,
    first_name: str,
    last_name: str,
) -> Card:
    """
    Issue a card to the passenger with this email or phone number.

    Unknown passengers get a customer account with the default password.
    The card becomes the passenger's default card if they have none.
    """
    holder = await find_user_by_email_or_phone(db, email=email, phone_number=phone_number)
    if holder is None:
        holder = await create_user(
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_number=phone_number,
            password=settings.default_card_user_password,
        )
        logger.info("Created customer %s while issuing card", holder.id)

    card = Card(
        nfc_id=nfc_id,
        card_id=generate_card_id(),
        user_id=holder.id,
        creator_id=creator.id,
    )
    db.add(card)
    await flush_or_conflict(db, "Card already registered", nfc_id=nfc_id)

    if holder.default_card_id is None:
        holder.default_card_id = card.id
        await db.flush()

    logger.info("Issued card %s to user %s", card.card_id, holder.id)
    return card


async def update_card(db: AsyncSession, card: Card, changes: dict[str, Any]) -> Card:
    if changes.get("user_id") is not None:
        await get_or_404(db, User, changes["user_id"], label="User", id_field="user_id")
    apply_changes(card, changes)
    await flush_or_conflict(db, "Card already registered", nfc_id=card.nfc_id)
    return card


async def delete_card(db: AsyncSession, card_id: uuid.UUID) -> None:
    card = await get_card(db, card_id)
    await delete_entity(db, card)
    logger.info("Deleted card %s", card.card_id)

"""
Repository functions for card wallets and their ledgers.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from cavgo.core.timeutils import utcnow
from cavgo.db.models import Agent, User, Wallet, WalletTransaction
from cavgo.domain.enums import TransactionType
from cavgo.repos.agent_repo import add_agent_transaction
from cavgo.repos.card_repo import get_card_by_nfc
from cavgo.repos.common import delete_entity, get_or_404
from cavgo.services.card_payment import adjust_wallet_balance

logger = logging.getLogger(__name__)


async def list_wallets(db: AsyncSession) -> list[Wallet]:
    result = await db.execute(select(Wallet).order_by(Wallet.created_at))
    return list(result.scalars().all())


async def get_wallet(db: AsyncSession, wallet_id: Any) -> Wallet:
    return await get_or_404(db, Wallet, wallet_id, label="Wallet", id_field="wallet_id")


async def create_wallet(
    db: AsyncSession, *, nfc_id: str | None = None, user_id: uuid.UUID | None = None
) -> Wallet:
    """
    Open an empty wallet behind a card, or for a user with no card.

    Raises:
        ValidationError: With neither nfc_id nor user_id, or an unlinked card
        ConflictError: If the card already has a wallet
    """
    card_id = None
    if nfc_id:
        card = await get_card_by_nfc(db, nfc_id)
        if card.user_id is None:
            raise ValidationError("Card is not linked to a user", details={"nfc_id": nfc_id})
        existing = await db.execute(select(Wallet.id).where(Wallet.card_id == card.id))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A wallet is already linked to this card", details={"nfc_id": nfc_id})
        user_id = card.user_id
        card_id = card.id
    elif user_id is not None:
        await get_or_404(db, User, user_id, label="User", id_field="user_id")
    else:
        raise ValidationError("Either nfc_id or user_id must be provided")

    wallet = Wallet(user_id=user_id, card_id=card_id, balance=0, transactions=[])
    db.add(wallet)
    await db.flush()
    logger.info("Created wallet %s for user %s (card %s)", wallet.id, user_id, card_id)
    return wallet


async def apply_wallet_transaction(
    db: AsyncSession,
    *,
    nfc_id: str,
    type: TransactionType,
    amount: int,
    description: str | None = None,
    agent: Agent | None = None,
) -> Wallet:
    """
    Credit or debit the wallet behind a card.

    Agents top wallets up from their own balance and cannot debit them.

    Raises:
        NotFoundError: If the card or its wallet does not exist
        InsufficientFundsError: If the wallet (debit) or agent (credit) is short
    """
    card = await get_card_by_nfc(db, nfc_id)
    result = await db.execute(select(Wallet).where(Wallet.card_id == card.id))
    wallet = result.scalar_one_or_none()
    if wallet is None:
        raise NotFoundError("Wallet not found for the given card", details={"nfc_id": nfc_id})

    if type == TransactionType.DEBIT:
        if agent is not None:
            raise ForbiddenError("Agents can only credit wallets")
        if not await adjust_wallet_balance(db, wallet, -amount):
            raise InsufficientFundsError(
                "Insufficient balance for debit transaction",
                details={"balance": wallet.balance, "amount": amount},
            )
    else:
        if agent is not None:
            await add_agent_transaction(
                db,
                agent,
                type=TransactionType.DEBIT,
                amount=amount,
                description=f"Wallet top-up for card {card.card_id}",
            )
        await adjust_wallet_balance(db, wallet, amount)

    wallet.transactions.append(
        WalletTransaction(type=type, amount=amount, description=description, date=utcnow())
    )
    await db.flush()
    logger.info(
        "Wallet %s %s %s (balance %s)%s",
        wallet.id,
        type.value,
        amount,
        wallet.balance,
        f" by agent {agent.id}" if agent else "",
    )
    return wallet


async def delete_wallet(db: AsyncSession, wallet_id: Any) -> None:
    wallet = await get_wallet(db, wallet_id)
    await delete_entity(db, wallet)
    logger.info("Deleted wallet %s", wallet_id)

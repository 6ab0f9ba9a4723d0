"""Paying for bookings from the stored-value wallet behind an NFC card."""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.timeutils import utcnow
from cavgo.db.models import Card, Wallet, WalletTransaction
from cavgo.domain.enums import TransactionType

logger = logging.getLogger(__name__)


async def get_wallet_for_card(db: AsyncSession, card: Card) -> Wallet | None:
    result = await db.execute(select(Wallet).where(Wallet.card_id == card.id))
    return result.scalar_one_or_none()


async def adjust_wallet_balance(db: AsyncSession, wallet: Wallet, delta: int) -> bool:
    """
    Add `delta` to a wallet's balance in one conditional UPDATE.

    A debit that would take the balance below zero changes nothing and
    returns False. `wallet.balance` is reloaded either way.
    """
    result = await db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.balance + delta >= 0)
        .values(balance=Wallet.balance + delta)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(wallet, attribute_names=["balance"])
    return result.rowcount == 1


async def pay_with_card(
    db: AsyncSession, card: Card, amount: int, description: str
) -> Wallet | None:
    """
    Debit `amount` from the card's wallet.

    Returns:
        The debited wallet, or None when the card has no wallet or its
        balance does not cover the amount
    """
    wallet = await get_wallet_for_card(db, card)
    if wallet is None:
        logger.info("Card %s has no wallet", card.card_id)
        return None
    if not await adjust_wallet_balance(db, wallet, -amount):
        logger.info(
            "Insufficient wallet balance on card %s: balance=%s amount=%s",
            card.card_id,
            wallet.balance,
            amount,
        )
        return None

    wallet.transactions.append(
        WalletTransaction(
            type=TransactionType.DEBIT,
            amount=amount,
            description=description,
            date=utcnow(),
        )
    )
    await db.flush()
    logger.info("Debited %s from wallet %s (card %s)", amount, wallet.id, card.card_id)
    return wallet

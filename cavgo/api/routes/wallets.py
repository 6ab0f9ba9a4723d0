"""
FastAPI routes for card wallets.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.wallets import (
    WalletCreate,
    WalletResponse,
    WalletTransactionRequest,
    WalletTransactionResult,
)
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import ForbiddenError
from cavgo.core.security import Principal, require_admin, require_any, require_user
from cavgo.db.models import User, Wallet
from cavgo.domain.enums import PrincipalKind
from cavgo.repos import wallet_repo

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.get("", response_model=list[WalletResponse])
async def list_wallets(db: AsyncDbSession, admin: User = Depends(require_admin())) -> list[Wallet]:
    return await wallet_repo.list_wallets(db)


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
async def create_wallet(
    payload: WalletCreate, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Wallet:
    wallet = await wallet_repo.create_wallet(db, nfc_id=payload.nfc_id, user_id=payload.user_id)
    await db.commit()
    return wallet


@router.post("/transactions", response_model=WalletTransactionResult)
async def create_wallet_transaction(
    payload: WalletTransactionRequest,
    db: AsyncDbSession,
    principal: Principal = Depends(require_any(PrincipalKind.USER, PrincipalKind.AGENT)),
) -> WalletTransactionResult:
    """
    Credit or debit the wallet behind a card.

    Admins move money freely. Agents may only credit, and pay for the credit
    from their own balance.
    """
    if principal.user is not None and not principal.is_admin:
        raise ForbiddenError("Only admins and agents can move wallet funds")

    agent = principal.agent
    wallet = await wallet_repo.apply_wallet_transaction(
        db, nfc_id=payload.nfc_id, agent=agent, **payload.transaction.model_dump()
    )
    await db.commit()
    return WalletTransactionResult(
        wallet=WalletResponse.model_validate(wallet),
        agent_balance=agent.wallet_balance if agent is not None else None,
    )


@router.get("/{wallet_id}", response_model=WalletResponse)
async def get_wallet(
    wallet_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> Wallet:
    wallet = await wallet_repo.get_wallet(db, wallet_id)
    if not user.is_admin and wallet.user_id != user.id:
        raise ForbiddenError("Permission denied", details={"wallet_id": str(wallet_id)})
    return wallet


@router.delete("/{wallet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_wallet(
    wallet_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Response:
    await wallet_repo.delete_wallet(db, wallet_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

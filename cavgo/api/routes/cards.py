"""
FastAPI routes for NFC cards.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.wallets import CardIssue, CardResponse, CardUpdate
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import ForbiddenError
from cavgo.core.security import require_admin, require_user
from cavgo.db.models import Card, User
from cavgo.repos import card_repo

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("", response_model=list[CardResponse])
async def list_cards(db: AsyncDbSession, admin: User = Depends(require_admin())) -> list[Card]:
    return await card_repo.list_cards(db)


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> Card:
    card = await card_repo.get_card(db, card_id)
    if not user.is_admin and card.user_id != user.id:
        raise ForbiddenError("Permission denied", details={"card_id": str(card_id)})
    return card


@router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
async def issue_card(
    payload: CardIssue, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Card:
    """
    Issue a card to the passenger with this email or phone.

    A passenger who has no account yet gets one with the default password.
    """
    card = await card_repo.issue_card(
        db,
        creator=admin,
        nfc_id=payload.nfc_id,
        email=payload.email,
        phone_number=payload.phone,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    await db.commit()
    return card


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: uuid.UUID,
    payload: CardUpdate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Card:
    card = await card_repo.get_card(db, card_id)
    card = await card_repo.update_card(db, card, payload.model_dump(exclude_unset=True))
    await db.commit()
    return card


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Response:
    await card_repo.delete_card(db, card_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

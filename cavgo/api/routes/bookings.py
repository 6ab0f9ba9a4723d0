"""
FastAPI routes for bookings and the live booking event stream.

After a booking write is committed, its trip's seat count is replicated and a
BOOKING_ADDED / BOOKING_UPDATED event is published. Unpaid bookings are
handed to the payment watcher.
"""

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Query, Response, WebSocket, WebSocketDisconnect, status

from cavgo.api.schemas.bookings import (
    AgentBookingCreate,
    AgentBookingResponse,
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
)
from cavgo.core.dependencies import AsyncDbSession, EventBus, Replicator, Watcher
from cavgo.core.errors import ForbiddenError, ValidationError
from cavgo.core.security import Principal, require_agent, require_any, require_user
from cavgo.db.models import Agent, Booking, Card, User
from cavgo.domain.enums import BookingStatus, PrincipalKind
from cavgo.repos import booking_repo, card_repo, trip_repo
from cavgo.services.booking_events import (
    BOOKING_ADDED,
    BOOKING_UPDATED,
    BookingEventBus,
    Subscription,
    booking_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    db: AsyncDbSession, trip_id: uuid.UUID | None = Query(None)
) -> list[Booking]:
    return await booking_repo.list_bookings(db, trip_id=trip_id)


@router.get("/me", response_model=list[BookingResponse])
async def list_my_bookings(db: AsyncDbSession, user: User = Depends(require_user())) -> list[Booking]:
    return await booking_repo.list_user_bookings(db, user.id)


@router.get("/user/{user_id}", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> list[Booking]:
    if user_id != user.id and not user.is_admin:
        raise ForbiddenError("Permission denied", details={"user_id": str(user_id)})
    return await booking_repo.list_user_bookings(db, user_id)


@router.websocket("/events")
async def booking_events(websocket: WebSocket, trip_id: str | None = None, topic: str | None = None):
    """
    Stream booking events as JSON.

    Query params narrow the stream to one trip and/or one topic
    (BOOKING_ADDED, BOOKING_UPDATED). Messages from the client are ignored.
    """
    bus: BookingEventBus = websocket.app.state.event_bus
    try:
        sub = bus.subscribe(topic=topic, trip_id=trip_id)
    except ValueError:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    sender = asyncio.create_task(_forward_events(websocket, sub))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        bus.unsubscribe(sub)
        await stop_forwarder(sender)


async def _forward_events(websocket: WebSocket, sub: Subscription) -> None:
    async for event in sub:
        await websocket.send_json(event)


async def stop_forwarder(sender: asyncio.Task) -> None:
    """Cancel an event forwarder and collect its outcome."""
    sender.cancel()
    (outcome,) = await asyncio.gather(sender, return_exceptions=True)
    if isinstance(outcome, Exception):
        logger.info("Booking event stream stopped after send failure: %s", outcome)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> Booking:
    booking = await booking_repo.get_booking(db, booking_id)
    booking_repo.check_booking_owner(booking, user)
    return booking


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    db: AsyncDbSession,
    bus: EventBus,
    replicator: Replicator,
    watcher: Watcher,
    principal: Principal = Depends(require_any(PrincipalKind.USER, PrincipalKind.POS)),
) -> Booking:
    """
    Book seats on a trip.

    A POS device books for the owner of the tapped card; a passenger books
    with their default card. A card wallet that covers the price pays on the
    spot; otherwise the booking stays Pending until mobile money arrives.
    """
    card: Card | None = None
    pos_id = None
    if principal.pos is not None:
        if not payload.nfc_id:
            raise ValidationError("nfc_id is required when booking from a POS machine")
        card = await card_repo.get_card_by_nfc(db, payload.nfc_id)
        user_id = card.user_id
        pos_id = principal.pos.id
    else:
        user_id = principal.user.id
        if principal.user.default_card_id is not None:
            card = await db.get(Card, principal.user.default_card_id)

    booking = await booking_repo.create_booking(
        db,
        trip_id=payload.trip_id,
        number_of_tickets=payload.number_of_tickets,
        price=payload.price,
        destination=payload.destination,
        user_id=user_id,
        card=card,
        pos_id=pos_id,
    )
    await db.commit()

    if booking.status == BookingStatus.PENDING:
        watcher.start(booking.id)
    await replicator.replicate(await trip_repo.get_trip(db, booking.trip_id))
    bus.publish(BOOKING_ADDED, booking_event(booking))
    return booking


@router.post("/agent", response_model=AgentBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_agent_booking(
    payload: AgentBookingCreate,
    db: AsyncDbSession,
    bus: EventBus,
    replicator: Replicator,
    agent: Agent = Depends(require_agent()),
) -> AgentBookingResponse:
    """Sell seats from the agent's balance. The booking is paid immediately."""
    booking = await booking_repo.create_agent_booking(db, agent=agent, **payload.model_dump())
    await db.commit()

    await replicator.replicate(await trip_repo.get_trip(db, booking.trip_id))
    bus.publish(BOOKING_ADDED, booking_event(booking))
    return AgentBookingResponse(
        booking=BookingResponse.model_validate(booking), wallet_balance=agent.wallet_balance
    )


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: uuid.UUID,
    payload: BookingStatusUpdate,
    db: AsyncDbSession,
    bus: EventBus,
    replicator: Replicator,
    watcher: Watcher,
    user: User = Depends(require_user()),
) -> Booking:
    booking = await booking_repo.get_booking(db, booking_id)
    booking_repo.check_booking_owner(booking, user)

    trip = await booking_repo.update_booking_status(db, booking, payload.status)
    await db.commit()

    if booking.status != BookingStatus.PENDING:
        watcher.cancel(booking.id)
    if trip is not None:
        await replicator.replicate(trip)
    bus.publish(BOOKING_UPDATED, booking_event(booking))
    return booking


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: uuid.UUID,
    db: AsyncDbSession,
    replicator: Replicator,
    watcher: Watcher,
    user: User = Depends(require_user()),
) -> Response:
    booking = await booking_repo.get_booking(db, booking_id)
    booking_repo.check_booking_owner(booking, user)

    trip = await booking_repo.delete_booking(db, booking)
    await db.commit()

    watcher.cancel(booking_id)
    if trip is not None:
        await replicator.replicate(trip)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
FastAPI dependency injection utilities.

Provides reusable dependencies for database sessions, the resolved caller,
and the long-lived services kept on `app.state`.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.db import get_async_db_session
from cavgo.core.security import Principal, get_principal
from cavgo.services.booking_events import BookingEventBus
from cavgo.services.momo import MomoClient
from cavgo.services.payment_watcher import PaymentWatcher
from cavgo.services.trip_replicator import TripReplicator

# ============================================================================
# Database Dependencies
# ============================================================================

AsyncDbSession = Annotated[AsyncSession, Depends(get_async_db_session)]


# ============================================================================
# Authentication Dependencies
# ============================================================================

# Possibly anonymous caller; use the guards in cavgo.core.security to require one.
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]


# ============================================================================
# Service Dependencies
# ============================================================================


def get_event_bus(request: Request) -> BookingEventBus:
    return request.app.state.event_bus


def get_trip_replicator(request: Request) -> TripReplicator:
    return request.app.state.trip_replicator


def get_payment_watcher(request: Request) -> PaymentWatcher:
    return request.app.state.payment_watcher


def get_momo_client(request: Request) -> MomoClient:
    return request.app.state.momo_client


EventBus = Annotated[BookingEventBus, Depends(get_event_bus)]
Replicator = Annotated[TripReplicator, Depends(get_trip_replicator)]
Watcher = Annotated[PaymentWatcher, Depends(get_payment_watcher)]
Momo = Annotated[MomoClient, Depends(get_momo_client)]

__all__ = [
    "AsyncDbSession",
    "CurrentPrincipal",
    "EventBus",
    "Momo",
    "Replicator",
    "Watcher",
    "get_async_db_session",
    "get_event_bus",
    "get_momo_client",
    "get_payment_watcher",
    "get_principal",
    "get_trip_replicator",
]

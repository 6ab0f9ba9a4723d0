"""
Trip Replicator Service

Mirrors trips into a Firestore collection so mobile clients can read live
seat availability without hitting the API.

The relational database is the source of truth. Firestore is a read replica:
a failed write is logged and counted, and never fails the request that
caused it.
"""

import asyncio
import logging
from typing import Any, Protocol

from cavgo.core.config import Settings
from cavgo.core.observability import metrics
from cavgo.core.timeutils import ensure_utc, utcnow
from cavgo.db.models import Trip

logger = logging.getLogger(__name__)


class TripStore(Protocol):
    """Document store holding one document per trip id."""

    def set(self, doc_id: str, data: dict[str, Any]) -> None: ...

    def delete(self, doc_id: str) -> None: ...

    def increment(self, doc_id: str, field: str, delta: int) -> None: ...


class NullTripStore:
    """Store used when Firestore is disabled; records nothing."""

    def set(self, doc_id: str, data: dict[str, Any]) -> None:
        logger.debug("Firestore disabled - skipping write of trip %s", doc_id)

    def delete(self, doc_id: str) -> None:
        logger.debug("Firestore disabled - skipping delete of trip %s", doc_id)

    def increment(self, doc_id: str, field: str, delta: int) -> None:
        logger.debug("Firestore disabled - skipping %s%+d on trip %s", field, delta, doc_id)


class FirestoreTripStore:
    """
    Firestore-backed store.

    The Firebase app is initialized once per process, from a service account
    file when one is configured, otherwise from application default
    credentials.
    """

    def __init__(self, config: Settings) -> None:
        import firebase_admin
        from firebase_admin import credentials, firestore

        try:
            app = firebase_admin.get_app()
        except ValueError:
            if config.firestore_credentials_path:
                cred = credentials.Certificate(config.firestore_credentials_path)
            else:
                cred = credentials.ApplicationDefault()
            options = {"projectId": config.firestore_project_id} if config.firestore_project_id else None
            app = firebase_admin.initialize_app(cred, options)
            logger.info("Firebase Admin initialized for project %s", config.firestore_project_id)

        self._firestore = firestore
        self._collection = firestore.client(app).collection(config.firestore_trips_collection)

    def set(self, doc_id: str, data: dict[str, Any]) -> None:
        self._collection.document(doc_id).set(data)

    def delete(self, doc_id: str) -> None:
        self._collection.document(doc_id).delete()

    def increment(self, doc_id: str, field: str, delta: int) -> None:
        self._collection.document(doc_id).update({field: self._firestore.Increment(delta)})


def trip_document(trip: Trip) -> dict[str, Any]:
    """Firestore representation of a trip."""
    return {
        "route": str(trip.route_id),
        "car": str(trip.car_id),
        "boardingTime": ensure_utc(trip.boarding_time).isoformat(),
        "status": trip.status.value,
        "availableSeats": trip.available_seats,
        "stopPoints": [
            {"location": str(point.location_id), "price": point.price}
            for point in trip.stop_points
        ],
        "reverseRoute": trip.reverse_route,
        "user": str(trip.user_id) if trip.user_id else None,
        "createdAt": ensure_utc(trip.created_at or utcnow()).isoformat(),
    }


class TripReplicator:
    """
    Writes trip changes to the replica store.

    The Firestore SDK is blocking, so every call runs in a worker thread.
    """

    def __init__(self, store: TripStore) -> None:
        self.store = store

    async def _run(self, operation: str, trip_id: str, fn, *args) -> bool:
        try:
            await asyncio.to_thread(fn, *args)
        except Exception as e:
            metrics.trip_replications_total.labels(operation=operation, outcome="error").inc()
            logger.error(
                "Trip replication %s failed for %s: %s", operation, trip_id, e, exc_info=True
            )
            return False
        metrics.trip_replications_total.labels(operation=operation, outcome="ok").inc()
        return True

    async def replicate(self, trip: Trip) -> bool:
        trip_id = str(trip.id)
        return await self._run("set", trip_id, self.store.set, trip_id, trip_document(trip))

    async def remove(self, trip_id: Any) -> bool:
        trip_id = str(trip_id)
        return await self._run("delete", trip_id, self.store.delete, trip_id)

    async def adjust_seats(self, trip_id: Any, delta: int) -> bool:
        trip_id = str(trip_id)
        return await self._run(
            "adjust_seats", trip_id, self.store.increment, trip_id, "availableSeats", delta
        )


def build_trip_replicator(config: Settings) -> TripReplicator:
    """Replicator for the configured backend (Firestore or no-op)."""
    if not config.firestore_enabled:
        logger.info("Firestore replication disabled")
        return TripReplicator(NullTripStore())
    return TripReplicator(FirestoreTripStore(config))

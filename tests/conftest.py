"""
Pytest configuration and shared fixtures for the Cavgo API tests.

Provides:
- A throwaway SQLite database per test (aiosqlite)
- An AsyncSession shared by the test and the app under test
- An httpx AsyncClient bound to the app through ASGITransport
- Fakes for the mobile-money gateway and the Firestore trip store
- Factories for principals (users, drivers, agents, POS machines) and for
  the fleet a booking needs (company, car, locations, route, trip)
"""

from __future__ import annotations

import os
import sys
import uuid
from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set test environment variables before importing the app
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL_APP", "sqlite:///./cavgo-test.db")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")
os.environ.setdefault("METRICS_TOKEN", "test-metrics-token")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-jwt-refresh-secret")
os.environ.setdefault("QR_SECRET_KEY", "test-qr-secret")
os.environ.setdefault("MOMO_CALLBACK_TOKEN", "test-callback-token")

import httpx  # noqa: E402 (import after env setup)
import pytest  # noqa: E402 (import after env setup)
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cavgo.core.db import get_async_db_session  # noqa: E402
from cavgo.core.security import create_access_token  # noqa: E402
from cavgo.core.timeutils import utcnow  # noqa: E402
from cavgo.db.models import (  # noqa: E402
    Agent,
    Base,
    Car,
    Company,
    Driver,
    Location,
    PosMachine,
    Route,
    Trip,
    User,
)
from cavgo.domain.enums import (  # noqa: E402
    AccountStatus,
    DriverType,
    LocationType,
    PosStatus,
    PrincipalKind,
    UserType,
)
from cavgo.main import create_app  # noqa: E402
from cavgo.services.booking_events import BookingEventBus  # noqa: E402
from cavgo.services.momo import MomoClient  # noqa: E402
from cavgo.services.payment_watcher import PaymentWatcher  # noqa: E402
from cavgo.services.trip_replicator import TripReplicator  # noqa: E402

# =============================================================================
# Fakes
# =============================================================================


class InMemoryTripStore:
    """Trip store recording documents in a dict."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.deleted: list[str] = []

    def set(self, doc_id: str, data: dict[str, Any]) -> None:
        self.docs[doc_id] = dict(data)

    def delete(self, doc_id: str) -> None:
        self.docs.pop(doc_id, None)
        self.deleted.append(doc_id)

    def increment(self, doc_id: str, field: str, delta: int) -> None:
        doc = self.docs.setdefault(doc_id, {})
        doc[field] = doc.get(field, 0) + delta


class FakeMomoGateway:
    """httpx.MockTransport handler standing in for the mobile-money gateway."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"success": False, "message": "Rejected"})
        return httpx.Response(
            self.status_code,
            json={"success": True, "status": "Pending", "responsecode": "1000"},
        )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Fresh SQLite database file with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cavgo.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session


# =============================================================================
# App fixtures
# =============================================================================


@pytest.fixture
def trip_store() -> InMemoryTripStore:
    return InMemoryTripStore()


@pytest.fixture
def momo_gateway() -> FakeMomoGateway:
    return FakeMomoGateway()


@pytest.fixture
async def app(
    db: AsyncSession,
    session_maker: async_sessionmaker[AsyncSession],
    trip_store: InMemoryTripStore,
    momo_gateway: FakeMomoGateway,
):
    """
    App wired to the test database and fakes.

    The payment watcher polls hourly so it never fires during a request test;
    watcher behavior is covered by calling `check_once` directly.
    """
    app = create_app()

    async def override_get_async_db():
        yield db

    app.dependency_overrides[get_async_db_session] = override_get_async_db

    app.state.event_bus = BookingEventBus()
    app.state.trip_replicator = TripReplicator(trip_store)
    app.state.momo_client = MomoClient(transport=httpx.MockTransport(momo_gateway))
    app.state.payment_watcher = PaymentWatcher(
        session_maker=session_maker,
        replicator=app.state.trip_replicator,
        event_bus=app.state.event_bus,
        poll_interval=3600,
        timeout=7200,
    )
    yield app
    await app.state.payment_watcher.shutdown()
    await app.state.momo_client.aclose()


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient]:
    """AsyncClient without authentication."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def auth_header(subject_id: Any, kind: PrincipalKind) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject_id, kind)}"}


# =============================================================================
# Factories
# =============================================================================


async def acreate_user(
    db: AsyncSession,
    *,
    user_type: UserType = UserType.CUSTOMER,
    company: Company | None = None,
    email: str | None = None,
) -> User:
    from cavgo.repos.user_repo import create_user

    user = await create_user(
        db,
        first_name="Test",
        last_name=user_type.value.title(),
        email=email or f"{uuid.uuid4().hex[:10]}@example.com",
        phone_number=f"078{uuid.uuid4().int % 10**7:07d}",
        password="secret123",
        user_type=user_type,
        company_id=company.id if company else None,
    )
    await db.commit()
    return user


async def acreate_company(db: AsyncSession, name: str = "Volcano Express") -> Company:
    company = Company(name=name, location="Kigali", email=f"{uuid.uuid4().hex[:8]}@company.rw")
    db.add(company)
    await db.commit()
    return company


async def acreate_driver(db: AsyncSession, *, car: Car | None = None) -> Driver:
    from cavgo.core.security import hash_password

    driver = Driver(
        name="Jean Driver",
        email=f"{uuid.uuid4().hex[:10]}@drivers.rw",
        phone_number="0788111111",
        driver_type=DriverType.PRIVATE,
        license="LIC-001",
        password_hash=hash_password("secret123"),
        car_id=car.id if car else None,
    )
    db.add(driver)
    await db.commit()
    return driver


async def acreate_agent(
    db: AsyncSession, *, balance: int = 0, status: AccountStatus = AccountStatus.ACTIVE
) -> Agent:
    from cavgo.core.security import hash_password

    agent = Agent(
        first_name="Alice",
        last_name="Agent",
        email=f"{uuid.uuid4().hex[:10]}@agents.rw",
        phone_number="0788222222",
        password_hash=hash_password("secret123"),
        status=status,
        wallet_balance=balance,
        transactions=[],
    )
    db.add(agent)
    await db.commit()
    return agent


async def acreate_location(
    db: AsyncSession, name: str, location_type: LocationType = LocationType.BUS_STOP
) -> Location:
    location = Location(name=name, lat=-1.95, lng=30.06, location_type=location_type)
    db.add(location)
    await db.commit()
    return location


async def acreate_route(
    db: AsyncSession, origin: Location, destination: Location, price: int = 500
) -> Route:
    from cavgo.repos.location_repo import create_route

    route = await create_route(db, origin_id=origin.id, destination_id=destination.id, price=price)
    await db.commit()
    return route


async def acreate_car(
    db: AsyncSession, *, company: Company | None = None, seats: int = 4, plate: str | None = None
) -> Car:
    car = Car(
        plate_number=plate or f"RA{uuid.uuid4().hex[:5].upper()}",
        number_of_seats=seats,
        owner_company_id=company.id if company else None,
        private_owner=None if company else "Private Owner",
    )
    db.add(car)
    await db.commit()
    return car


async def acreate_trip(db: AsyncSession, *, route: Route, car: Car, seats: int | None = None) -> Trip:
    trip = Trip(
        route_id=route.id,
        car_id=car.id,
        boarding_time=utcnow() + timedelta(hours=2),
        available_seats=car.number_of_seats if seats is None else seats,
        stop_points=[],
    )
    db.add(trip)
    await db.commit()
    return trip


async def acreate_pos(db: AsyncSession, car: Car, status: PosStatus = PosStatus.ACTIVE) -> PosMachine:
    pos = PosMachine(
        serial_number=f"POS-{uuid.uuid4().hex[:6]}",
        status=status,
        linked_car_id=car.id,
        assigned_date=utcnow(),
        last_activity_date=utcnow(),
    )
    db.add(pos)
    await db.commit()
    return pos


@pytest.fixture
async def admin(db: AsyncSession) -> User:
    return await acreate_user(db, user_type=UserType.ADMIN)


@pytest.fixture
async def customer(db: AsyncSession) -> User:
    return await acreate_user(db)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_header(admin.id, PrincipalKind.USER)


@pytest.fixture
def customer_headers(customer: User) -> dict[str, str]:
    return auth_header(customer.id, PrincipalKind.USER)


@pytest.fixture
async def trip(db: AsyncSession) -> Trip:
    """A four-seat trip from Nyabugogo to Remera."""
    origin = await acreate_location(db, "Nyabugogo", LocationType.BUS_STOP)
    destination = await acreate_location(db, "Remera", LocationType.BUS_STOP)
    route = await acreate_route(db, origin, destination)
    car = await acreate_car(db, seats=4)
    return await acreate_trip(db, route=route, car=car)

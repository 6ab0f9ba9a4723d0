"""
SQLAlchemy 2.x ORM models for the Cavgo booking API.

Models use the Mapped[] type annotation syntax and mapped_column, and stay
portable between PostgreSQL and SQLite.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from cavgo.core.timeutils import utcnow
from cavgo.db.validators import normalize_email, validate_digits
from cavgo.domain.enums import (
    AccountStatus,
    BookingStatus,
    DriverType,
    LocationType,
    MatchType,
    PaymentStatus,
    PosStatus,
    ScheduleStatus,
    TransactionType,
    TripStatus,
    UserType,
)


def _enum(enum_cls: type, name: str) -> Enum:
    # Persist the enum values ("Waiting Board"), not the member names.
    return Enum(
        enum_cls,
        name=name,
        create_constraint=True,
        values_callable=lambda members: [m.value for m in members],
    )


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class Company(TimestampMixin, Base):
    """Transport company owning cars and employing drivers."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class User(TimestampMixin, Base):
    """Passenger, admin or company-staff account."""

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    user_type: Mapped[UserType] = mapped_column(
        _enum(UserType, "user_type"), nullable=False, default=UserType.CUSTOMER
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    default_card_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cards.id", ondelete="SET NULL", use_alter=True, name="fk_users_default_card"),
        nullable=True,
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, user_type={self.user_type})>"


class Driver(TimestampMixin, Base):
    __tablename__ = "drivers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    driver_type: Mapped[DriverType] = mapped_column(
        _enum(DriverType, "driver_type"), nullable=False
    )
    license: Mapped[str] = mapped_column(Text, nullable=False)
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    car_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cars.id", ondelete="SET NULL", use_alter=True, name="fk_drivers_car"),
        nullable=True,
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    def __repr__(self) -> str:
        return f"<Driver(id={self.id}, email={self.email}, car_id={self.car_id})>"


class Car(TimestampMixin, Base):
    """
    Vehicle operated on trips.

    A car belongs either to a company or to a private owner, and has at most
    one driver; a driver is assigned to at most one car.
    """

    __tablename__ = "cars"
    __table_args__ = (CheckConstraint("number_of_seats >= 1", name="chk_cars_seats"),)

    plate_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    number_of_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    private_owner: Mapped[str | None] = mapped_column(Text, nullable=True)
    driver_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    is_occupied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    @validates("plate_number")
    def _normalize_plate(self, key: str, value: str) -> str:
        return value.strip().upper()

    def __repr__(self) -> str:
        return f"<Car(id={self.id}, plate_number={self.plate_number})>"


class Location(TimestampMixin, Base):
    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    location_type: Mapped[LocationType] = mapped_column(
        _enum(LocationType, "location_type"), nullable=False, default=LocationType.OTHER
    )
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_place_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name={self.name})>"


class Route(TimestampMixin, Base):
    __tablename__ = "routes"
    __table_args__ = (CheckConstraint("price >= 0", name="chk_routes_price"),)

    origin_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), nullable=True
    )
    destination_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), nullable=True
    )
    google_maps_route_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    origin: Mapped[Location | None] = relationship(
        "Location", foreign_keys=[origin_id], lazy="selectin"
    )
    destination: Mapped[Location | None] = relationship(
        "Location", foreign_keys=[destination_id], lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Route(id={self.id}, origin_id={self.origin_id}, destination_id={self.destination_id})>"


class Trip(TimestampMixin, Base):
    """Scheduled departure of a car along a route, with its seat inventory."""

    __tablename__ = "trips"
    __table_args__ = (CheckConstraint("available_seats >= 0", name="chk_trips_seats"),)

    route_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("routes.id", ondelete="CASCADE"), nullable=False
    )
    car_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cars.id", ondelete="CASCADE"), nullable=False
    )
    boarding_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[TripStatus] = mapped_column(
        _enum(TripStatus, "trip_status"), nullable=False, default=TripStatus.SCHEDULED
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reverse_route: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    stop_points: Mapped[list[TripStopPoint]] = relationship(
        "TripStopPoint",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="TripStopPoint.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, route_id={self.route_id}, status={self.status})>"


class TripStopPoint(Base):
    __tablename__ = "trip_stop_points"
    __table_args__ = (CheckConstraint("price >= 0", name="chk_trip_stop_points_price"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    trip: Mapped[Trip] = relationship("Trip", back_populates="stop_points")


class TripPreset(TimestampMixin, Base):
    """Reusable trip template (route plus stop points) owned by a company."""

    __tablename__ = "trip_presets"

    route_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("routes.id", ondelete="CASCADE"), nullable=False
    )
    stop_points: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    reverse_route: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preset_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<TripPreset(id={self.id}, preset_name={self.preset_name})>"


class Booking(TimestampMixin, Base):
    """Reservation of one or more seats on a trip."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("number_of_tickets >= 1", name="chk_bookings_tickets"),
        CheckConstraint("price >= 0", name="chk_bookings_price"),
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    destination: Mapped[str | None] = mapped_column(Text, nullable=True)
    number_of_tickets: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    card_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cards.id", ondelete="SET NULL"), nullable=True
    )
    pos_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("pos_machines.id", ondelete="SET NULL"), nullable=True
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"), nullable=True
    )
    client_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus, "booking_status"), nullable=False, default=BookingStatus.PENDING
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, trip_id={self.trip_id}, status={self.status})>"


class Ticket(TimestampMixin, Base):
    __tablename__ = "tickets"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"), nullable=False
    )
    # Printable 18-digit Luhn-checked ticket number
    reference: Mapped[str] = mapped_column(String(18), nullable=False, unique=True)
    # Short "{n}-{trip digit sum}" code read out to drivers at boarding
    boarding_code: Mapped[str] = mapped_column(String(32), nullable=False)
    qr_code_data: Mapped[str] = mapped_column(Text, nullable=False)
    nfc_id: Mapped[str] = mapped_column(Text, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, booking_id={self.booking_id})>"


class Card(TimestampMixin, Base):
    """NFC card handed to a passenger; may back a stored-value wallet."""

    __tablename__ = "cards"

    nfc_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    card_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    creator_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Card(id={self.id}, card_id={self.card_id}, nfc_id={self.nfc_id})>"


class Wallet(TimestampMixin, Base):
    __tablename__ = "wallets"
    __table_args__ = (CheckConstraint("balance >= 0", name="chk_wallets_balance"),)

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    card_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cards.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    transactions: Mapped[list[WalletTransaction]] = relationship(
        "WalletTransaction",
        back_populates="wallet",
        cascade="all, delete-orphan",
        order_by="WalletTransaction.date",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Wallet(id={self.id}, card_id={self.card_id}, balance={self.balance})>"


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (CheckConstraint("amount >= 0", name="chk_wallet_transactions_amount"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[TransactionType] = mapped_column(
        _enum(TransactionType, "transaction_type"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    wallet: Mapped[Wallet] = relationship("Wallet", back_populates="transactions")


class Agent(TimestampMixin, Base):
    """Field agent selling tickets from a prepaid balance."""

    __tablename__ = "agents"
    __table_args__ = (CheckConstraint("wallet_balance >= 0", name="chk_agents_balance"),)

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AccountStatus] = mapped_column(
        _enum(AccountStatus, "agent_status"), nullable=False, default=AccountStatus.ACTIVE
    )
    wallet_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    transactions: Mapped[list[AgentTransaction]] = relationship(
        "AgentTransaction",
        back_populates="agent",
        cascade="all, delete-orphan",
        order_by="AgentTransaction.date",
        lazy="selectin",
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    @validates("phone_number")
    def _validate_phone(self, key: str, value: str) -> str:
        return validate_digits(value, field="phone_number")

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, email={self.email}, status={self.status})>"


class AgentTransaction(Base):
    __tablename__ = "agent_transactions"
    __table_args__ = (CheckConstraint("amount >= 0", name="chk_agent_transactions_amount"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    agent_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[TransactionType] = mapped_column(
        _enum(TransactionType, "agent_transaction_type"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    agent: Mapped[Agent] = relationship("Agent", back_populates="transactions")


class PosMachine(TimestampMixin, Base):
    __tablename__ = "pos_machines"

    serial_number: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    status: Mapped[PosStatus] = mapped_column(
        _enum(PosStatus, "pos_status"), nullable=False, default=PosStatus.ACTIVE
    )
    linked_car_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cars.id", ondelete="SET NULL"), nullable=True
    )
    assigned_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_activity_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<PosMachine(id={self.id}, serial_number={self.serial_number}, status={self.status})>"


class SuperUser(TimestampMixin, Base):
    __tablename__ = "super_users"

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AccountStatus] = mapped_column(
        _enum(AccountStatus, "super_user_status"), nullable=False, default=AccountStatus.ACTIVE
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    @validates("phone_number")
    def _validate_phone(self, key: str, value: str) -> str:
        return validate_digits(value, field="phone_number")

    def __repr__(self) -> str:
        return f"<SuperUser(id={self.id}, email={self.email})>"


class Payment(TimestampMixin, Base):
    """Mobile-money payment for a booking, tracked by gateway transaction id."""

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount_paid >= 0", name="chk_payments_amount"),)

    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.PENDING
    )
    car_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cars.id", ondelete="SET NULL"), nullable=True
    )
    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking_id={self.booking_id}, status={self.payment_status})>"


class PhonePayment(TimestampMixin, Base):
    """Raw record of a mobile-money request made for a user or an agent."""

    __tablename__ = "phone_payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_phone_payments_amount"),
        CheckConstraint(
            "(user_id IS NOT NULL) OR (agent_id IS NOT NULL)", name="chk_phone_payments_owner"
        ),
    )

    phone_number: Mapped[str] = mapped_column(String(10), nullable=False)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @validates("phone_number")
    def _validate_phone(self, key: str, value: str) -> str:
        value = validate_digits(value, field="phone_number")
        if len(value) != 10:
            raise ValueError("phone_number must be exactly 10 digits")
        return value


class Schedule(TimestampMixin, Base):
    """Passenger travel intent matched against the route network."""

    __tablename__ = "schedules"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    origin_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    destination_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    origin_type: Mapped[MatchType] = mapped_column(
        _enum(MatchType, "schedule_origin_type"), nullable=False, default=MatchType.NONE
    )
    destination_type: Mapped[MatchType] = mapped_column(
        _enum(MatchType, "schedule_destination_type"), nullable=False, default=MatchType.NONE
    )
    matched_route_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[ScheduleStatus] = mapped_column(
        _enum(ScheduleStatus, "schedule_status"), nullable=False, default=ScheduleStatus.PENDING
    )

    def __repr__(self) -> str:
        return f"<Schedule(id={self.id}, user_id={self.user_id}, status={self.status})>"

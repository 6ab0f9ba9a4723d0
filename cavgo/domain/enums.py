"""
Domain enums shared by the ORM models, schemas and repositories.

Values match what clients send and receive over the API.
"""

from enum import Enum


class UserType(str, Enum):
    """Kind of passenger-side account."""

    CUSTOMER = "customer"
    ADMIN = "admin"
    COMPANY = "company"


class DriverType(str, Enum):
    """Whether a driver works for a company or privately."""

    PRIVATE = "private"
    COMPANY = "company"


class AccountStatus(str, Enum):
    """Activation status of agents and super users."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class PosStatus(str, Enum):
    """Operational status of a POS device. Only active devices authenticate."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class LocationType(str, Enum):
    BUS_STOP = "bus_stop"
    ROUTE_STOP = "route_stop"
    RESTAURANT = "restaurant"
    OTHER = "other"


class TripStatus(str, Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BookingStatus(str, Enum):
    """
    Booking lifecycle.

    Pending bookings wait for payment; paid bookings move to Waiting Board
    and end as Boarded, or end as Expired/Cancelled.
    """

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"
    BOARDED = "Boarded"
    WAITING_BOARD = "Waiting Board"
    LATE = "Late"


# Statuses that entitle the passenger to a ticket
TICKETED_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.WAITING_BOARD})

# Statuses that give the reserved seats back to the trip
SEAT_RELEASING_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.EXPIRED})


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class TransactionType(str, Enum):
    """Direction of a wallet or agent ledger entry."""

    CREDIT = "credit"
    DEBIT = "debit"


class ScheduleStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class MatchType(str, Enum):
    """How a schedule endpoint matched the route network."""

    ROUTE = "route"
    STOP_POINT = "stopPoint"
    NONE = "none"


class PrincipalKind(str, Enum):
    """Which collection an authenticated token resolved against."""

    USER = "user"
    DRIVER = "driver"
    AGENT = "agent"
    POS = "pos"
    SUPERUSER = "superuser"

"""
Pydantic schemas for API request/response validation.

One module per group of related entities; the commonly used schemas are
re-exported here.
"""

# Re-export schemas for convenient imports.
from .bookings import BookingCreate as BookingCreate
from .bookings import BookingResponse as BookingResponse
from .bookings import TicketResponse as TicketResponse
from .fleet import CarResponse as CarResponse
from .fleet import LocationResponse as LocationResponse
from .fleet import RouteResponse as RouteResponse
from .payments import PaymentResponse as PaymentResponse
from .schedules import ScheduleResponse as ScheduleResponse
from .staff import AgentResponse as AgentResponse
from .staff import PosMachineResponse as PosMachineResponse
from .trips import TripResponse as TripResponse
from .users import UserResponse as UserResponse
from .wallets import WalletResponse as WalletResponse

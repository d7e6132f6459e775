from ticketing.models.user import User, UserRole
from ticketing.models.event import Event, EventAttendee, EventCategory, EventStatus, TicketTier
from ticketing.models.registration import (
    PaymentStatus,
    Registration,
    RegistrationStatus,
    RegistrationTicket,
)

__all__ = [
    "User", "UserRole",
    "Event", "EventAttendee", "EventCategory", "EventStatus", "TicketTier",
    "Registration", "RegistrationTicket", "PaymentStatus", "RegistrationStatus",
]

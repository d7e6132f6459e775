from ticketing.schemas.user import UserCreate, UserResponse, UserLogin, Token
from ticketing.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse, EventAnalyticsResponse,
    TicketTierCreate, TicketTierResponse,
)
from ticketing.schemas.registration import (
    RegistrationCreate, RegistrationResponse, RegistrationCancelResponse, PaymentConfirm,
)
from ticketing.schemas.admin import EventApproval, MessageResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse", "EventAnalyticsResponse",
    "TicketTierCreate", "TicketTierResponse",
    "RegistrationCreate", "RegistrationResponse", "RegistrationCancelResponse", "PaymentConfirm",
    "EventApproval", "MessageResponse",
]

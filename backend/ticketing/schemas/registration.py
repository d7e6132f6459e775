"""
Pydantic schemas for registration request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class TicketLine(BaseModel):
    ticket_type: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., gt=0, le=100)


class AttendeeInfo(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    special_requirements: Optional[str] = Field(None, max_length=500)


class RegistrationCreate(BaseModel):
    event_id: int
    tickets: list[TicketLine] = Field(..., min_length=1)
    attendee_info: Optional[AttendeeInfo] = None


class PaymentConfirm(BaseModel):
    payment_intent_id: Optional[str] = Field(None, max_length=255)
    transaction_id: Optional[str] = Field(None, max_length=255)


class RegistrationTicketResponse(BaseModel):
    ticket_type: str
    price: Decimal
    quantity: int

    model_config = {"from_attributes": True}


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    tickets: list[RegistrationTicketResponse]
    total_amount: Decimal
    payment_status: str
    payment_intent_id: Optional[str]
    transaction_id: Optional[str]
    status: str
    check_in_status: bool
    attendee_name: Optional[str]
    attendee_email: Optional[str]
    attendee_phone: Optional[str]
    special_requirements: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCancelResponse(BaseModel):
    message: str
    registration_id: int
    status: str
    payment_status: str

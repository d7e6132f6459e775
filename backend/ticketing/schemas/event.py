"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ticketing.models.event import EventCategory


class TicketTierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=0, le=1_000_000)
    description: Optional[str] = Field(None, max_length=500)


def _unique_tier_names(tiers: Optional[list[TicketTierCreate]]) -> Optional[list[TicketTierCreate]]:
    if tiers is None:
        return tiers
    names = [tier.name for tier in tiers]
    if len(names) != len(set(names)):
        raise ValueError("Ticket tier names must be unique within an event")
    return tiers


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: EventCategory
    start_date: datetime
    end_date: datetime
    venue: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    total_capacity: int = Field(..., gt=0, le=1_000_000)
    tags: list[str] = Field(default_factory=list)
    ticket_tiers: list[TicketTierCreate] = Field(..., min_length=1)

    check_tier_names = field_validator("ticket_tiers")(_unique_tier_names)

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    """Partial update. `ticket_tiers`, when given, replaces the whole tier list."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[EventCategory] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    total_capacity: Optional[int] = Field(None, gt=0, le=1_000_000)
    tags: Optional[list[str]] = None
    ticket_tiers: Optional[list[TicketTierCreate]] = Field(None, min_length=1)

    check_tier_names = field_validator("ticket_tiers")(_unique_tier_names)

    # Omitted means unchanged; only state and zip_code may be cleared with null
    @field_validator(
        "title", "description", "category", "start_date", "end_date", "venue", "address",
        "city", "country", "total_capacity", "tags", "ticket_tiers",
    )
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class TicketTierResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    quantity: int
    sold: int
    available: int
    description: Optional[str]

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    category: str
    organizer_id: int
    start_date: datetime
    end_date: datetime
    venue: str
    address: str
    city: str
    state: Optional[str]
    country: str
    zip_code: Optional[str]
    total_capacity: int
    status: str
    is_approved: bool
    tags: list[str]
    ticket_tiers: list[TicketTierResponse]
    views: int
    total_tickets_sold: int
    total_revenue: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    cached: bool = False


class TierBreakdown(BaseModel):
    name: str
    sold: int
    remaining: int
    revenue: Decimal


class EventAnalyticsResponse(BaseModel):
    total_views: int
    total_tickets_sold: int
    total_revenue: Decimal
    attendee_count: int
    ticket_tier_breakdown: list[TierBreakdown]
    capacity: int
    occupancy_rate: float

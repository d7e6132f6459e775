"""
Event endpoints. The public listing is cached in Redis; single-event reads
are live because they count views and show current availability.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.event import EventCategory
from ticketing.models.user import User, UserRole
from ticketing.schemas.admin import MessageResponse
from ticketing.schemas.event import (
    EventAnalyticsResponse,
    EventCreate,
    EventListResponse,
    EventResponse,
    EventUpdate,
)
from ticketing.services import event_service
from ticketing.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from ticketing.core.security import get_current_user, require_roles
from ticketing.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])

organizer_or_admin = require_roles(UserRole.ORGANIZER, UserRole.ADMIN)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: User = Depends(organizer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft event with its ticket tiers. Organizers and admins only."""
    event = await event_service.create_event(db, event_data, user.id)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    category: Optional[EventCategory] = Query(None),
    city: Optional[str] = Query(None, max_length=100),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    """
    List published, approved events with filters and pagination.
    Results are cached in Redis until the next write that affects listings.
    """
    filters = {
        "category": category.value if category else None,
        "city": city,
        "start_date": start_date,
        "end_date": end_date,
        "min_price": min_price,
        "max_price": max_price,
        "search": search,
    }
    cache_params = {**filters, "page": page, "page_size": page_size}

    cached = await get_cached_events(cache_params)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await event_service.list_events(db, page=page, page_size=page_size, **filters)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": event_service.total_pages(total, page_size),
        "cached": False,
    }
    await set_cached_events(cache_params, response_data)

    return EventListResponse(**response_data)


@router.get("/organizer/my-events", response_model=list[EventResponse])
async def my_events_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Events organized by the caller, newest first."""
    return await event_service.list_organizer_events(db, user.id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event and count the view."""
    return await event_service.view_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user: User = Depends(organizer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Update an event. Owner or admin; sold tickets constrain tier edits."""
    event = await event_service.update_event(db, event_id, event_data, user)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    user: User = Depends(organizer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id, user)
    await invalidate_event_cache()
    return MessageResponse(message="Event removed")


@router.get("/{event_id}/analytics", response_model=EventAnalyticsResponse)
async def event_analytics_endpoint(
    event_id: int,
    user: User = Depends(organizer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Sales, revenue and occupancy for the owner or an admin."""
    return await event_service.get_event_analytics(db, event_id, user)

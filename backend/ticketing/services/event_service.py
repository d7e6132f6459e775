"""
Event service handling CRUD, listing filters, views and analytics.

Ticket tier edits go through the event's `version` column like every other
inventory write, so an organizer editing tiers and an attendee paying for
tickets can never interleave unnoticed.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, cast, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from fastapi import HTTPException, status

from ticketing.models.event import Event, EventStatus, TicketTier
from ticketing.models.user import User, UserRole
from ticketing.schemas.event import EventCreate, EventUpdate
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def ensure_can_manage(event: Event, user: User) -> None:
    """Organizers manage their own events; admins manage all of them."""
    if event.organizer_id != user.id and user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a draft event awaiting admin approval, with no tickets sold."""
    if _as_utc(event_data.start_date) <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event start date must be in the future",
        )

    event = Event(
        title=event_data.title,
        description=event_data.description,
        category=event_data.category.value,
        organizer_id=organizer_id,
        start_date=event_data.start_date,
        end_date=event_data.end_date,
        venue=event_data.venue,
        address=event_data.address,
        city=event_data.city,
        state=event_data.state,
        country=event_data.country,
        zip_code=event_data.zip_code,
        total_capacity=event_data.total_capacity,
        tags=list(event_data.tags),
        status=EventStatus.DRAFT.value,
        is_approved=False,
        views=0,
        total_tickets_sold=0,
        total_revenue=Decimal("0"),
        version=1,
        ticket_tiers=[
            TicketTier(
                position=position,
                name=tier.name,
                price=tier.price,
                quantity=tier.quantity,
                sold=0,
                description=tier.description,
            )
            for position, tier in enumerate(event_data.ticket_tiers)
        ],
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        organizer_id=organizer_id,
        tiers=len(event.ticket_tiers),
    )
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID with fresh tier counters."""
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    return event


async def view_event(db: AsyncSession, event_id: int) -> Event:
    """Public read: bump the view counter, then return the event."""
    # views is not versioned state, so this never conflicts with the ledger
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(views=Event.views + 1)
        .execution_options(synchronize_session=False)
    )
    return await get_event(db, event_id)


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 12,
    category: Optional[str] = None,
    city: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    search: Optional[str] = None,
) -> tuple[list[Event], int]:
    """
    List published, approved events sorted by start date.
    Uses the ix_events_listing composite index for the base filter.
    """
    query = select(Event).where(
        Event.status == EventStatus.PUBLISHED.value,
        Event.is_approved.is_(True),
    )

    if category:
        query = query.where(Event.category == category)
    if city:
        query = query.where(Event.city.ilike(f"%{city}%"))
    if start_date:
        query = query.where(Event.start_date >= start_date)
    if end_date:
        query = query.where(Event.end_date <= end_date)
    if min_price is not None or max_price is not None:
        tier_match = TicketTier.event_id == Event.id
        if min_price is not None:
            tier_match = tier_match & (TicketTier.price >= min_price)
        if max_price is not None:
            tier_match = tier_match & (TicketTier.price <= max_price)
        query = query.where(exists().where(tier_match))
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Event.title.ilike(pattern),
                Event.description.ilike(pattern),
                cast(Event.tags, String).ilike(pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.start_date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def list_organizer_events(db: AsyncSession, organizer_id: int) -> list[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.organizer_id == organizer_id)
        .order_by(Event.created_at.desc(), Event.id.desc())
    )
    return list(result.scalars().all())


def _replace_tiers(event: Event, tiers_data) -> None:
    """
    Replace the tier list in place. Tiers matched by name keep their `sold`
    count; a tier with sales can neither disappear nor shrink below `sold`.
    """
    existing = {tier.name: tier for tier in event.ticket_tiers}
    incoming = {tier.name for tier in tiers_data}

    for name, tier in existing.items():
        if name not in incoming and tier.sold > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot remove ticket tier '{name}': {tier.sold} tickets already sold",
            )

    kept = []
    for position, data in enumerate(tiers_data):
        tier = existing.get(data.name)
        if tier is None:
            tier = TicketTier(name=data.name, sold=0)
        elif data.quantity < tier.sold:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Ticket tier '{data.name}' quantity cannot drop below "
                    f"the {tier.sold} tickets already sold"
                ),
            )
        tier.position = position
        tier.price = data.price
        tier.quantity = data.quantity
        tier.description = data.description
        kept.append(tier)

    event.ticket_tiers = kept


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, user: User) -> Event:
    """Partial update by the owner or an admin."""
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)

    changes = event_data.model_dump(exclude_unset=True, exclude={"ticket_tiers"})
    if "category" in changes and changes["category"] is not None:
        changes["category"] = changes["category"].value
    for field, value in changes.items():
        setattr(event, field, value)

    if _as_utc(event.end_date) < _as_utc(event.start_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )

    if event_data.ticket_tiers is not None:
        _replace_tiers(event, event_data.ticket_tiers)

    # Flushed as UPDATE ... WHERE version = <read version>
    event.version = event.version + 1
    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        logger.info("event_update_conflict", event_id=event_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Event was modified concurrently. Please reload and try again.",
        )

    event = await get_event(db, event_id)
    logger.info("event_updated", event_id=event_id, fields=sorted(changes), version=event.version)
    return event


async def delete_event(db: AsyncSession, event_id: int, user: User) -> None:
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)
    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event_id, deleted_by=user.id)


async def get_event_analytics(db: AsyncSession, event_id: int, user: User) -> dict:
    event = await get_event(db, event_id)
    ensure_can_manage(event, user)

    breakdown = [
        {
            "name": tier.name,
            "sold": tier.sold,
            "remaining": tier.available,
            "revenue": Decimal(tier.price) * tier.sold,
        }
        for tier in event.ticket_tiers
    ]
    return {
        "total_views": event.views,
        "total_tickets_sold": event.total_tickets_sold,
        "total_revenue": event.total_revenue,
        "attendee_count": len(event.attendees),
        "ticket_tier_breakdown": breakdown,
        "capacity": event.total_capacity,
        "occupancy_rate": round(event.total_tickets_sold / event.total_capacity * 100, 2),
    }


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0

"""
Admin moderation: event approval and user management.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ticketing.models.event import Event, EventStatus
from ticketing.models.registration import PaymentStatus, Registration, RegistrationStatus
from ticketing.models.user import User
from ticketing.services.event_service import get_event
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


async def set_event_approval(db: AsyncSession, event_id: int, is_approved: bool) -> Event:
    """Approval publishes the event; rejection sends it back to pending."""
    event = await get_event(db, event_id)
    event.is_approved = is_approved
    event.status = EventStatus.PUBLISHED.value if is_approved else EventStatus.PENDING.value
    await db.flush()

    logger.info("event_moderated", event_id=event_id, approved=is_approved)
    return await get_event(db, event_id)


async def list_events(
    db: AsyncSession,
    status_filter: Optional[str] = None,
    is_approved: Optional[bool] = None,
) -> list[Event]:
    query = select(Event)
    if status_filter:
        query = query.where(Event.status == status_filter)
    if is_approved is not None:
        query = query.where(Event.is_approved.is_(is_approved))
    result = await db.execute(query.order_by(Event.created_at.desc(), Event.id.desc()))
    return list(result.scalars().all())


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int, acting_admin: User) -> None:
    """
    Delete a user account. Refused while the user organizes events or holds
    paid, active registrations: deleting those rows would strand sold
    tickets and revenue on the events' counters.
    """
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    if user.id == acting_admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot delete their own account",
        )

    organizes = (
        await db.execute(select(Event.id).where(Event.organizer_id == user_id).limit(1))
    ).first()
    paid = (
        await db.execute(
            select(Registration.id)
            .where(
                Registration.user_id == user_id,
                Registration.payment_status == PaymentStatus.COMPLETED.value,
                Registration.status != RegistrationStatus.CANCELLED.value,
            )
            .limit(1)
        )
    ).first()
    if organizes or paid:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User has events or paid registrations and cannot be deleted",
        )

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id, deleted_by=acting_admin.id)

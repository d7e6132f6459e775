"""
Registration service: the HTTP-facing side of ticket purchases.

Ownership and role checks live here; every inventory-affecting step is
delegated to the inventory ledger.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ticketing.models.event import Event
from ticketing.models.registration import (
    PaymentStatus,
    Registration,
    RegistrationStatus,
    RegistrationTicket,
)
from ticketing.models.user import User, UserRole
from ticketing.schemas.registration import PaymentConfirm, RegistrationCreate
from ticketing.services import inventory_ledger
from ticketing.services.inventory_ledger import PaymentConfirmation, TicketRequest
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


async def _get_registration(db: AsyncSession, registration_id: int) -> Registration:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if not registration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration not found",
        )
    return registration


def _ensure_owner(registration: Registration, user: User) -> None:
    if registration.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )


async def create_registration(db: AsyncSession, user: User, data: RegistrationCreate) -> Registration:
    """
    Price the requested tickets and store a pending registration.
    No inventory is consumed until payment is confirmed.
    """
    quote = await inventory_ledger.reserve(
        db,
        data.event_id,
        [TicketRequest(ticket_type=t.ticket_type, quantity=t.quantity) for t in data.tickets],
    )

    attendee = data.attendee_info
    registration = Registration(
        event_id=data.event_id,
        user_id=user.id,
        total_amount=quote.total_amount,
        payment_status=PaymentStatus.PENDING.value,
        status=RegistrationStatus.ACTIVE.value,
        check_in_status=False,
        attendee_name=attendee.name if attendee else None,
        attendee_email=attendee.email if attendee else None,
        attendee_phone=attendee.phone if attendee else None,
        special_requirements=attendee.special_requirements if attendee else None,
        tickets=[
            RegistrationTicket(
                position=position,
                ticket_type=line.ticket_type,
                price=line.unit_price,
                quantity=line.quantity,
            )
            for position, line in enumerate(quote.lines)
        ],
    )
    db.add(registration)
    # Durable before any payment can reference it
    await db.commit()
    await db.refresh(registration)

    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=data.event_id,
        user_id=user.id,
        total_amount=str(registration.total_amount),
    )
    return registration


async def get_user_registrations(db: AsyncSession, user_id: int) -> list[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())


async def get_registration(db: AsyncSession, registration_id: int, user: User) -> Registration:
    """Visible to its owner, the event's organizer and admins."""
    registration = await _get_registration(db, registration_id)

    if registration.user_id != user.id and user.role != UserRole.ADMIN.value:
        organizer_id = (
            await db.execute(select(Event.organizer_id).where(Event.id == registration.event_id))
        ).scalar_one_or_none()
        if organizer_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized",
            )
    return registration


async def confirm_payment(
    db: AsyncSession,
    registration_id: int,
    user: User,
    payment: PaymentConfirm,
) -> Registration:
    registration = await _get_registration(db, registration_id)
    _ensure_owner(registration, user)
    return await inventory_ledger.commit(
        db,
        registration_id,
        PaymentConfirmation(
            payment_intent_id=payment.payment_intent_id,
            transaction_id=payment.transaction_id,
        ),
    )


async def cancel_registration(db: AsyncSession, registration_id: int, user: User) -> Registration:
    registration = await _get_registration(db, registration_id)
    _ensure_owner(registration, user)
    return await inventory_ledger.release(db, registration_id)


async def get_event_registrations(db: AsyncSession, event_id: int, user: User) -> list[Registration]:
    """Paid registrations for an event, for its organizer or an admin."""
    event = (await db.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    if event.organizer_id != user.id and user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )

    result = await db.execute(
        select(Registration)
        .where(
            Registration.event_id == event_id,
            Registration.payment_status == PaymentStatus.COMPLETED.value,
        )
        .order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())


async def list_all_registrations(db: AsyncSession) -> list[Registration]:
    result = await db.execute(
        select(Registration).order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())

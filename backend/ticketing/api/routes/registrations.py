"""
Registration endpoints: purchase, payment confirmation and cancellation.

Inventory changes only on payment confirmation and on cancellation of a paid
registration; both invalidate the event listing cache.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.registration import (
    PaymentConfirm,
    RegistrationCancelResponse,
    RegistrationCreate,
    RegistrationResponse,
)
from ticketing.services import registration_service
from ticketing.services.cache_service import invalidate_event_cache
from ticketing.core.security import get_current_user

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.post("/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def create_registration_endpoint(
    data: RegistrationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Register for an event. Availability is checked and prices are locked in,
    but tickets are only counted as sold once payment is confirmed.
    """
    return await registration_service.create_registration(db, user, data)


@router.get("/my-registrations", response_model=list[RegistrationResponse])
async def my_registrations_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await registration_service.get_user_registrations(db, user.id)


@router.get("/event/{event_id}", response_model=list[RegistrationResponse])
async def event_registrations_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Paid registrations for an event. Organizer of the event or admin."""
    return await registration_service.get_event_registrations(db, event_id, user)


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration_endpoint(
    registration_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await registration_service.get_registration(db, registration_id, user)


@router.put("/{registration_id}/payment", response_model=RegistrationResponse)
async def confirm_payment_endpoint(
    registration_id: int,
    payment: PaymentConfirm,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a successful charge and commit the tickets to inventory."""
    registration = await registration_service.confirm_payment(db, registration_id, user, payment)
    await invalidate_event_cache()
    return registration


@router.put("/{registration_id}/cancel", response_model=RegistrationCancelResponse)
async def cancel_registration_endpoint(
    registration_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a registration, returning paid tickets to inventory."""
    registration = await registration_service.cancel_registration(db, registration_id, user)
    await invalidate_event_cache()
    return RegistrationCancelResponse(
        message="Registration cancelled successfully",
        registration_id=registration.id,
        status=registration.status,
        payment_status=registration.payment_status,
    )

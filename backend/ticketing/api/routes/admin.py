"""
Admin moderation endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.event import EventStatus
from ticketing.models.user import User, UserRole
from ticketing.schemas.admin import EventApproval, MessageResponse
from ticketing.schemas.event import EventResponse
from ticketing.schemas.registration import RegistrationResponse
from ticketing.schemas.user import UserResponse
from ticketing.services import admin_service, registration_service
from ticketing.services.cache_service import invalidate_event_cache
from ticketing.core.security import require_roles

admin_only = require_roles(UserRole.ADMIN)
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(admin_only)])


@router.put("/events/{event_id}/approve", response_model=EventResponse)
async def approve_event_endpoint(
    event_id: int,
    approval: EventApproval,
    db: AsyncSession = Depends(get_db),
):
    """Approve (publish) or reject an event."""
    event = await admin_service.set_event_approval(db, event_id, approval.is_approved)
    await invalidate_event_cache()
    return event


@router.get("/events", response_model=list[EventResponse])
async def list_events_endpoint(
    status: Optional[EventStatus] = Query(None),
    is_approved: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """All events, including drafts and those awaiting approval."""
    return await admin_service.list_events(
        db, status_filter=status.value if status else None, is_approved=is_approved
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users_endpoint(db: AsyncSession = Depends(get_db)):
    return await admin_service.list_users(db)


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user_endpoint(
    user_id: int,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    await admin_service.delete_user(db, user_id, admin)
    return MessageResponse(message="User removed")


@router.get("/registrations", response_model=list[RegistrationResponse])
async def list_registrations_endpoint(db: AsyncSession = Depends(get_db)):
    return await registration_service.list_all_registrations(db)

"""
Pytest fixtures for test database, client, users and events.

Each test gets a fresh SQLite database file (via aiosqlite) so sessions
opened by concurrency tests see each other's commits. Point
TEST_DATABASE_URL at PostgreSQL to run the same suite against it.
"""

import os

# Must be set before the application modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ticketing.main import app
from ticketing.db.base import Base
from ticketing.db.session import get_db
from ticketing.core.security import create_access_token, hash_password
from ticketing.models import (
    Event,
    EventStatus,
    Registration,
    TicketTier,
    User,
    UserRole,
)
from ticketing.schemas.registration import RegistrationCreate, TicketLine
from ticketing.services import registration_service

TEST_PASSWORD = "testpassword123"
# bcrypt is slow on purpose; hash once per run
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'ticketing.db'}")


@pytest_asyncio.fixture(scope="function")
async def session_factory(database_url: str) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables, hand out a session factory, then drop tables."""
    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, name: str, role: UserRole) -> User:
    user = User(
        email=email,
        name=name,
        role=role.value,
        is_active=True,
        hashed_password=TEST_PASSWORD_HASH,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def attendee(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "attendee@eventhub.dev", "Ada Attendee", UserRole.ATTENDEE)


@pytest_asyncio.fixture
async def other_attendee(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "second@eventhub.dev", "Sam Second", UserRole.ATTENDEE)


@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "organizer@eventhub.dev", "Olu Organizer", UserRole.ORGANIZER)


@pytest_asyncio.fixture
async def other_organizer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "rival@eventhub.dev", "Rae Rival", UserRole.ORGANIZER)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@eventhub.dev", "Ari Admin", UserRole.ADMIN)


@pytest.fixture
def attendee_headers(attendee: User) -> dict:
    return _headers(attendee)


@pytest.fixture
def other_attendee_headers(other_attendee: User) -> dict:
    return _headers(other_attendee)


@pytest.fixture
def organizer_headers(organizer: User) -> dict:
    return _headers(organizer)


@pytest.fixture
def other_organizer_headers(other_organizer: User) -> dict:
    return _headers(other_organizer)


@pytest.fixture
def admin_headers(admin: User) -> dict:
    return _headers(admin)


def make_event(organizer: User, tiers: list[tuple[str, str, int]], **overrides) -> Event:
    """Build a published, approved event; tiers are (name, price, quantity)."""
    start = datetime.now(timezone.utc) + timedelta(days=30)
    fields = dict(
        title="PyCon Test",
        description="A conference about testing",
        category="Conference",
        organizer_id=organizer.id,
        start_date=start,
        end_date=start + timedelta(hours=8),
        venue="Main Hall",
        address="1 Test Street",
        city="Lisbon",
        country="Portugal",
        total_capacity=sum(quantity for _, _, quantity in tiers),
        status=EventStatus.PUBLISHED.value,
        is_approved=True,
        tags=["python", "testing"],
        views=0,
        total_tickets_sold=0,
        total_revenue=Decimal("0"),
        version=1,
    )
    fields.update(overrides)
    return Event(
        **fields,
        ticket_tiers=[
            TicketTier(position=i, name=name, price=Decimal(price), quantity=quantity, sold=0)
            for i, (name, price, quantity) in enumerate(tiers)
        ],
    )


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, organizer: User) -> Event:
    """Published event: 10 General at 49.99 and 2 VIP at 150.00."""
    event = make_event(organizer, [("General", "49.99", 10), ("VIP", "150.00", 2)])
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def last_ticket_event(db_session: AsyncSession, organizer: User) -> Event:
    """Event whose only tier has exactly one ticket."""
    event = make_event(organizer, [("Final", "25.00", 1)], title="Last Seat Standing")
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest.fixture
def register(db_session: AsyncSession):
    """Create a pending registration through the registration service."""

    async def _register(user: User, event: Event, *lines: tuple[str, int]) -> Registration:
        data = RegistrationCreate(
            event_id=event.id,
            tickets=[TicketLine(ticket_type=name, quantity=quantity) for name, quantity in lines],
        )
        return await registration_service.create_registration(db_session, user, data)

    return _register

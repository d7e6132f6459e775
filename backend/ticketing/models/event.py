"""
Event model with per-tier ticket inventory and denormalized analytics.

Key design decisions:
- Each ticket tier keeps its own `sold` counter, bounded by CHECK constraints
  (0 <= sold <= quantity) as the last line of defence against overselling
- `total_tickets_sold` / `total_revenue` are denormalized so analytics never
  scan registrations
- `version` is the optimistic lock for every inventory write: the ledger only
  updates the event row WHERE version = <version it read>
- `views` is bumped independently and is not part of the versioned state
"""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin


class EventCategory(str, Enum):
    CONFERENCE = "Conference"
    WORKSHOP = "Workshop"
    SEMINAR = "Seminar"
    CONCERT = "Concert"
    SPORTS = "Sports"
    FESTIVAL = "Festival"
    EXHIBITION = "Exhibition"
    NETWORKING = "Networking"
    OTHER = "Other"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(30), nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    venue = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=True)

    total_capacity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)
    is_approved = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)

    # Analytics
    views = Column(Integer, nullable=False, default=0)
    total_tickets_sold = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    organizer = relationship("User", back_populates="events")
    ticket_tiers = relationship(
        "TicketTier",
        back_populates="event",
        lazy="selectin",
        order_by="TicketTier.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    attendees = relationship(
        "EventAttendee",
        back_populates="event",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("total_tickets_sold >= 0", name="check_total_tickets_sold_non_negative"),
        CheckConstraint("total_capacity > 0", name="check_total_capacity_positive"),
        CheckConstraint("end_date >= start_date", name="check_event_dates_ordered"),
        Index("ix_events_start_date", "start_date"),
        # Public listing: WHERE status = 'published' AND is_approved ORDER BY start_date
        Index("ix_events_listing", "status", "is_approved", "start_date"),
    )

    # ORM flushes check the version they read; callers bump it explicitly
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def tier_by_name(self, name: str) -> "TicketTier | None":
        for tier in self.ticket_tiers:
            if tier.name == name:
                return tier
        return None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, sold={self.total_tickets_sold}, v={self.version})>"


class TicketTier(Base):
    __tablename__ = "ticket_tiers"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    sold = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=True)

    event = relationship("Event", back_populates="ticket_tiers")

    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_ticket_tier_event_name"),
        CheckConstraint("price >= 0", name="check_tier_price_non_negative"),
        CheckConstraint("quantity >= 0", name="check_tier_quantity_non_negative"),
        CheckConstraint("sold >= 0", name="check_tier_sold_non_negative"),
        CheckConstraint("sold <= quantity", name="check_tier_sold_lte_quantity"),
    )

    @property
    def available(self) -> int:
        return self.quantity - self.sold

    def __repr__(self) -> str:
        return f"<TicketTier(id={self.id}, name={self.name}, sold={self.sold}/{self.quantity})>"


class EventAttendee(Base):
    """A completed registration counted on the event's attendee list."""

    __tablename__ = "event_attendees"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    registration_id = Column(
        Integer, ForeignKey("registrations.id", ondelete="CASCADE"), primary_key=True
    )

    event = relationship("Event", back_populates="attendees")

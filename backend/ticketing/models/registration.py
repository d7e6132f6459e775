"""
Registration model: one user's ticket order for one event.

Key design decisions:
- Ticket lines snapshot the tier name and unit price at purchase time, so
  later tier edits never rewrite historical orders
- `total_amount` is written once on creation and never recomputed
- `payment_status` and `status` are independent axes; the inventory ledger
  only counts a registration while it is completed and not cancelled
"""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class RegistrationStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    TRANSFERRED = "transferred"


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_intent_id = Column(String(255), nullable=True)
    transaction_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=RegistrationStatus.ACTIVE.value)

    check_in_status = Column(Boolean, nullable=False, default=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)

    attendee_name = Column(String(100), nullable=True)
    attendee_email = Column(String(255), nullable=True)
    attendee_phone = Column(String(30), nullable=True)
    special_requirements = Column(String(500), nullable=True)

    event = relationship("Event", back_populates="registrations")
    user = relationship("User", back_populates="registrations")
    tickets = relationship(
        "RegistrationTicket",
        lazy="selectin",
        order_by="RegistrationTicket.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_registration_total_non_negative"),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_registration_payment_status",
        ),
        CheckConstraint(
            "status IN ('active', 'cancelled', 'transferred')",
            name="check_registration_status",
        ),
    )

    @property
    def ticket_count(self) -> int:
        return sum(line.quantity for line in self.tickets)

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event={self.event_id}, "
            f"payment={self.payment_status}, status={self.status})>"
        )


class RegistrationTicket(Base):
    __tablename__ = "registration_tickets"

    id = Column(Integer, primary_key=True)
    registration_id = Column(
        Integer, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    ticket_type = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_registration_ticket_quantity_positive"),
    )

"""
Inventory ledger: ticket tier `sold` counts and event analytics.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two attendees pay for the last ticket of a tier at the same time.
  Both read sold=9 of quantity=10, both write sold=10, both registrations
  are marked completed. Result: one ticket sold twice and revenue counted
  for a seat that does not exist.

Solution:
  Every inventory write goes through the event's `version` column.

  1. Read the registration, the event and its tiers
  2. Re-check availability for every line against the fresh `sold` values
  3. UPDATE events SET version = version + 1, total_tickets_sold = ..., ...
     WHERE id = :event_id AND version = :read_version
  4. UPDATE ticket_tiers SET sold = sold + n
     WHERE id = :tier_id AND sold + n <= quantity
  5. UPDATE registrations SET payment_status = 'completed'
     WHERE id = :id AND payment_status = 'pending' AND status = 'active'
  6. COMMIT

  If any of steps 3-5 matches zero rows, someone else changed the event or
  the registration after we read it: roll back and recompute from step 1.
  The recomputation is what turns a lost race into InsufficientInventory
  (or AlreadyCompleted) instead of an oversell.

  Release (cancellation) follows the same path with negated deltas, so a
  commit followed by a release restores every counter exactly.

Reserve (registration creation) only validates and prices. It never writes
`sold`: an unpaid registration holds no inventory.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import get_settings
from ticketing.core.errors import (
    AlreadyCancelledError,
    AlreadyCompletedError,
    InsufficientInventoryError,
    InvalidRegistrationStateError,
    LedgerError,
    NotFoundError,
    PersistenceConflictError,
    UnknownTicketTypeError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import (
    ledger_latency,
    record_ledger_operation,
    record_ledger_retry,
    tickets_released,
    tickets_sold,
)
from ticketing.models.event import Event, EventAttendee, TicketTier
from ticketing.models.registration import PaymentStatus, Registration, RegistrationStatus

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class TicketRequest:
    ticket_type: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    ticket_type: str
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PriceQuote:
    """Validated, priced order lines for one event."""

    event_id: int
    lines: tuple[PricedLine, ...]

    @property
    def total_amount(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    @property
    def ticket_count(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class PaymentConfirmation:
    """A charge the caller has already verified with the payment provider."""

    payment_intent_id: Optional[str] = None
    transaction_id: Optional[str] = None


def _demand_by_tier(lines: Iterable) -> dict[str, int]:
    """Combine lines naming the same tier, keeping first-seen order."""
    demand: dict[str, int] = {}
    for line in lines:
        demand[line.ticket_type] = demand.get(line.ticket_type, 0) + line.quantity
    return demand


def check_availability(event: Event, demand: dict[str, int]) -> list[tuple[TicketTier, int]]:
    """
    Match each demanded tier name to the event's tier and make sure enough
    tickets are left. Returns (tier, quantity) pairs in demand order.
    """
    matched = []
    for name, quantity in demand.items():
        tier = event.tier_by_name(name)
        if tier is None:
            raise UnknownTicketTypeError(name)
        if tier.available < quantity:
            raise InsufficientInventoryError(name, quantity, tier.available)
        matched.append((tier, quantity))
    return matched


def price_tickets(event: Event, requests: list[TicketRequest]) -> PriceQuote:
    """Validate availability and snapshot current tier prices. Pure: writes nothing."""
    check_availability(event, _demand_by_tier(requests))
    lines = tuple(
        PricedLine(
            ticket_type=request.ticket_type,
            unit_price=Decimal(event.tier_by_name(request.ticket_type).price),
            quantity=request.quantity,
        )
        for request in requests
    )
    return PriceQuote(event_id=event.id, lines=lines)


async def _load_event(db: AsyncSession, event_id: int) -> Event:
    # populate_existing: never trust counters cached in the identity map
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


async def _load_registration(db: AsyncSession, registration_id: int) -> Registration:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if registration is None:
        raise NotFoundError("Registration", registration_id)
    return registration


async def _apply_inventory_delta(
    db: AsyncSession,
    event: Event,
    tiers: list[tuple[TicketTier, int]],
    revenue: Decimal,
) -> bool:
    """
    Compare-and-swap the event row on its version, then move each tier's
    `sold` by the signed quantity. Returns False on any lost race.
    """
    ticket_delta = sum(quantity for _, quantity in tiers)

    result = await db.execute(
        update(Event)
        .where(Event.id == event.id, Event.version == event.version)
        .values(
            version=Event.version + 1,
            total_tickets_sold=Event.total_tickets_sold + ticket_delta,
            total_revenue=Event.total_revenue + revenue,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return False

    for tier, quantity in tiers:
        if quantity >= 0:
            guard = TicketTier.sold + quantity <= TicketTier.quantity
        else:
            guard = TicketTier.sold + quantity >= 0
        result = await db.execute(
            update(TicketTier)
            .where(TicketTier.id == tier.id, guard)
            .values(sold=TicketTier.sold + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
    return True


async def _refresh_after_write(db: AsyncSession, event: Event, registration: Registration) -> None:
    await db.refresh(registration)
    await db.refresh(event)
    for tier in event.ticket_tiers:
        await db.refresh(tier)


async def reserve(db: AsyncSession, event_id: int, requests: list[TicketRequest]) -> PriceQuote:
    """
    Validate a ticket request against current availability and price it.
    Raises NotFoundError, UnknownTicketTypeError or InsufficientInventoryError.
    """
    with ledger_latency.labels(operation="reserve").time():
        try:
            event = await _load_event(db, event_id)
            quote = price_tickets(event, requests)
        except LedgerError as exc:
            record_ledger_operation("reserve", "rejected")
            logger.info("reserve_rejected", event_id=event_id, code=exc.code.value)
            raise

    record_ledger_operation("reserve", "success")
    logger.info(
        "tickets_reserved",
        event_id=event_id,
        tickets=quote.ticket_count,
        total_amount=str(quote.total_amount),
    )
    return quote


def _ensure_committable(registration: Registration) -> None:
    if registration.payment_status == PaymentStatus.COMPLETED.value:
        raise AlreadyCompletedError(registration.id)
    if registration.status == RegistrationStatus.CANCELLED.value:
        raise AlreadyCancelledError(registration.id)
    if registration.payment_status != PaymentStatus.PENDING.value:
        raise InvalidRegistrationStateError(registration.id, registration.payment_status)
    if registration.status != RegistrationStatus.ACTIVE.value:
        raise InvalidRegistrationStateError(registration.id, registration.status)


async def commit(
    db: AsyncSession,
    registration_id: int,
    confirmation: PaymentConfirmation,
) -> Registration:
    """
    Count a paid registration against inventory, exactly once.

    Increments each tier's `sold`, the event's ticket and revenue totals and
    the attendee list, and marks the registration completed, all in one
    transaction. Retries on version conflicts up to LEDGER_MAX_RETRY_ATTEMPTS.
    """
    max_attempts = settings.LEDGER_MAX_RETRY_ATTEMPTS
    event_id = None

    with ledger_latency.labels(operation="commit").time():
        for attempt in range(1, max_attempts + 1):
            try:
                registration = await _load_registration(db, registration_id)
                _ensure_committable(registration)
                event = await _load_event(db, registration.event_id)
                event_id = event.id
                tiers = check_availability(event, _demand_by_tier(registration.tickets))
            except LedgerError as exc:
                record_ledger_operation("commit", "rejected")
                logger.warning(
                    "commit_rejected",
                    registration_id=registration_id,
                    code=exc.code.value,
                    attempt=attempt,
                )
                raise

            applied = await _apply_inventory_delta(db, event, tiers, Decimal(registration.total_amount))
            if applied:
                await db.execute(
                    insert(EventAttendee).values(event_id=event.id, registration_id=registration.id)
                )
                result = await db.execute(
                    update(Registration)
                    .where(
                        Registration.id == registration.id,
                        Registration.payment_status == PaymentStatus.PENDING.value,
                        Registration.status == RegistrationStatus.ACTIVE.value,
                    )
                    .values(
                        payment_status=PaymentStatus.COMPLETED.value,
                        payment_intent_id=confirmation.payment_intent_id,
                        transaction_id=confirmation.transaction_id,
                    )
                    .execution_options(synchronize_session=False)
                )
                applied = result.rowcount == 1

            if not applied:
                await db.rollback()
                record_ledger_retry("commit")
                logger.info(
                    "ledger_conflict_retry",
                    operation="commit",
                    registration_id=registration_id,
                    event_id=event_id,
                    attempt=attempt,
                )
                continue

            await db.commit()
            await _refresh_after_write(db, event, registration)

            count = registration.ticket_count
            tickets_sold.inc(count)
            record_ledger_operation("commit", "success")
            logger.info(
                "registration_committed",
                registration_id=registration.id,
                event_id=event.id,
                tickets=count,
                total_amount=str(registration.total_amount),
                attempt=attempt,
            )
            return registration

    record_ledger_operation("commit", "conflict")
    logger.error("ledger_conflict_exhausted", operation="commit", registration_id=registration_id)
    raise PersistenceConflictError(event_id, max_attempts)


async def release(db: AsyncSession, registration_id: int) -> Registration:
    """
    Cancel a registration.

    A completed registration gives its tickets and revenue back and leaves
    the attendee list; any other payment state leaves the counters alone.
    The registration is marked cancelled either way.
    """
    max_attempts = settings.LEDGER_MAX_RETRY_ATTEMPTS
    event_id = None

    with ledger_latency.labels(operation="release").time():
        for attempt in range(1, max_attempts + 1):
            try:
                registration = await _load_registration(db, registration_id)
                if registration.status == RegistrationStatus.CANCELLED.value:
                    raise AlreadyCancelledError(registration.id)
                was_committed = registration.payment_status == PaymentStatus.COMPLETED.value
                event = await _load_event(db, registration.event_id)
                event_id = event.id

                tiers = []
                if was_committed:
                    for name, quantity in _demand_by_tier(registration.tickets).items():
                        tier = event.tier_by_name(name)
                        if tier is None:
                            raise UnknownTicketTypeError(name)
                        tiers.append((tier, -quantity))
            except LedgerError as exc:
                record_ledger_operation("release", "rejected")
                logger.warning(
                    "release_rejected",
                    registration_id=registration_id,
                    code=exc.code.value,
                    attempt=attempt,
                )
                raise

            applied = True
            if was_committed:
                applied = await _apply_inventory_delta(
                    db, event, tiers, -Decimal(registration.total_amount)
                )
                if applied:
                    await db.execute(
                        delete(EventAttendee).where(
                            EventAttendee.event_id == event.id,
                            EventAttendee.registration_id == registration.id,
                        )
                    )

            if applied:
                result = await db.execute(
                    update(Registration)
                    .where(
                        Registration.id == registration.id,
                        Registration.status == registration.status,
                        Registration.payment_status == registration.payment_status,
                    )
                    .values(status=RegistrationStatus.CANCELLED.value)
                    .execution_options(synchronize_session=False)
                )
                applied = result.rowcount == 1

            if not applied:
                await db.rollback()
                record_ledger_retry("release")
                logger.info(
                    "ledger_conflict_retry",
                    operation="release",
                    registration_id=registration_id,
                    event_id=event_id,
                    attempt=attempt,
                )
                continue

            await db.commit()
            await _refresh_after_write(db, event, registration)

            if was_committed:
                tickets_released.inc(registration.ticket_count)
            record_ledger_operation("release", "success")
            logger.info(
                "registration_released",
                registration_id=registration.id,
                event_id=event.id,
                inventory_restored=was_committed,
                tickets=registration.ticket_count if was_committed else 0,
                attempt=attempt,
            )
            return registration

    record_ledger_operation("release", "conflict")
    logger.error("ledger_conflict_exhausted", operation="release", registration_id=registration_id)
    raise PersistenceConflictError(event_id, max_attempts)

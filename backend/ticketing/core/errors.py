"""
Typed errors raised by the inventory ledger.

Each error carries a stable code and a user-safe message. The API layer maps
them to HTTP responses in ``ticketing.api.errors``.
"""

from enum import Enum


class ErrorCode(Enum):
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_TICKET_TYPE = "UNKNOWN_TICKET_TYPE"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    INVALID_REGISTRATION_STATE = "INVALID_REGISTRATION_STATE"
    PERSISTENCE_CONFLICT = "PERSISTENCE_CONFLICT"


class LedgerError(Exception):
    """Base ledger error with code and user-safe message."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(LedgerError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnknownTicketTypeError(LedgerError):
    code = ErrorCode.UNKNOWN_TICKET_TYPE

    def __init__(self, ticket_type: str) -> None:
        super().__init__(f"Invalid ticket type: {ticket_type}")
        self.ticket_type = ticket_type


class InsufficientInventoryError(LedgerError):
    code = ErrorCode.INSUFFICIENT_INVENTORY

    def __init__(self, ticket_type: str, requested: int, available: int) -> None:
        super().__init__(
            f"Not enough tickets available for {ticket_type}. "
            f"Requested: {requested}, Available: {available}"
        )
        self.ticket_type = ticket_type
        self.requested = requested
        self.available = available


class AlreadyCompletedError(LedgerError):
    code = ErrorCode.ALREADY_COMPLETED

    def __init__(self, registration_id: int) -> None:
        super().__init__("Payment for this registration is already completed")
        self.registration_id = registration_id


class AlreadyCancelledError(LedgerError):
    code = ErrorCode.ALREADY_CANCELLED

    def __init__(self, registration_id: int) -> None:
        super().__init__("Registration already cancelled")
        self.registration_id = registration_id


class InvalidRegistrationStateError(LedgerError):
    """Commit requested for a registration whose payment failed or was refunded."""

    code = ErrorCode.INVALID_REGISTRATION_STATE

    def __init__(self, registration_id: int, payment_status: str) -> None:
        super().__init__(f"Cannot confirm payment for a registration in '{payment_status}' state")
        self.registration_id = registration_id
        self.payment_status = payment_status


class PersistenceConflictError(LedgerError):
    code = ErrorCode.PERSISTENCE_CONFLICT

    def __init__(self, event_id: int, attempts: int) -> None:
        super().__init__("Ticket inventory changed concurrently. Please try again.")
        self.event_id = event_id
        self.attempts = attempts

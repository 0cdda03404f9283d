# Overview: Error taxonomy for ledger operations.

"""
Every failure a ledger operation can report derives from LedgerError.

Each kind carries a stable code and the HTTP status the JSON layer maps it
to. Retryable kinds (concurrency conflicts, persistence outages) are shown
to end users as a generic "please retry" message; the others carry enough
detail for the caller to correct the input.
"""
from __future__ import annotations

from decimal import Decimal

from .quantities import format_quantity


class LedgerError(Exception):
    """Base class for ledger failures."""

    code = "LEDGER_ERROR"
    status_code = 400
    retryable = False
    default_message = "Ledger operation failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(LedgerError, ValueError):
    """400-level input problem, rejected before any mutation."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid input."


class NotFoundError(LedgerError, LookupError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class InsufficientQuantityError(LedgerError):
    """Requested quantity exceeds what the lot holds."""

    code = "INSUFFICIENT_QUANTITY"
    status_code = 409

    def __init__(self, available: Decimal, requested: Decimal, message: str | None = None):
        self.available = available
        self.requested = requested
        super().__init__(
            message or f"Insufficient quantity: only {format_quantity(available)} available, requested {format_quantity(requested)}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["available"] = format_quantity(self.available)
        data["requested"] = format_quantity(self.requested)
        return data


class SameStoreTransferError(ValidationError):
    code = "SAME_STORE_TRANSFER"
    default_message = "Cannot transfer to the same store."


class InvalidStatusTransitionError(LedgerError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409
    default_message = "Invalid status transition."


class ConcurrentModificationError(LedgerError):
    """Optimistic-concurrency conflict that survived every retry."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409
    retryable = True
    default_message = "The record was modified concurrently."


class PersistenceFailureError(LedgerError):
    """The database was unreachable mid-transaction; nothing was written."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503
    retryable = True
    default_message = "The database is unavailable."

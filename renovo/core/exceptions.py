"""
Domain exceptions for the Renovo application.

Provides specific exception types for different error scenarios.
"""

from decimal import Decimal
from typing import Any


class RenovoError(Exception):
    """Base exception for all Renovo errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(RenovoError):
    """Base exception for storage operations."""

    pass


class InvoiceNotFoundError(StorageError):
    """Invoice not found in storage."""

    def __init__(self, invoice_id: int):
        super().__init__(
            f"Invoice not found: {invoice_id}",
            code="INVOICE_NOT_FOUND",
            details={"invoice_id": invoice_id},
        )


class DuplicateInvoiceNumberError(StorageError):
    """Another invoice already holds this number."""

    def __init__(self, invoice_number: str):
        super().__init__(
            f"Invoice number already exists: {invoice_number}",
            code="DUPLICATE_INVOICE_NUMBER",
            details={"invoice_number": invoice_number},
        )


class ConcurrentModificationError(StorageError):
    """Invoice was modified by another writer since it was read."""

    def __init__(self, invoice_id: int, expected_version: int):
        super().__init__(
            f"Invoice {invoice_id} was modified concurrently "
            f"(expected version {expected_version})",
            code="CONCURRENT_MODIFICATION",
            details={"invoice_id": invoice_id, "expected_version": expected_version},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Ledger Exceptions
class LedgerError(RenovoError):
    """Base exception for invoice ledger rule violations."""

    pass


class ExceedsBalanceError(LedgerError):
    """Payment is larger than the remaining balance."""

    def __init__(self, invoice_number: str, amount: Decimal, balance: Decimal):
        super().__init__(
            f"Payment of {amount} exceeds remaining balance {balance} "
            f"on invoice {invoice_number}",
            code="EXCEEDS_BALANCE",
            details={
                "invoice_number": invoice_number,
                "amount": str(amount),
                "balance": str(balance),
            },
        )


class InvoiceCancelledError(LedgerError):
    """Operation attempted on a cancelled invoice."""

    def __init__(self, invoice_number: str, operation: str = "payment"):
        super().__init__(
            f"Cannot apply {operation} to cancelled invoice {invoice_number}",
            code="INVOICE_CANCELLED",
            details={"invoice_number": invoice_number, "operation": operation},
        )


class InvoiceStateError(LedgerError):
    """Invoice status does not allow the requested transition."""

    def __init__(self, invoice_number: str, status: str, operation: str):
        super().__init__(
            f"Cannot {operation} invoice {invoice_number} in status '{status}'",
            code="INVALID_INVOICE_STATE",
            details={
                "invoice_number": invoice_number,
                "status": status,
                "operation": operation,
            },
        )


class RecurrenceError(LedgerError):
    """Recurring invoice cannot produce another occurrence."""

    def __init__(self, invoice_number: str, reason: str):
        super().__init__(
            f"Cannot generate next occurrence of {invoice_number}: {reason}",
            code="RECURRENCE_ERROR",
            details={"invoice_number": invoice_number, "reason": reason},
        )


# Validation Exceptions
class ValidationError(RenovoError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class InvalidAmountError(ValidationError):
    """Monetary amount is zero, negative or not a number."""

    def __init__(self, amount: Any, field: str = "amount"):
        super().__init__(
            field=field,
            message="Amount must be greater than zero",
            value=amount,
        )
        self.code = "INVALID_AMOUNT"


class ConfigurationError(RenovoError):
    """Configuration error."""

    pass

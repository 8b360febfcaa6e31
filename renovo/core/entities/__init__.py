"""Core domain entities."""

from renovo.core.entities.invoice import (
    Currency,
    DiscountAppliesTo,
    DiscountPolicy,
    DiscountType,
    HistoryAction,
    HistoryEntry,
    Invoice,
    InvoiceStatus,
    InvoiceType,
    ItemCategory,
    LineItem,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentTerms,
    ProjectPhase,
    RecurringFrequency,
    RecurringPattern,
    TaxEntry,
    TaxType,
)
from renovo.core.entities.summary import InvoiceFilter, InvoiceStatusSummary, InvoiceSummary

__all__ = [
    # Invoice aggregate
    "Invoice",
    "LineItem",
    "TaxEntry",
    "DiscountPolicy",
    "Payment",
    "RecurringPattern",
    "HistoryEntry",
    # Enums
    "InvoiceStatus",
    "PaymentStatus",
    "InvoiceType",
    "Currency",
    "PaymentMethod",
    "PaymentTerms",
    "ItemCategory",
    "ProjectPhase",
    "TaxType",
    "DiscountType",
    "DiscountAppliesTo",
    "RecurringFrequency",
    "HistoryAction",
    # Read-side
    "InvoiceFilter",
    "InvoiceSummary",
    "InvoiceStatusSummary",
]

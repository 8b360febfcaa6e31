"""
Core business logic services.

Layer-pure services that depend only on:
- renovo/core/entities/*
- renovo/core/exceptions.py

NO infrastructure imports. The ledger engine is a set of pure functions.
"""

from renovo.core.services.invoice_ledger import (
    OPEN_STATUSES,
    InvoiceTotals,
    add_history,
    apply_payment_status,
    apply_totals,
    archive_invoice,
    build_next_occurrence,
    cancel_invoice,
    derive_payment_status,
    due_date_for_terms,
    ensure_editable,
    format_invoice_number,
    generate_invoice_number,
    highest_sequence,
    mark_sent,
    mark_viewed,
    next_due_date,
    recompute_totals,
    record_payment,
    refresh_overdue,
    revise_charges,
    schedule_next_due_date,
    status_view,
)

__all__ = [
    # Totals
    "InvoiceTotals",
    "recompute_totals",
    "apply_totals",
    "revise_charges",
    "ensure_editable",
    # Payment status
    "derive_payment_status",
    "status_view",
    "apply_payment_status",
    "refresh_overdue",
    "record_payment",
    "OPEN_STATUSES",
    # Lifecycle
    "add_history",
    "mark_sent",
    "mark_viewed",
    "cancel_invoice",
    "archive_invoice",
    # Recurrence
    "due_date_for_terms",
    "next_due_date",
    "schedule_next_due_date",
    "build_next_occurrence",
    # Numbering
    "generate_invoice_number",
    "format_invoice_number",
    "highest_sequence",
]

"""
Invoice Ledger Engine.

Derives every monetary and payment-status field of an invoice from its
line items, taxes, discount policy and payment ledger. All functions are
synchronous and free of I/O; persistence is the caller's concern.

Recomputation is explicit and idempotent: callers invoke
``apply_totals`` (or an operation that calls it) after every mutation
instead of relying on dirty tracking.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from dateutil.relativedelta import relativedelta

from renovo.config import get_logger
from renovo.core.entities.invoice import (
    HUNDRED,
    ZERO,
    DiscountPolicy,
    DiscountType,
    HistoryAction,
    HistoryEntry,
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentTerms,
    RecurringFrequency,
    RecurringPattern,
    TaxEntry,
    to_decimal,
)
from renovo.core.exceptions import (
    ExceedsBalanceError,
    InvalidAmountError,
    InvoiceCancelledError,
    InvoiceStateError,
    RecurrenceError,
    ValidationError,
)

logger = get_logger(__name__)

# Statuses in which an invoice is open for collection
OPEN_STATUSES = frozenset(
    {
        InvoiceStatus.SENT,
        InvoiceStatus.VIEWED,
        InvoiceStatus.PARTIAL,
        InvoiceStatus.OVERDUE,
    }
)

# Months added per interval for calendar-based frequencies
_MONTH_STEPS: dict[RecurringFrequency, int] = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.SEMI_ANNUALLY: 6,
    RecurringFrequency.ANNUALLY: 12,
}

_DAY_STEPS: dict[RecurringFrequency, int] = {
    RecurringFrequency.DAILY: 1,
    RecurringFrequency.WEEKLY: 7,
    RecurringFrequency.BI_WEEKLY: 14,
}

_TERM_DAYS: dict[PaymentTerms, int] = {
    PaymentTerms.NET_15: 15,
    PaymentTerms.NET_30: 30,
    PaymentTerms.NET_45: 45,
    PaymentTerms.NET_60: 60,
    PaymentTerms.DUE_ON_RECEIPT: 0,
    PaymentTerms.FIFTY_UPFRONT: 0,
}


@dataclass(frozen=True)
class InvoiceTotals:
    """Derived monetary fields of an invoice."""

    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def resolve_tax_amount(tax: TaxEntry, subtotal: Decimal) -> Decimal:
    """Tax entry amount, derived from its rate when no amount was given."""
    if tax.amount is not None:
        return tax.amount
    return subtotal * tax.rate / HUNDRED


def compute_discount(discount: DiscountPolicy | None, subtotal: Decimal) -> Decimal:
    """Discount against the current subtotal (percentage) or a flat value."""
    if discount is None:
        return ZERO
    if discount.type == DiscountType.FIXED:
        return discount.value
    return subtotal * discount.value / HUNDRED


def recompute_totals(
    items: Sequence[LineItem],
    taxes: Sequence[TaxEntry],
    discount: DiscountPolicy | None,
    paid_amount: Decimal | int | float = ZERO,
) -> InvoiceTotals:
    """
    Compute subtotal, tax, discount, total and balance.

    Per-line taxes are not rolled into ``tax_amount``; only the
    invoice-level tax entries are. The total never drops below zero.
    """
    paid = to_decimal(paid_amount)
    subtotal = sum((item.amount for item in items), ZERO)
    tax_total = sum((resolve_tax_amount(t, subtotal) for t in taxes), ZERO)
    discount_total = compute_discount(discount, subtotal)
    total = max(ZERO, subtotal + tax_total - discount_total)

    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_total,
        discount_amount=discount_total,
        total_amount=total,
        paid_amount=paid,
        balance_amount=total - paid,
    )


def ledger_paid_amount(payments: Iterable[Payment]) -> Decimal:
    """Sum of the payment ledger."""
    return sum((p.amount for p in payments), ZERO)


def apply_totals(invoice: Invoice) -> InvoiceTotals:
    """
    Recompute and write all derived money fields of ``invoice``.

    ``paid_amount`` is always re-derived from the payment ledger. The
    totals are computed in full before any field is assigned.
    """
    totals = recompute_totals(
        invoice.items,
        invoice.taxes,
        invoice.discount,
        ledger_paid_amount(invoice.payments),
    )

    for tax in invoice.taxes:
        tax.computed_amount = resolve_tax_amount(tax, totals.subtotal)

    invoice.subtotal = totals.subtotal
    invoice.tax_amount = totals.tax_amount
    invoice.discount_amount = totals.discount_amount
    invoice.total_amount = totals.total_amount
    invoice.paid_amount = totals.paid_amount
    invoice.balance_amount = totals.balance_amount
    return totals


# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------


def derive_payment_status(
    total_amount: Decimal,
    paid_amount: Decimal,
    due_date: date,
    today: date | None = None,
) -> PaymentStatus:
    """
    Single source of truth for payment state.

    paid iff something was paid and nothing remains; partial iff
    0 < paid < total; overdue iff a balance remains past the due date;
    otherwise pending.
    """
    today = today or date.today()
    balance = total_amount - paid_amount

    if paid_amount > 0 and balance <= 0:
        return PaymentStatus.PAID
    if paid_amount > 0:
        return PaymentStatus.PARTIAL
    if due_date < today:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def status_view(
    current: InvoiceStatus,
    payment_status: PaymentStatus,
) -> InvoiceStatus:
    """Project a payment status onto the document status field."""
    if current == InvoiceStatus.CANCELLED:
        return current
    if payment_status == PaymentStatus.PAID:
        return InvoiceStatus.PAID
    if payment_status == PaymentStatus.PARTIAL:
        return InvoiceStatus.PARTIAL
    if current == InvoiceStatus.DRAFT:
        return current
    if payment_status == PaymentStatus.OVERDUE:
        return InvoiceStatus.OVERDUE
    # Back to an unpaid, in-date state
    if current in (InvoiceStatus.PAID, InvoiceStatus.PARTIAL, InvoiceStatus.OVERDUE):
        return InvoiceStatus.SENT
    return current


def apply_payment_status(
    invoice: Invoice,
    today: date | None = None,
    actor_id: str | None = None,
) -> PaymentStatus:
    """
    Level-triggered status update from current totals.

    Sets ``paid_at`` and writes the ``paid`` history entry only on the
    first transition into the paid state.
    """
    payment_status = derive_payment_status(
        invoice.total_amount, invoice.paid_amount, invoice.due_date, today
    )
    invoice.payment_status = payment_status
    invoice.status = status_view(invoice.status, payment_status)

    if payment_status == PaymentStatus.PAID and invoice.paid_at is None:
        invoice.paid_at = datetime.utcnow()
        add_history(
            invoice,
            HistoryAction.PAID,
            actor_id,
            details=f"Invoice paid in full ({invoice.total_amount} {invoice.currency.value})",
        )
        logger.info(
            "invoice_paid",
            invoice_number=invoice.invoice_number,
            total=invoice.total_amount,
        )

    return payment_status


def refresh_overdue(invoice: Invoice, today: date | None = None) -> bool:
    """Re-derive status of an open invoice. Returns True if anything changed."""
    if not invoice.is_active or invoice.status not in OPEN_STATUSES:
        return False
    before = (invoice.status, invoice.payment_status)
    apply_payment_status(invoice, today)
    return (invoice.status, invoice.payment_status) != before


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


def record_payment(
    invoice: Invoice,
    amount: Any,
    method: PaymentMethod | str | None,
    actor_id: str | None,
    payment_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
    today: date | None = None,
) -> Invoice:
    """
    Append a payment to the ledger and re-derive balance and status.

    Raises:
        InvalidAmountError: amount is not a positive number
        ValidationError: payment method missing or unknown
        InvoiceCancelledError: invoice is cancelled
        InvoiceStateError: invoice is archived
        ExceedsBalanceError: amount is larger than the fresh balance

    Nothing on the invoice changes when an error is raised.
    """
    try:
        value = to_decimal(amount)
    except ValueError:
        raise InvalidAmountError(amount) from None
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(amount)

    if method is None or method == "":
        raise ValidationError("method", "Payment method is required")
    try:
        payment_method = PaymentMethod(method)
    except ValueError:
        raise ValidationError("method", "Unknown payment method", method) from None

    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvoiceCancelledError(number)
    if not invoice.is_active:
        raise InvoiceStateError(number, "archived", "record a payment on")

    fresh = recompute_totals(
        invoice.items,
        invoice.taxes,
        invoice.discount,
        ledger_paid_amount(invoice.payments),
    )
    if value > fresh.balance_amount:
        raise ExceedsBalanceError(number, value, fresh.balance_amount)

    payment = Payment(
        amount=value,
        date=payment_date or datetime.utcnow(),
        method=payment_method,
        reference=reference,
        notes=notes,
        recorded_by=actor_id,
    )
    invoice.payments.append(payment)
    apply_totals(invoice)

    add_history(
        invoice,
        HistoryAction.PAYMENT_RECEIVED,
        actor_id,
        details=f"Payment of {value} {invoice.currency.value} received via {payment_method.value}",
        changes={"amount": str(value), "method": payment_method.value},
    )
    apply_payment_status(invoice, today, actor_id)

    logger.info(
        "payment_recorded",
        invoice_number=invoice.invoice_number,
        amount=value,
        paid=invoice.paid_amount,
        balance=invoice.balance_amount,
        status=invoice.status.value,
    )
    return invoice


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


def ensure_editable(invoice: Invoice, operation: str = "edit") -> None:
    """Reject edits to paid, cancelled or archived invoices."""
    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvoiceCancelledError(number, operation)
    if invoice.status == InvoiceStatus.PAID:
        raise InvoiceStateError(number, invoice.status.value, operation)
    if not invoice.is_active:
        raise InvoiceStateError(number, "archived", operation)


def revise_charges(
    invoice: Invoice,
    items: list[LineItem] | None = None,
    taxes: list[TaxEntry] | None = None,
    discount: DiscountPolicy | None = None,
    today: date | None = None,
) -> InvoiceTotals:
    """
    Replace items, taxes and/or discount and recompute everything.

    The candidate totals are validated before the invoice is touched:
    a revision that would drop the total below the amount already paid
    is rejected.
    """
    ensure_editable(invoice)

    new_items = items if items is not None else invoice.items
    new_taxes = taxes if taxes is not None else invoice.taxes
    new_discount = discount if discount is not None else invoice.discount

    candidate = recompute_totals(
        new_items, new_taxes, new_discount, ledger_paid_amount(invoice.payments)
    )
    if candidate.balance_amount < 0:
        raise ValidationError(
            "total_amount",
            f"Total {candidate.total_amount} is below the amount already paid "
            f"({candidate.paid_amount})",
            candidate.total_amount,
        )

    invoice.items = list(new_items)
    invoice.taxes = list(new_taxes)
    invoice.discount = new_discount
    totals = apply_totals(invoice)
    if invoice.payments or invoice.status in OPEN_STATUSES:
        apply_payment_status(invoice, today)
    return totals


# ---------------------------------------------------------------------------
# Lifecycle (status only, never touches money)
# ---------------------------------------------------------------------------


def add_history(
    invoice: Invoice,
    action: HistoryAction,
    actor_id: str | None,
    details: str | None = None,
    changes: dict[str, Any] | None = None,
) -> HistoryEntry:
    """Append an audit entry."""
    entry = HistoryEntry(
        action=action,
        user=actor_id,
        details=details,
        changes=changes or {},
    )
    invoice.history.append(entry)
    invoice.updated_at = entry.timestamp
    return entry


def mark_sent(
    invoice: Invoice,
    actor_id: str | None,
    recipients: list[str] | None = None,
    now: datetime | None = None,
) -> Invoice:
    """Send (or re-send) an invoice to the client."""
    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvoiceCancelledError(number, "send")
    if invoice.status == InvoiceStatus.PAID:
        raise InvoiceStateError(number, invoice.status.value, "send")
    if not invoice.is_active:
        raise InvoiceStateError(number, "archived", "send")

    now = now or datetime.utcnow()
    if invoice.status == InvoiceStatus.DRAFT:
        invoice.status = InvoiceStatus.SENT
    invoice.sent_at = now
    invoice.sent_by = actor_id
    if recipients:
        invoice.recipient_emails = list(recipients)

    add_history(
        invoice,
        HistoryAction.SENT,
        actor_id,
        details="Invoice sent to " + (", ".join(invoice.recipient_emails) or "client"),
    )
    return invoice


def mark_viewed(invoice: Invoice, now: datetime | None = None) -> Invoice:
    """Register a client portal view."""
    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.DRAFT:
        raise InvoiceStateError(number, invoice.status.value, "view")

    now = now or datetime.utcnow()
    invoice.view_count += 1
    invoice.last_viewed_at = now
    if invoice.status == InvoiceStatus.SENT:
        invoice.status = InvoiceStatus.VIEWED

    add_history(invoice, HistoryAction.VIEWED, None, details=f"View #{invoice.view_count}")
    return invoice


def cancel_invoice(invoice: Invoice, actor_id: str | None, reason: str | None = None) -> Invoice:
    """Void an unpaid invoice. Invoices with recorded payments cannot be voided."""
    if invoice.status == InvoiceStatus.CANCELLED:
        return invoice

    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.PAID or invoice.payments:
        raise InvoiceStateError(number, invoice.status.value, "cancel")

    invoice.status = InvoiceStatus.CANCELLED
    invoice.void_reason = reason
    add_history(invoice, HistoryAction.CANCELLED, actor_id, details=reason or "Invoice cancelled")
    return invoice


def archive_invoice(
    invoice: Invoice, actor_id: str | None, now: datetime | None = None
) -> Invoice:
    """Soft delete. Paid invoices stay on the books."""
    number = invoice.invoice_number or str(invoice.id)
    if invoice.status == InvoiceStatus.PAID:
        raise InvoiceStateError(number, invoice.status.value, "archive")
    if not invoice.is_active:
        return invoice

    invoice.is_active = False
    invoice.archived_at = now or datetime.utcnow()
    add_history(invoice, HistoryAction.ARCHIVED, actor_id, details="Invoice archived")
    return invoice


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def due_date_for_terms(issue_date: date, terms: PaymentTerms) -> date | None:
    """Due date implied by payment terms; None for custom terms."""
    days = _TERM_DAYS.get(terms)
    if days is None:
        return None
    return issue_date + timedelta(days=days)


def _clamp_day(d: date, day: int) -> date:
    last = (d.replace(day=1) + relativedelta(months=1, days=-1)).day
    return d.replace(day=min(day, last))


def next_due_date(
    due_date: date, pattern: RecurringPattern | None, anchor_day: int | None = None
) -> date:
    """
    Advance ``due_date`` by one recurrence step.

    Month and year steps clamp to the last day of the target month
    (Jan 31 + 1 month = Feb 28, or Feb 29 in leap years). ``day_of_month``
    re-anchors month-based steps, falling back to ``anchor_day`` so a
    clamped date returns to the original day once the month allows it.
    ``day_of_week`` moves day-based steps forward to that weekday.
    """
    if pattern is None or pattern.frequency is None:
        return due_date

    interval = pattern.interval
    frequency = pattern.frequency

    if frequency in _MONTH_STEPS:
        result = due_date + relativedelta(months=_MONTH_STEPS[frequency] * interval)
        day = pattern.day_of_month or anchor_day
        if day:
            result = _clamp_day(result, day)
        return result

    result = due_date + timedelta(days=_DAY_STEPS[frequency] * interval)
    if pattern.day_of_week is not None and frequency != RecurringFrequency.DAILY:
        result += timedelta(days=(pattern.day_of_week - result.weekday()) % 7)
    return result


def schedule_next_due_date(invoice: Invoice) -> date | None:
    """Set ``recurring_pattern.next_due_date``. No-op unless recurring."""
    pattern = invoice.recurring_pattern
    if not invoice.is_recurring or pattern is None or pattern.frequency is None:
        return None
    pattern.next_due_date = next_due_date(invoice.due_date, pattern)
    return pattern.next_due_date


def build_next_occurrence(template: Invoice, actor_id: str | None) -> Invoice:
    """
    Produce the next draft invoice of a recurring template.

    The new invoice copies the template's charges, is due on the
    template's scheduled next due date and keeps the same issue-to-due
    gap. The template's schedule advances by one step, month-based
    steps staying on the template's own due day.
    """
    number = template.invoice_number or str(template.id)
    pattern = template.recurring_pattern
    if not template.is_recurring or pattern is None or pattern.frequency is None:
        raise RecurrenceError(number, "invoice is not recurring")
    if not template.is_active or template.status == InvoiceStatus.CANCELLED:
        raise RecurrenceError(number, "invoice is not active")
    if pattern.max_occurrences is not None and pattern.occurrences >= pattern.max_occurrences:
        raise RecurrenceError(number, f"reached {pattern.max_occurrences} occurrences")

    due = pattern.next_due_date or next_due_date(template.due_date, pattern)
    if pattern.end_date is not None and due > pattern.end_date:
        raise RecurrenceError(number, f"next due date {due} is past end date {pattern.end_date}")

    gap = template.due_date - template.issue_date
    occurrence = Invoice(
        type=template.type,
        issue_date=due - gap,
        due_date=due,
        client_id=template.client_id,
        project_id=template.project_id,
        created_by=actor_id,
        currency=template.currency,
        items=[item.model_copy(update={"id": None}, deep=True) for item in template.items],
        taxes=[tax.model_copy(update={"id": None}, deep=True) for tax in template.taxes],
        discount=template.discount.model_copy(deep=True),
        payment_terms=template.payment_terms,
        purchase_order_number=template.purchase_order_number,
        notes=template.notes,
        terms=template.terms,
        tags=list(template.tags),
        recipient_emails=list(template.recipient_emails),
    )
    apply_totals(occurrence)
    add_history(
        occurrence,
        HistoryAction.CREATED,
        actor_id,
        details=f"Generated from recurring invoice {number}",
        changes={"template_id": template.id},
    )

    pattern.occurrences += 1
    pattern.next_due_date = next_due_date(due, pattern, anchor_day=template.due_date.day)
    add_history(
        template,
        HistoryAction.MODIFIED,
        actor_id,
        details=f"Occurrence {pattern.occurrences} generated, due {due.isoformat()}",
    )
    return occurrence


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------


def invoice_number_pattern(prefix: str, year: int) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prefix.upper())}-{year}-(\d+)$")


def highest_sequence(prefix: str, year: int, existing_numbers: Iterable[str]) -> int:
    """Largest numeric suffix among ``{prefix}-{year}-N`` numbers, 0 if none."""
    matcher = invoice_number_pattern(prefix, year)
    highest = 0
    for number in existing_numbers:
        match = matcher.match((number or "").strip().upper())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def format_invoice_number(prefix: str, year: int, sequence: int, padding: int = 3) -> str:
    return f"{prefix.upper()}-{year}-{sequence:0{padding}d}"


def generate_invoice_number(
    prefix: str = "INV",
    existing_numbers: Iterable[str] = (),
    year: int | None = None,
    padding: int = 3,
) -> str:
    """
    Next number in the ``{prefix}-{year}-NNN`` sequence.

    Suffixes compare numerically, so INV-2024-1000 follows INV-2024-999.
    """
    year = year or date.today().year
    return format_invoice_number(
        prefix, year, highest_sequence(prefix, year, existing_numbers) + 1, padding
    )

"""Tests for the invoice ledger engine."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from renovo.core.entities import (
    DiscountPolicy,
    DiscountType,
    HistoryAction,
    InvoiceStatus,
    LineItem,
    PaymentMethod,
    PaymentStatus,
    PaymentTerms,
    RecurringFrequency,
    RecurringPattern,
    TaxEntry,
)
from renovo.core.exceptions import (
    ExceedsBalanceError,
    InvalidAmountError,
    InvoiceCancelledError,
    InvoiceStateError,
    RecurrenceError,
    ValidationError,
)
from renovo.core.services.invoice_ledger import (
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

TODAY = date(2024, 6, 15)


def _history_actions(invoice) -> list[HistoryAction]:
    return [h.action for h in invoice.history]


class TestRecomputeTotals:
    """Tests for recompute_totals()."""

    def test_worked_example(self, sample_invoice):
        """100 subtotal + 10% tax - 10% discount = 100 total."""
        assert sample_invoice.subtotal == Decimal("100")
        assert sample_invoice.tax_amount == Decimal("10")
        assert sample_invoice.discount_amount == Decimal("10")
        assert sample_invoice.total_amount == Decimal("100")
        assert sample_invoice.balance_amount == Decimal("100")
        assert sample_invoice.paid_amount == Decimal("0")

    def test_fixed_discount(self):
        totals = recompute_totals(
            [LineItem(description="Tiles", quantity=4, rate=25)],
            [],
            DiscountPolicy(type=DiscountType.FIXED, value=15),
        )
        assert totals.subtotal == Decimal("100")
        assert totals.discount_amount == Decimal("15")
        assert totals.total_amount == Decimal("85")

    def test_total_never_negative(self):
        totals = recompute_totals(
            [LineItem(description="Paint", quantity=1, rate=50)],
            [],
            DiscountPolicy(type=DiscountType.FIXED, value=500),
        )
        assert totals.total_amount == Decimal("0")
        assert totals.balance_amount == Decimal("0")

    def test_explicit_tax_amount_wins_over_rate(self):
        totals = recompute_totals(
            [LineItem(description="Labor", quantity=10, rate=40)],
            [TaxEntry(name="Permit levy", rate=50, amount=12)],
            None,
        )
        assert totals.tax_amount == Decimal("12")
        assert totals.total_amount == Decimal("412")

    def test_line_tax_not_rolled_into_tax_amount(self, make_invoice):
        invoice = make_invoice(
            items=[LineItem(description="Fixtures", quantity=2, rate=50, tax_rate=20)],
            taxes=[],
            discount=DiscountPolicy(),
        )
        assert invoice.tax_amount == Decimal("0")
        assert invoice.total_amount == Decimal("100")
        assert invoice.line_tax_total == Decimal("20")

    def test_paid_amount_reduces_balance(self):
        totals = recompute_totals(
            [LineItem(description="Labor", quantity=1, rate=100)], [], None, paid_amount=30
        )
        assert totals.balance_amount == Decimal("70")

    def test_rate_tax_amount_is_derived(self, sample_invoice):
        tax = sample_invoice.taxes[0]
        assert tax.amount is None
        assert tax.computed_amount == Decimal("10")

    def test_rate_tax_follows_subtotal_on_recompute(self, sample_invoice):
        sample_invoice.items = [LineItem(description="Kitchen demolition", quantity=1, rate=200)]
        apply_totals(sample_invoice)

        assert sample_invoice.taxes[0].computed_amount == Decimal("20")
        assert sample_invoice.tax_amount == Decimal("20")
        assert sample_invoice.total_amount == Decimal("200")

    def test_explicit_tax_amount_kept_on_recompute(self, sample_invoice):
        sample_invoice.taxes = [TaxEntry(name="Permit levy", rate=50, amount=12)]
        apply_totals(sample_invoice)
        sample_invoice.items = [LineItem(description="Kitchen demolition", quantity=1, rate=300)]
        apply_totals(sample_invoice)

        assert sample_invoice.taxes[0].amount == Decimal("12")
        assert sample_invoice.taxes[0].computed_amount == Decimal("12")

    def test_empty_invoice_totals_zero(self):
        totals = recompute_totals([], [], None)
        assert totals.total_amount == Decimal("0")
        assert totals.balance_amount == Decimal("0")


class TestDerivePaymentStatus:
    """Tests for derive_payment_status()."""

    def test_pending_before_due(self):
        status = derive_payment_status(Decimal("100"), Decimal("0"), TODAY, TODAY)
        assert status == PaymentStatus.PENDING

    def test_overdue_after_due(self):
        yesterday = TODAY - timedelta(days=1)
        status = derive_payment_status(Decimal("100"), Decimal("0"), yesterday, TODAY)
        assert status == PaymentStatus.OVERDUE

    def test_partial_wins_over_overdue(self):
        yesterday = TODAY - timedelta(days=1)
        status = derive_payment_status(Decimal("100"), Decimal("40"), yesterday, TODAY)
        assert status == PaymentStatus.PARTIAL

    def test_paid_when_balance_cleared(self):
        status = derive_payment_status(Decimal("100"), Decimal("100"), TODAY, TODAY)
        assert status == PaymentStatus.PAID

    def test_zero_total_without_payments_is_not_paid(self):
        status = derive_payment_status(Decimal("0"), Decimal("0"), TODAY, TODAY)
        assert status == PaymentStatus.PENDING


class TestStatusView:
    """Tests for status_view()."""

    def test_cancelled_is_sticky(self):
        assert status_view(InvoiceStatus.CANCELLED, PaymentStatus.PAID) == InvoiceStatus.CANCELLED

    def test_draft_is_never_overdue(self):
        assert status_view(InvoiceStatus.DRAFT, PaymentStatus.OVERDUE) == InvoiceStatus.DRAFT

    def test_sent_becomes_overdue(self):
        assert status_view(InvoiceStatus.SENT, PaymentStatus.OVERDUE) == InvoiceStatus.OVERDUE

    def test_overdue_reverts_to_sent_when_in_date(self):
        assert status_view(InvoiceStatus.OVERDUE, PaymentStatus.PENDING) == InvoiceStatus.SENT

    def test_viewed_stays_viewed_while_pending(self):
        assert status_view(InvoiceStatus.VIEWED, PaymentStatus.PENDING) == InvoiceStatus.VIEWED


class TestRecordPayment:
    """Tests for record_payment()."""

    def test_partial_then_full_payment(self, sample_invoice):
        mark_sent(sample_invoice, "user-1")

        record_payment(sample_invoice, 60, "bank-transfer", "user-1", today=TODAY)
        assert sample_invoice.paid_amount == Decimal("60")
        assert sample_invoice.balance_amount == Decimal("40")
        assert sample_invoice.payment_status == PaymentStatus.PARTIAL
        assert sample_invoice.status == InvoiceStatus.PARTIAL
        assert sample_invoice.paid_at is None

        record_payment(sample_invoice, "40.00", PaymentMethod.CHECK, "user-1", today=TODAY)
        assert sample_invoice.paid_amount == Decimal("100")
        assert sample_invoice.balance_amount == Decimal("0")
        assert sample_invoice.payment_status == PaymentStatus.PAID
        assert sample_invoice.status == InvoiceStatus.PAID
        assert sample_invoice.paid_at is not None
        assert len(sample_invoice.payments) == 2
        assert _history_actions(sample_invoice).count(HistoryAction.PAYMENT_RECEIVED) == 2
        assert _history_actions(sample_invoice).count(HistoryAction.PAID) == 1

    def test_payment_records_method_and_actor(self, sample_invoice):
        record_payment(
            sample_invoice, 25, "cash", "user-7", reference="R-1", notes="deposit", today=TODAY
        )
        payment = sample_invoice.payments[0]
        assert payment.method == PaymentMethod.CASH
        assert payment.recorded_by == "user-7"
        assert payment.reference == "R-1"
        assert sample_invoice.history[-1].user == "user-7"

    @pytest.mark.parametrize("amount", [0, -5, "abc", None])
    def test_rejects_non_positive_amounts(self, sample_invoice, amount):
        with pytest.raises(InvalidAmountError):
            record_payment(sample_invoice, amount, "cash", "user-1")
        assert sample_invoice.payments == []

    def test_requires_method(self, sample_invoice):
        with pytest.raises(ValidationError):
            record_payment(sample_invoice, 10, None, "user-1")

    def test_rejects_unknown_method(self, sample_invoice):
        with pytest.raises(ValidationError):
            record_payment(sample_invoice, 10, "barter", "user-1")

    def test_rejects_amount_over_balance(self, sample_invoice):
        record_payment(sample_invoice, 60, "cash", "user-1", today=TODAY)
        history_before = len(sample_invoice.history)

        with pytest.raises(ExceedsBalanceError):
            record_payment(sample_invoice, "40.01", "cash", "user-1", today=TODAY)

        assert sample_invoice.paid_amount == Decimal("60")
        assert len(sample_invoice.payments) == 1
        assert len(sample_invoice.history) == history_before

    def test_exact_balance_is_accepted(self, sample_invoice):
        record_payment(sample_invoice, 100, "cash", "user-1", today=TODAY)
        assert sample_invoice.payment_status == PaymentStatus.PAID

    def test_rejects_cancelled_invoice(self, sample_invoice):
        cancel_invoice(sample_invoice, "user-1")
        with pytest.raises(InvoiceCancelledError):
            record_payment(sample_invoice, 10, "cash", "user-1")

    def test_rejects_archived_invoice(self, sample_invoice):
        archive_invoice(sample_invoice, "user-1")
        with pytest.raises(InvoiceStateError):
            record_payment(sample_invoice, 10, "cash", "user-1")

    def test_paid_history_written_once(self, sample_invoice):
        record_payment(sample_invoice, 100, "cash", "user-1", today=TODAY)
        apply_payment_status(sample_invoice, TODAY)
        apply_payment_status(sample_invoice, TODAY)
        assert _history_actions(sample_invoice).count(HistoryAction.PAID) == 1


class TestReviseCharges:
    """Tests for revise_charges()."""

    def test_recomputes_totals(self, sample_invoice):
        revise_charges(
            sample_invoice,
            items=[LineItem(description="Kitchen demolition", quantity=2, rate=100)],
        )
        assert sample_invoice.subtotal == Decimal("200")
        assert sample_invoice.total_amount == Decimal("200")

    def test_total_below_paid_rejected(self, sample_invoice):
        record_payment(sample_invoice, 80, "cash", "user-1", today=TODAY)

        with pytest.raises(ValidationError):
            revise_charges(
                sample_invoice,
                items=[LineItem(description="Smaller job", quantity=1, rate=50)],
            )

        assert sample_invoice.total_amount == Decimal("100")
        assert sample_invoice.items[0].description == "Kitchen demolition"

    def test_revision_down_to_paid_marks_paid(self, sample_invoice):
        record_payment(sample_invoice, 60, "cash", "user-1", today=TODAY)
        revise_charges(
            sample_invoice,
            items=[LineItem(description="Reduced scope", quantity=1, rate=60)],
            today=TODAY,
        )
        assert sample_invoice.total_amount == Decimal("60")
        assert sample_invoice.payment_status == PaymentStatus.PAID
        assert sample_invoice.status == InvoiceStatus.PAID

    def test_paid_invoice_not_editable(self, sample_invoice):
        record_payment(sample_invoice, 100, "cash", "user-1", today=TODAY)
        with pytest.raises(InvoiceStateError):
            ensure_editable(sample_invoice)


class TestLifecycle:
    """Tests for send, view, cancel and archive."""

    def test_send_draft(self, sample_invoice):
        mark_sent(sample_invoice, "user-1", ["client@example.com"])
        assert sample_invoice.status == InvoiceStatus.SENT
        assert sample_invoice.sent_at is not None
        assert sample_invoice.sent_by == "user-1"
        assert sample_invoice.recipient_emails == ["client@example.com"]
        assert sample_invoice.history[-1].action == HistoryAction.SENT

    def test_resend_keeps_viewed_status(self, sample_invoice):
        mark_sent(sample_invoice, "user-1")
        mark_viewed(sample_invoice)
        mark_sent(sample_invoice, "user-1")
        assert sample_invoice.status == InvoiceStatus.VIEWED

    def test_send_paid_rejected(self, sample_invoice):
        record_payment(sample_invoice, 100, "cash", "user-1", today=TODAY)
        with pytest.raises(InvoiceStateError):
            mark_sent(sample_invoice, "user-1")

    def test_send_cancelled_rejected(self, sample_invoice):
        cancel_invoice(sample_invoice, "user-1")
        with pytest.raises(InvoiceCancelledError):
            mark_sent(sample_invoice, "user-1")

    def test_view_counts(self, sample_invoice):
        mark_sent(sample_invoice, "user-1")
        mark_viewed(sample_invoice)
        mark_viewed(sample_invoice)
        assert sample_invoice.status == InvoiceStatus.VIEWED
        assert sample_invoice.view_count == 2
        assert sample_invoice.last_viewed_at is not None

    def test_view_draft_rejected(self, sample_invoice):
        with pytest.raises(InvoiceStateError):
            mark_viewed(sample_invoice)

    def test_cancel_is_idempotent(self, sample_invoice):
        cancel_invoice(sample_invoice, "user-1", "Client withdrew")
        cancel_invoice(sample_invoice, "user-1", "again")
        assert sample_invoice.status == InvoiceStatus.CANCELLED
        assert sample_invoice.void_reason == "Client withdrew"
        assert _history_actions(sample_invoice).count(HistoryAction.CANCELLED) == 1

    def test_cancel_with_payments_rejected(self, sample_invoice):
        record_payment(sample_invoice, 10, "cash", "user-1", today=TODAY)
        with pytest.raises(InvoiceStateError):
            cancel_invoice(sample_invoice, "user-1")

    def test_cancel_never_touches_money(self, sample_invoice):
        cancel_invoice(sample_invoice, "user-1")
        assert sample_invoice.total_amount == Decimal("100")
        assert sample_invoice.balance_amount == Decimal("100")

    def test_archive(self, sample_invoice):
        archive_invoice(sample_invoice, "user-1")
        archive_invoice(sample_invoice, "user-1")
        assert sample_invoice.is_active is False
        assert sample_invoice.archived_at is not None
        assert _history_actions(sample_invoice).count(HistoryAction.ARCHIVED) == 1

    def test_archive_paid_rejected(self, sample_invoice):
        record_payment(sample_invoice, 100, "cash", "user-1", today=TODAY)
        with pytest.raises(InvoiceStateError):
            archive_invoice(sample_invoice, "user-1")


class TestRefreshOverdue:
    """Tests for refresh_overdue()."""

    def test_open_invoice_past_due_becomes_overdue(self, make_invoice):
        invoice = make_invoice(due_date=TODAY - timedelta(days=1))
        mark_sent(invoice, "user-1")

        assert refresh_overdue(invoice, TODAY) is True
        assert invoice.status == InvoiceStatus.OVERDUE
        assert invoice.payment_status == PaymentStatus.OVERDUE
        assert refresh_overdue(invoice, TODAY) is False

    def test_draft_is_skipped(self, make_invoice):
        invoice = make_invoice(due_date=TODAY - timedelta(days=1))
        assert refresh_overdue(invoice, TODAY) is False
        assert invoice.status == InvoiceStatus.DRAFT

    def test_partial_stays_partial(self, make_invoice):
        invoice = make_invoice(due_date=TODAY - timedelta(days=1))
        mark_sent(invoice, "user-1")
        record_payment(invoice, 10, "cash", "user-1", today=TODAY)
        assert refresh_overdue(invoice, TODAY) is False
        assert invoice.status == InvoiceStatus.PARTIAL


class TestDates:
    """Tests for due date and recurrence arithmetic."""

    @pytest.mark.parametrize(
        "terms,expected",
        [
            (PaymentTerms.NET_15, date(2024, 1, 16)),
            (PaymentTerms.NET_30, date(2024, 1, 31)),
            (PaymentTerms.NET_60, date(2024, 3, 1)),
            (PaymentTerms.DUE_ON_RECEIPT, date(2024, 1, 1)),
            (PaymentTerms.CUSTOM, None),
        ],
    )
    def test_due_date_for_terms(self, terms, expected):
        assert due_date_for_terms(date(2024, 1, 1), terms) == expected

    def test_monthly_clamps_to_leap_february(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.MONTHLY)
        assert next_due_date(date(2024, 1, 31), pattern) == date(2024, 2, 29)

    def test_monthly_clamps_to_february(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.MONTHLY)
        assert next_due_date(date(2023, 1, 31), pattern) == date(2023, 2, 28)

    def test_quarterly(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.QUARTERLY)
        assert next_due_date(date(2023, 11, 30), pattern) == date(2024, 2, 29)

    def test_annually_from_leap_day(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.ANNUALLY)
        assert next_due_date(date(2024, 2, 29), pattern) == date(2025, 2, 28)

    def test_day_of_month_reanchors(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.MONTHLY, day_of_month=31)
        assert next_due_date(date(2024, 2, 29), pattern) == date(2024, 3, 31)
        assert next_due_date(date(2024, 3, 31), pattern) == date(2024, 4, 30)

    def test_anchor_day_restores_clamped_date(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.MONTHLY)
        assert next_due_date(date(2024, 2, 29), pattern) == date(2024, 3, 29)
        assert next_due_date(date(2024, 2, 29), pattern, anchor_day=31) == date(2024, 3, 31)

    def test_day_of_month_wins_over_anchor_day(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.MONTHLY, day_of_month=15)
        assert next_due_date(date(2024, 2, 15), pattern, anchor_day=31) == date(2024, 3, 15)

    def test_interval_multiplies_step(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.DAILY, interval=3)
        assert next_due_date(date(2024, 1, 1), pattern) == date(2024, 1, 4)

    def test_bi_weekly(self):
        pattern = RecurringPattern(frequency=RecurringFrequency.BI_WEEKLY)
        assert next_due_date(date(2024, 1, 1), pattern) == date(2024, 1, 15)

    def test_weekly_moves_to_day_of_week(self):
        # 2024-01-01 is a Monday; 4 = Friday
        pattern = RecurringPattern(frequency=RecurringFrequency.WEEKLY, day_of_week=4)
        assert next_due_date(date(2024, 1, 1), pattern) == date(2024, 1, 12)

    def test_no_pattern_keeps_date(self):
        assert next_due_date(date(2024, 1, 1), None) == date(2024, 1, 1)

    def test_schedule_next_due_date(self, recurring_invoice):
        assert schedule_next_due_date(recurring_invoice) == date(2024, 2, 29)
        assert recurring_invoice.recurring_pattern.next_due_date == date(2024, 2, 29)

    def test_schedule_ignores_non_recurring(self, sample_invoice):
        assert schedule_next_due_date(sample_invoice) is None


class TestBuildNextOccurrence:
    """Tests for build_next_occurrence()."""

    def test_generates_draft_copy(self, recurring_invoice):
        occurrence = build_next_occurrence(recurring_invoice, "user-1")

        assert occurrence.id is None
        assert occurrence.invoice_number is None
        assert occurrence.status == InvoiceStatus.DRAFT
        assert occurrence.due_date == date(2024, 2, 29)
        assert occurrence.issue_date == date(2024, 1, 30)
        assert occurrence.total_amount == recurring_invoice.total_amount
        assert occurrence.payments == []
        assert occurrence.is_recurring is False
        assert occurrence.history[0].action == HistoryAction.CREATED

    def test_advances_template(self, recurring_invoice):
        build_next_occurrence(recurring_invoice, "user-1")
        pattern = recurring_invoice.recurring_pattern
        assert pattern.occurrences == 1
        assert pattern.next_due_date == date(2024, 3, 31)

    def test_month_end_schedule_does_not_drift(self, recurring_invoice):
        due_dates = [
            build_next_occurrence(recurring_invoice, "user-1").due_date for _ in range(3)
        ]
        assert due_dates == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]
        assert recurring_invoice.recurring_pattern.next_due_date == date(2024, 5, 31)

    def test_uses_scheduled_next_due_date(self, recurring_invoice):
        recurring_invoice.recurring_pattern.next_due_date = date(2024, 3, 15)
        occurrence = build_next_occurrence(recurring_invoice, "user-1")
        assert occurrence.due_date == date(2024, 3, 15)

    def test_items_are_copies(self, recurring_invoice):
        recurring_invoice.items[0].id = 42
        occurrence = build_next_occurrence(recurring_invoice, "user-1")
        occurrence.items[0].description = "changed"
        assert occurrence.items[0].id is None
        assert recurring_invoice.items[0].description == "Kitchen demolition"

    def test_non_recurring_rejected(self, sample_invoice):
        with pytest.raises(RecurrenceError):
            build_next_occurrence(sample_invoice, "user-1")

    def test_max_occurrences_reached(self, recurring_invoice):
        recurring_invoice.recurring_pattern.max_occurrences = 1
        build_next_occurrence(recurring_invoice, "user-1")
        with pytest.raises(RecurrenceError):
            build_next_occurrence(recurring_invoice, "user-1")

    def test_past_end_date_rejected(self, recurring_invoice):
        recurring_invoice.recurring_pattern.end_date = date(2024, 2, 1)
        with pytest.raises(RecurrenceError):
            build_next_occurrence(recurring_invoice, "user-1")
        assert recurring_invoice.recurring_pattern.occurrences == 0

    def test_cancelled_template_rejected(self, recurring_invoice):
        cancel_invoice(recurring_invoice, "user-1")
        with pytest.raises(RecurrenceError):
            build_next_occurrence(recurring_invoice, "user-1")


class TestNumbering:
    """Tests for invoice number generation."""

    def test_first_number(self):
        assert generate_invoice_number("INV", [], year=2024) == "INV-2024-001"

    def test_next_after_existing(self):
        existing = ["INV-2024-001", "INV-2024-002"]
        assert generate_invoice_number("INV", existing, year=2024) == "INV-2024-003"

    def test_compares_numerically(self):
        existing = ["INV-2024-999", "INV-2024-1000", "INV-2024-998"]
        assert generate_invoice_number("INV", existing, year=2024) == "INV-2024-1001"

    def test_ignores_other_years_and_prefixes(self):
        existing = ["INV-2023-050", "EST-2024-007", "INV-2024-004", "garbage"]
        assert highest_sequence("INV", 2024, existing) == 4

    def test_prefix_is_uppercased(self):
        assert generate_invoice_number("inv", ["INV-2024-009"], year=2024) == "INV-2024-010"

    def test_padding(self):
        assert format_invoice_number("INV", 2024, 7, padding=5) == "INV-2024-00007"

    def test_defaults_to_current_year(self):
        assert generate_invoice_number() == f"INV-{date.today().year}-001"

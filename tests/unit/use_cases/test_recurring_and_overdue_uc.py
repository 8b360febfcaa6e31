"""Tests for recurring generation, overdue sweep and dashboard use cases."""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from renovo.application.use_cases import (
    CheckOverdueInvoicesUseCase,
    GenerateRecurringInvoiceUseCase,
    InvoiceDashboardUseCase,
)
from renovo.core.entities import InvoiceStatus, InvoiceStatusSummary, InvoiceSummary
from renovo.core.exceptions import (
    ConcurrentModificationError,
    DuplicateInvoiceNumberError,
    RecurrenceError,
)
from renovo.core.services import mark_sent

TODAY = date(2024, 6, 15)


class TestGenerateRecurringInvoiceUseCase:
    @pytest.fixture
    def mock_store(self, recurring_invoice):
        recurring_invoice.id = 10
        store = AsyncMock()
        store.get_invoice.side_effect = lambda _id: recurring_invoice.model_copy(deep=True)
        store.reserve_invoice_number.return_value = "INV-2024-011"

        async def create_occurrence(template, occurrence):
            template.version += 1
            occurrence.id = 11
            return occurrence

        store.create_occurrence.side_effect = create_occurrence
        return store

    async def test_generates_next(self, mock_store):
        use_case = GenerateRecurringInvoiceUseCase(invoice_store=mock_store)

        result = await use_case.execute(10)

        assert result.occurrence.id == 11
        assert result.occurrence.invoice_number == "INV-2024-011"
        assert result.occurrence.due_date == date(2024, 2, 29)
        assert result.occurrence.status == InvoiceStatus.DRAFT
        assert result.template.recurring_pattern.occurrences == 1

        # Template and occurrence are written together, never separately
        mock_store.create_occurrence.assert_awaited_once()
        mock_store.update_invoice.assert_not_awaited()
        mock_store.create_invoice.assert_not_awaited()
        assert use_case.to_response(result).id == 11

    async def test_number_collision_retries_from_fresh_template(self, mock_store):
        mock_store.reserve_invoice_number.side_effect = ["INV-2024-011", "INV-2024-012"]
        calls = []

        async def create_occurrence(template, occurrence):
            calls.append((template.recurring_pattern.occurrences, occurrence.invoice_number))
            if len(calls) == 1:
                raise DuplicateInvoiceNumberError(occurrence.invoice_number)
            occurrence.id = 12
            return occurrence

        mock_store.create_occurrence.side_effect = create_occurrence
        use_case = GenerateRecurringInvoiceUseCase(invoice_store=mock_store, retry_attempts=3)

        result = await use_case.execute(10)

        assert result.occurrence.invoice_number == "INV-2024-012"
        # Each attempt advances a freshly loaded template by exactly one step
        assert calls == [(1, "INV-2024-011"), (1, "INV-2024-012")]

    async def test_failed_creation_leaves_template_unsaved(self, mock_store):
        mock_store.create_occurrence.side_effect = DuplicateInvoiceNumberError("INV-2024-011")
        use_case = GenerateRecurringInvoiceUseCase(invoice_store=mock_store, retry_attempts=2)

        with pytest.raises(DuplicateInvoiceNumberError):
            await use_case.execute(10)

        assert mock_store.create_occurrence.await_count == 2
        mock_store.update_invoice.assert_not_awaited()

    async def test_exhausted_template(self, mock_store, recurring_invoice):
        recurring_invoice.recurring_pattern.max_occurrences = 2
        recurring_invoice.recurring_pattern.occurrences = 2
        use_case = GenerateRecurringInvoiceUseCase(invoice_store=mock_store)

        with pytest.raises(RecurrenceError):
            await use_case.execute(10)
        mock_store.reserve_invoice_number.assert_not_awaited()
        mock_store.create_occurrence.assert_not_awaited()


class TestCheckOverdueInvoicesUseCase:
    async def test_refresh_marks_overdue(self, make_invoice):
        late = make_invoice(id=1, invoice_number="INV-2024-001", due_date=TODAY - timedelta(days=3))
        mark_sent(late, "u-1")
        current = make_invoice(id=2, invoice_number="INV-2024-002", due_date=TODAY + timedelta(days=3))
        mark_sent(current, "u-1")

        store = AsyncMock()
        store.list_open.return_value = [late, current]
        store.update_invoice.side_effect = lambda inv: inv
        use_case = CheckOverdueInvoicesUseCase(invoice_store=store)

        result = await use_case.refresh(TODAY)

        assert result.checked == 2
        assert result.updated == 1
        assert result.invoice_numbers == ["INV-2024-001"]
        assert late.status == InvoiceStatus.OVERDUE
        store.update_invoice.assert_awaited_once()

    async def test_refresh_skips_conflicts(self, make_invoice):
        late = make_invoice(id=1, invoice_number="INV-2024-001", due_date=TODAY - timedelta(days=3))
        mark_sent(late, "u-1")

        store = AsyncMock()
        store.list_open.return_value = [late]
        store.update_invoice.side_effect = ConcurrentModificationError(1, 0)
        use_case = CheckOverdueInvoicesUseCase(invoice_store=store)

        result = await use_case.refresh(TODAY)
        assert result.updated == 0
        assert result.conflicts == 1

    async def test_list_overdue_response(self, make_invoice):
        late = make_invoice(id=1, invoice_number="INV-2024-001", due_date=TODAY - timedelta(days=3))
        store = AsyncMock()
        store.list_overdue.return_value = [late]
        use_case = CheckOverdueInvoicesUseCase(invoice_store=store)

        invoices = await use_case.list_overdue(TODAY)
        response = use_case.to_list_response(invoices)

        store.list_overdue.assert_awaited_once_with(TODAY)
        assert response.total == 1
        assert response.total_outstanding == 100.0


class TestInvoiceDashboardUseCase:
    async def test_summary(self):
        summary = InvoiceSummary(
            total_invoices=3,
            total_amount=Decimal("300"),
            paid_amount=Decimal("120"),
            overdue_invoices=1,
            by_status={
                "paid": InvoiceStatusSummary(
                    count=1, total_amount=Decimal("100"), paid_amount=Decimal("100")
                ),
                "partial": InvoiceStatusSummary(
                    count=2, total_amount=Decimal("200"), paid_amount=Decimal("20")
                ),
            },
        )
        store = AsyncMock()
        store.get_summary.return_value = summary
        use_case = InvoiceDashboardUseCase(invoice_store=store)

        result = await use_case.execute(days=30, today=TODAY)
        response = use_case.to_response(result)

        store.get_summary.assert_awaited_once_with(since=TODAY - timedelta(days=30), today=TODAY)
        assert response.total_invoices == 3
        assert response.outstanding_amount == 180.0
        assert response.by_status["partial"].count == 2

"""Invoice Dashboard Use Case - per-status roll-up over a look-back window."""

from dataclasses import dataclass
from datetime import date, timedelta

from renovo.application.dto.responses import DashboardSummaryResponse, StatusSummaryResponse
from renovo.application.use_cases.base import InvoiceUseCase
from renovo.config import get_logger, get_settings
from renovo.core.entities import InvoiceSummary

logger = get_logger(__name__)


@dataclass
class DashboardResult:
    period_days: int
    since: date
    summary: InvoiceSummary


class InvoiceDashboardUseCase(InvoiceUseCase):
    """Summarize active invoices created in the last ``days`` days."""

    async def execute(self, days: int | None = None, today: date | None = None) -> DashboardResult:
        today = today or date.today()
        days = days or get_settings().invoicing.dashboard_days
        since = today - timedelta(days=days)

        store = await self._get_store()
        summary = await store.get_summary(since=since, today=today)

        logger.debug(
            "dashboard_summary_computed",
            days=days,
            invoices=summary.total_invoices,
            overdue=summary.overdue_invoices,
        )
        return DashboardResult(period_days=days, since=since, summary=summary)

    @staticmethod
    def to_response(result: DashboardResult) -> DashboardSummaryResponse:  # type: ignore[override]
        summary = result.summary
        return DashboardSummaryResponse(
            period_days=result.period_days,
            since=result.since,
            total_invoices=summary.total_invoices,
            total_amount=float(summary.total_amount),
            paid_amount=float(summary.paid_amount),
            outstanding_amount=float(summary.outstanding_amount),
            overdue_invoices=summary.overdue_invoices,
            by_status={
                status: StatusSummaryResponse(
                    count=entry.count,
                    total_amount=float(entry.total_amount),
                    paid_amount=float(entry.paid_amount),
                )
                for status, entry in summary.by_status.items()
            },
        )

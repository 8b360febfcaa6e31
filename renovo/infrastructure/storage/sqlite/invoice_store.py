"""
SQLite implementation of invoice storage.

Handles invoices, line items, tax entries, the payment ledger, history
and the per prefix/year number counter. Writes are guarded by the
``version`` column.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import aiosqlite

from renovo.config import get_logger, get_settings
from renovo.core.entities import (
    DiscountPolicy,
    HistoryEntry,
    Invoice,
    InvoiceFilter,
    InvoiceStatus,
    InvoiceStatusSummary,
    InvoiceSummary,
    LineItem,
    Payment,
    RecurringPattern,
    TaxEntry,
)
from renovo.core.exceptions import (
    ConcurrentModificationError,
    DatabaseError,
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
)
from renovo.core.interfaces import IInvoiceStore
from renovo.core.services.invoice_ledger import (
    OPEN_STATUSES,
    format_invoice_number,
    highest_sequence,
)
from renovo.infrastructure.storage.sqlite.database import LedgerDatabase, get_database

logger = get_logger(__name__)

_INVOICE_COLUMNS = (
    "invoice_number",
    "purchase_order_number",
    "type",
    "issue_date",
    "due_date",
    "start_date",
    "end_date",
    "status",
    "payment_status",
    "client_id",
    "project_id",
    "created_by",
    "sent_by",
    "currency",
    "subtotal",
    "tax_amount",
    "discount_amount",
    "total_amount",
    "paid_amount",
    "balance_amount",
    "discount_json",
    "payment_terms",
    "is_recurring",
    "recurring_pattern_json",
    "notes",
    "terms",
    "tags_json",
    "recipient_emails_json",
    "view_count",
    "last_viewed_at",
    "is_active",
    "archived_at",
    "void_reason",
    "sent_at",
    "paid_at",
    "created_at",
    "updated_at",
)

_OPEN_STATUS_VALUES = tuple(sorted(s.value for s in OPEN_STATUSES))


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _money(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _rounded(value: float | None) -> Decimal:
    return Decimal(str(round(value or 0.0, 2)))


class SQLiteInvoiceStore(IInvoiceStore):
    """SQLite implementation of invoice storage."""

    def __init__(
        self,
        number_padding: int | None = None,
        database: LedgerDatabase | None = None,
    ):
        self.number_padding = number_padding or get_settings().invoicing.number_padding
        self._database = database

    @property
    def _db(self) -> LedgerDatabase:
        return self._database or get_database()

    async def create_invoice(self, invoice: Invoice) -> Invoice:
        """Insert the invoice and all child rows in one transaction."""
        try:
            async with self._db.transaction() as conn:
                await self._insert_invoice(conn, invoice)
        except aiosqlite.IntegrityError as e:
            invoice.id = None
            self._raise_integrity(e, invoice, "create_invoice")

        logger.info(
            "invoice_created",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            items=len(invoice.items),
        )
        return invoice

    async def get_invoice(self, invoice_id: int) -> Invoice | None:
        """Get invoice by ID with all child collections."""
        async with self._db.connect() as conn:
            cursor = await conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return await self._load(conn, row)

    async def get_invoice_by_number(self, invoice_number: str) -> Invoice | None:
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                "SELECT * FROM invoices WHERE invoice_number = ?",
                (invoice_number.strip().upper(),),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return await self._load(conn, row)

    async def update_invoice(self, invoice: Invoice) -> Invoice:
        """
        Compare-and-swap on ``version``.

        Items and taxes are rewritten; payments and history rows without
        an id are appended.
        """
        if invoice.id is None:
            raise InvoiceNotFoundError(0)

        try:
            async with self._db.transaction() as conn:
                await self._update_versioned(conn, invoice)
        except aiosqlite.IntegrityError as e:
            self._raise_integrity(e, invoice, "update_invoice")

        invoice.version += 1
        logger.debug("invoice_updated", invoice_id=invoice.id, version=invoice.version)
        return invoice

    async def create_occurrence(self, template: Invoice, occurrence: Invoice) -> Invoice:
        """
        Save the advanced template and insert its new occurrence together.

        Either both rows are written or neither is: a version conflict on
        the template or a number collision on the occurrence rolls back
        the whole transaction.
        """
        if template.id is None:
            raise InvoiceNotFoundError(0)

        try:
            async with self._db.transaction() as conn:
                await self._update_versioned(conn, template)
                await self._insert_invoice(conn, occurrence)
        except aiosqlite.IntegrityError as e:
            occurrence.id = None
            self._raise_integrity(e, occurrence, "create_occurrence")
        except ConcurrentModificationError:
            occurrence.id = None
            raise

        template.version += 1
        logger.info(
            "invoice_occurrence_created",
            template_id=template.id,
            invoice_id=occurrence.id,
            invoice_number=occurrence.invoice_number,
        )
        return occurrence

    async def list_invoices(
        self,
        filters: InvoiceFilter | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Invoice]:
        """List invoices matching filters, newest first."""
        where, params = self._build_where(filters or InvoiceFilter())
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM invoices
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            return [await self._load(conn, row) for row in rows]

    async def count_invoices(self, filters: InvoiceFilter | None = None) -> int:
        where, params = self._build_where(filters or InvoiceFilter())
        async with self._db.connect() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM invoices WHERE {where}", params)
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def list_overdue(self, today: date) -> list[Invoice]:
        placeholders = ", ".join("?" for _ in _OPEN_STATUS_VALUES)
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM invoices
                WHERE is_active = 1
                  AND status IN ({placeholders})
                  AND due_date < ?
                  AND CAST(balance_amount AS REAL) > 0
                ORDER BY due_date, id
                """,
                (*_OPEN_STATUS_VALUES, today.isoformat()),
            )
            rows = await cursor.fetchall()
            return [await self._load(conn, row) for row in rows]

    async def list_open(self) -> list[Invoice]:
        placeholders = ", ".join("?" for _ in _OPEN_STATUS_VALUES)
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM invoices
                WHERE is_active = 1 AND status IN ({placeholders})
                ORDER BY due_date, id
                """,
                _OPEN_STATUS_VALUES,
            )
            rows = await cursor.fetchall()
            return [await self._load(conn, row) for row in rows]

    async def reserve_invoice_number(self, prefix: str, year: int) -> str:
        """
        Allocate the next ``{prefix}-{year}-NNN`` number.

        Runs under ``BEGIN IMMEDIATE`` so two writers never read the same
        counter value. A missing counter is seeded from the numbers
        already stored; numbers taken by hand are skipped.
        """
        prefix = prefix.strip().upper()
        async with self._db.transaction(immediate=True) as conn:
            cursor = await conn.execute(
                "SELECT last_value FROM invoice_sequences WHERE prefix = ? AND year = ?",
                (prefix, year),
            )
            row = await cursor.fetchone()
            if row is not None:
                last_value = row[0]
            else:
                cursor = await conn.execute(
                    "SELECT invoice_number FROM invoices WHERE invoice_number LIKE ?",
                    (f"{prefix}-{year}-%",),
                )
                existing = [r[0] for r in await cursor.fetchall()]
                last_value = highest_sequence(prefix, year, existing)

            sequence = last_value + 1
            number = format_invoice_number(prefix, year, sequence, self.number_padding)
            while await self._number_taken(conn, number):
                sequence += 1
                number = format_invoice_number(prefix, year, sequence, self.number_padding)

            await conn.execute(
                """
                INSERT INTO invoice_sequences (prefix, year, last_value) VALUES (?, ?, ?)
                ON CONFLICT(prefix, year) DO UPDATE SET last_value = excluded.last_value
                """,
                (prefix, year, sequence),
            )

        logger.debug("invoice_number_reserved", invoice_number=number)
        return number

    async def get_summary(
        self, since: date | None = None, today: date | None = None
    ) -> InvoiceSummary:
        """
        GROUP BY status over active invoices created on or after ``since``.

        Anything neither paid nor cancelled whose due date has passed counts
        as overdue, drafts included.
        """
        today = today or date.today()
        conditions = ["is_active = 1"]
        params: list[Any] = []
        if since is not None:
            conditions.append("created_at >= ?")
            params.append(since.isoformat())
        where = " AND ".join(conditions)

        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"""
                SELECT status,
                       COUNT(*) AS count,
                       TOTAL(CAST(total_amount AS REAL)) AS total_amount,
                       TOTAL(CAST(paid_amount AS REAL)) AS paid_amount
                FROM invoices
                WHERE {where}
                GROUP BY status
                """,
                params,
            )
            rows = await cursor.fetchall()

            cursor = await conn.execute(
                f"""
                SELECT COUNT(*) FROM invoices
                WHERE {where} AND status NOT IN (?, ?) AND due_date < ?
                """,
                (
                    *params,
                    InvoiceStatus.PAID.value,
                    InvoiceStatus.CANCELLED.value,
                    today.isoformat(),
                ),
            )
            overdue_row = await cursor.fetchone()

        summary = InvoiceSummary(overdue_invoices=overdue_row[0] if overdue_row else 0)
        for row in rows:
            entry = InvoiceStatusSummary(
                count=row["count"],
                total_amount=_rounded(row["total_amount"]),
                paid_amount=_rounded(row["paid_amount"]),
            )
            summary.by_status[row["status"]] = entry
            summary.total_invoices += entry.count
            summary.total_amount += entry.total_amount
            summary.paid_amount += entry.paid_amount
        return summary

    # Row writes

    async def _insert_invoice(self, conn: aiosqlite.Connection, invoice: Invoice) -> None:
        placeholders = ", ".join("?" for _ in _INVOICE_COLUMNS)
        cursor = await conn.execute(
            f"INSERT INTO invoices ({', '.join(_INVOICE_COLUMNS)}, version) "
            f"VALUES ({placeholders}, ?)",
            (*self._invoice_values(invoice), invoice.version),
        )
        invoice.id = cursor.lastrowid
        await self._write_children(conn, invoice, replace=False)

    async def _update_versioned(self, conn: aiosqlite.Connection, invoice: Invoice) -> None:
        expected = invoice.version
        assignments = ", ".join(f"{col} = ?" for col in _INVOICE_COLUMNS)
        cursor = await conn.execute(
            f"UPDATE invoices SET {assignments}, version = version + 1 "
            "WHERE id = ? AND version = ?",
            (*self._invoice_values(invoice), invoice.id, expected),
        )
        if cursor.rowcount == 0:
            cursor = await conn.execute("SELECT version FROM invoices WHERE id = ?", (invoice.id,))
            if await cursor.fetchone() is None:
                raise InvoiceNotFoundError(invoice.id)
            logger.warning(
                "invoice_version_conflict",
                invoice_id=invoice.id,
                expected_version=expected,
            )
            raise ConcurrentModificationError(invoice.id, expected)

        await self._write_children(conn, invoice, replace=True)

    # Child rows

    async def _write_children(
        self, conn: aiosqlite.Connection, invoice: Invoice, replace: bool
    ) -> None:
        if replace:
            await conn.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (invoice.id,))
            await conn.execute("DELETE FROM invoice_taxes WHERE invoice_id = ?", (invoice.id,))

        for line_number, item in enumerate(invoice.items, start=1):
            await self._insert_item(conn, invoice.id, line_number, item)
        for position, tax in enumerate(invoice.taxes, start=1):
            await self._insert_tax(conn, invoice.id, position, tax)

        # Ledger rows are never rewritten, only appended
        for payment in invoice.payments:
            if payment.id is None or not replace:
                await self._insert_payment(conn, invoice.id, payment)
        for entry in invoice.history:
            if entry.id is None or not replace:
                await self._insert_history(conn, invoice.id, entry)

    async def _insert_item(
        self, conn: aiosqlite.Connection, invoice_id: int, line_number: int, item: LineItem
    ) -> None:
        cursor = await conn.execute(
            """
            INSERT INTO invoice_items (
                invoice_id, line_number, description, quantity, unit, rate, discount,
                tax_rate, amount, tax_amount, category, project_phase, job_code, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice_id,
                line_number,
                item.description,
                _money(item.quantity),
                item.unit,
                _money(item.rate),
                _money(item.discount),
                _money(item.tax_rate),
                _money(item.amount),
                _money(item.tax_amount),
                item.category.value,
                item.project_phase.value,
                item.job_code,
                item.notes,
            ),
        )
        item.id = cursor.lastrowid

    async def _insert_tax(
        self, conn: aiosqlite.Connection, invoice_id: int, position: int, tax: TaxEntry
    ) -> None:
        cursor = await conn.execute(
            """
            INSERT INTO invoice_taxes
                (invoice_id, position, name, rate, amount, computed_amount, type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice_id,
                position,
                tax.name,
                _money(tax.rate),
                _money(tax.amount),
                _money(tax.computed_amount),
                tax.type.value,
            ),
        )
        tax.id = cursor.lastrowid

    async def _insert_payment(
        self, conn: aiosqlite.Connection, invoice_id: int, payment: Payment
    ) -> None:
        cursor = await conn.execute(
            """
            INSERT INTO invoice_payments (
                invoice_id, amount, paid_at, method, reference, notes, recorded_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice_id,
                _money(payment.amount),
                payment.date.isoformat(),
                payment.method.value,
                payment.reference,
                payment.notes,
                payment.recorded_by,
            ),
        )
        payment.id = cursor.lastrowid

    async def _insert_history(
        self, conn: aiosqlite.Connection, invoice_id: int, entry: HistoryEntry
    ) -> None:
        cursor = await conn.execute(
            """
            INSERT INTO invoice_history (invoice_id, action, timestamp, actor_id, details, changes_json)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                invoice_id,
                entry.action.value,
                entry.timestamp.isoformat(),
                entry.user,
                entry.details,
                json.dumps(entry.changes, default=str),
            ),
        )
        entry.id = cursor.lastrowid

    async def _number_taken(self, conn: aiosqlite.Connection, number: str) -> bool:
        cursor = await conn.execute(
            "SELECT 1 FROM invoices WHERE invoice_number = ?", (number,)
        )
        return await cursor.fetchone() is not None

    # Query helpers

    def _build_where(self, filters: InvoiceFilter) -> tuple[str, list[Any]]:
        conditions: list[str] = []
        params: list[Any] = []

        if not filters.include_archived:
            conditions.append("is_active = 1")
        if filters.status is not None:
            conditions.append("status = ?")
            params.append(filters.status.value)
        if filters.payment_status is not None:
            conditions.append("payment_status = ?")
            params.append(filters.payment_status.value)
        if filters.client_id:
            conditions.append("client_id = ?")
            params.append(filters.client_id)
        if filters.project_id:
            conditions.append("project_id = ?")
            params.append(filters.project_id)
        if filters.issued_from is not None:
            conditions.append("issue_date >= ?")
            params.append(filters.issued_from.isoformat())
        if filters.issued_to is not None:
            conditions.append("issue_date <= ?")
            params.append(filters.issued_to.isoformat())
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            conditions.append(
                "(invoice_number LIKE ? OR notes LIKE ? OR tags_json LIKE ? "
                "OR purchase_order_number LIKE ?)"
            )
            params.extend([pattern, pattern, pattern, pattern])

        return (" AND ".join(conditions) or "1 = 1"), params

    def _raise_integrity(
        self, error: aiosqlite.IntegrityError, invoice: Invoice, operation: str
    ) -> None:
        message = str(error)
        if "UNIQUE" in message and "invoice_number" in message:
            logger.warning("duplicate_invoice_number", invoice_number=invoice.invoice_number)
            raise DuplicateInvoiceNumberError(invoice.invoice_number or "") from error
        raise DatabaseError(operation, str(error)) from error

    # Conversion helpers

    def _invoice_values(self, invoice: Invoice) -> tuple[Any, ...]:
        pattern = invoice.recurring_pattern
        return (
            invoice.invoice_number,
            invoice.purchase_order_number,
            invoice.type.value,
            invoice.issue_date.isoformat(),
            invoice.due_date.isoformat(),
            _iso(invoice.start_date),
            _iso(invoice.end_date),
            invoice.status.value,
            invoice.payment_status.value,
            invoice.client_id,
            invoice.project_id,
            invoice.created_by,
            invoice.sent_by,
            invoice.currency.value,
            _money(invoice.subtotal),
            _money(invoice.tax_amount),
            _money(invoice.discount_amount),
            _money(invoice.total_amount),
            _money(invoice.paid_amount),
            _money(invoice.balance_amount),
            invoice.discount.model_dump_json(),
            invoice.payment_terms.value,
            1 if invoice.is_recurring else 0,
            pattern.model_dump_json() if pattern else None,
            invoice.notes,
            invoice.terms,
            json.dumps(invoice.tags),
            json.dumps(invoice.recipient_emails),
            invoice.view_count,
            _iso(invoice.last_viewed_at),
            1 if invoice.is_active else 0,
            _iso(invoice.archived_at),
            invoice.void_reason,
            _iso(invoice.sent_at),
            _iso(invoice.paid_at),
            invoice.created_at.isoformat(),
            invoice.updated_at.isoformat(),
        )

    async def _load(self, conn: aiosqlite.Connection, row: aiosqlite.Row) -> Invoice:
        invoice = self._row_to_invoice(row)

        cursor = await conn.execute(
            "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY line_number",
            (invoice.id,),
        )
        invoice.items = [self._row_to_item(r) for r in await cursor.fetchall()]

        cursor = await conn.execute(
            "SELECT * FROM invoice_taxes WHERE invoice_id = ? ORDER BY position",
            (invoice.id,),
        )
        invoice.taxes = [
            TaxEntry(
                id=r["id"],
                name=r["name"],
                rate=r["rate"],
                amount=r["amount"],
                computed_amount=r["computed_amount"],
                type=r["type"],
            )
            for r in await cursor.fetchall()
        ]

        cursor = await conn.execute(
            "SELECT * FROM invoice_payments WHERE invoice_id = ? ORDER BY id",
            (invoice.id,),
        )
        invoice.payments = [
            Payment(
                id=r["id"],
                amount=r["amount"],
                date=datetime.fromisoformat(r["paid_at"]),
                method=r["method"],
                reference=r["reference"],
                notes=r["notes"],
                recorded_by=r["recorded_by"],
            )
            for r in await cursor.fetchall()
        ]

        cursor = await conn.execute(
            "SELECT * FROM invoice_history WHERE invoice_id = ? ORDER BY id",
            (invoice.id,),
        )
        invoice.history = [
            HistoryEntry(
                id=r["id"],
                action=r["action"],
                timestamp=datetime.fromisoformat(r["timestamp"]),
                user=r["actor_id"],
                details=r["details"],
                changes=json.loads(r["changes_json"]) if r["changes_json"] else {},
            )
            for r in await cursor.fetchall()
        ]
        return invoice

    def _row_to_invoice(self, row: aiosqlite.Row) -> Invoice:
        """Convert database row to Invoice entity (children loaded separately)."""
        return Invoice(
            id=row["id"],
            invoice_number=row["invoice_number"],
            purchase_order_number=row["purchase_order_number"],
            type=row["type"],
            issue_date=date.fromisoformat(row["issue_date"]),
            due_date=date.fromisoformat(row["due_date"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            status=InvoiceStatus(row["status"]),
            payment_status=row["payment_status"],
            client_id=row["client_id"],
            project_id=row["project_id"],
            created_by=row["created_by"],
            sent_by=row["sent_by"],
            currency=row["currency"],
            subtotal=row["subtotal"],
            tax_amount=row["tax_amount"],
            discount_amount=row["discount_amount"],
            total_amount=row["total_amount"],
            paid_amount=row["paid_amount"],
            balance_amount=row["balance_amount"],
            discount=DiscountPolicy.model_validate_json(row["discount_json"])
            if row["discount_json"]
            else DiscountPolicy(),
            payment_terms=row["payment_terms"],
            is_recurring=bool(row["is_recurring"]),
            recurring_pattern=RecurringPattern.model_validate_json(row["recurring_pattern_json"])
            if row["recurring_pattern_json"]
            else None,
            notes=row["notes"],
            terms=row["terms"],
            tags=json.loads(row["tags_json"]) if row["tags_json"] else [],
            recipient_emails=json.loads(row["recipient_emails_json"])
            if row["recipient_emails_json"]
            else [],
            view_count=row["view_count"],
            last_viewed_at=row["last_viewed_at"],
            is_active=bool(row["is_active"]),
            archived_at=row["archived_at"],
            void_reason=row["void_reason"],
            sent_at=row["sent_at"],
            paid_at=row["paid_at"],
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_item(self, row: aiosqlite.Row) -> LineItem:
        return LineItem(
            id=row["id"],
            description=row["description"],
            quantity=row["quantity"],
            unit=row["unit"],
            rate=row["rate"],
            discount=row["discount"],
            tax_rate=row["tax_rate"],
            category=row["category"],
            project_phase=row["project_phase"],
            job_code=row["job_code"],
            notes=row["notes"],
        )

"""
Invoice service: create, read, update, delete and render invoices.

Invoices are snapshots. Project title, items and totals are copied in at
creation and stay fixed; only billed_to_name (and the payment status) may
change afterwards.

Every query is scoped to the current user by folding `user_id = %s` into the
WHERE clause, so an invoice owned by someone else looks exactly like one
that does not exist.
"""

import logging
import math
from typing import Sequence
from uuid import UUID, uuid4

import psycopg2.errors
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import InvoiceConfig
from core.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    InvoiceValidationError,
)
from core.models import (
    CombinedInvoiceCreate,
    CombinedPDFRequest,
    Invoice,
    InvoiceCreate,
    InvoiceItem,
    InvoicePage,
    InvoiceStatus,
    InvoiceUpdate,
)
from core.numbering import InvoiceNumberAllocator
from core.pdf_renderer import (
    InvoicePDFData,
    RenderedDocument,
    generate_pdf_filename,
    render_invoice_pdf,
)
from core.validation import (
    ensure_persistable,
    ensure_totals_consistent,
    validate_invoice_data,
)
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

COMBINED_PROJECT_TITLE = "Multiple Projects"
MULTIPLE_CLIENTS = "Multiple Clients"

# Columns that may change after an invoice is issued
_UPDATABLE_COLUMNS = {"billed_to_name", "status"}


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        allocator: InvoiceNumberAllocator | None = None,
        config: InvoiceConfig | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.config = config or InvoiceConfig()
        self.allocator = allocator or InvoiceNumberAllocator(postgres)

    def _insert(
        self,
        user_id: UUID,
        invoice_number: str,
        project_id: str,
        project_title: str,
        billed_to_name: str,
        items: Sequence[InvoiceItem],
        tax_percent: float,
        subtotal: float,
        total: float,
    ) -> Invoice:
        """
        Single write path for new invoices.

        Re-checks the number format and totals right before the INSERT, then
        lets the unique constraint on invoice_number arbitrate between
        concurrent writers.

        Raises:
            InvoiceValidationError: If the number is malformed or totals
                disagree with the items
            DuplicateInvoiceNumberError: If invoice_number is already taken
        """
        ensure_persistable(
            invoice_number, items, subtotal, tax_percent, total,
            self.config.money_tolerance,
        )

        invoice_id = uuid4()
        now = now_utc()

        try:
            row = self.postgres.execute_returning(
                """
                INSERT INTO invoices (
                    id, user_id, invoice_number,
                    project_id, project_title, billed_to_name,
                    items, subtotal, tax_percent, total,
                    status, created_at, updated_at
                ) VALUES (
                    %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    invoice_id, user_id, invoice_number,
                    project_id, project_title, billed_to_name,
                    Json([item.model_dump() for item in items]), subtotal, tax_percent, total,
                    InvoiceStatus.PENDING.value, now, now
                )
            )[0]
        except psycopg2.errors.UniqueViolation as e:
            logger.warning("Invoice number collision on %s", invoice_number)
            raise DuplicateInvoiceNumberError(invoice_number) from e

        invoice = Invoice.model_validate(row)

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "invoice_number": invoice.invoice_number,
                    "project_id": invoice.project_id,
                    "item_count": len(invoice.items),
                    "subtotal": invoice.subtotal,
                    "tax_percent": invoice.tax_percent,
                    "total": invoice.total,
                }
            }
        )

        logger.info("Created invoice %s (%d items)", invoice.invoice_number, len(invoice.items))
        return invoice

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Validate, number and store a new invoice in PENDING status.

        Args:
            data: Candidate invoice; project_title is the snapshot to keep

        Returns:
            Created invoice

        Raises:
            InvoiceValidationError: With every validation failure
            DuplicateInvoiceNumberError: If another writer took the number;
                call create() again to re-allocate
            InvoiceSequenceExhaustedError: If the period has no numbers left
        """
        user_id = get_current_user_id()

        validate_invoice_data(data, self.config.money_tolerance).raise_for_errors()

        invoice_number = self.allocator.next_number()

        return self._insert(
            user_id,
            invoice_number,
            project_id=data.project_id,
            project_title=data.project_title,
            billed_to_name=data.billed_to_name,
            items=data.items,
            tax_percent=data.tax_percent,
            subtotal=data.subtotal,
            total=data.total,
        )

    def create_combined(self, data: CombinedInvoiceCreate) -> Invoice:
        """
        Store one invoice billing items from several projects.

        The invoice references the primary project, is titled
        "Multiple Projects", and is billed to "Multiple Clients" unless a
        name is given.
        """
        payload = InvoiceCreate(
            project_id=data.primary_project_id,
            project_title=COMBINED_PROJECT_TITLE,
            billed_to_name=data.billed_to_name or MULTIPLE_CLIENTS,
            items=data.items,
            tax_percent=data.tax_percent,
            subtotal=data.subtotal,
            total=data.total,
        )
        return self.create(payload)

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Returns:
            Invoice if found and owned by the current user, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND user_id = %s",
            (invoice_id, get_current_user_id())
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def list_by_ids(self, invoice_ids: Sequence[UUID]) -> list[Invoice]:
        """
        The current user's invoices among invoice_ids, in store order.

        Ids that do not exist or belong to someone else are silently left out.
        """
        if not invoice_ids:
            return []

        rows = self.postgres.execute(
            "SELECT * FROM invoices WHERE id = ANY(%s::uuid[]) AND user_id = %s",
            (list(invoice_ids), get_current_user_id())
        )

        return [Invoice.model_validate(row) for row in rows]

    def list(
        self,
        status: InvoiceStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> InvoicePage:
        """
        One page of the current user's invoices, newest first.

        Args:
            status: Only invoices in this status
            page: 1-based page number
            limit: Page size
        """
        user_id = get_current_user_id()

        conditions = ["user_id = %s"]
        params: list = [user_id]
        if status is not None:
            conditions.append("status = %s")
            params.append(status.value)
        where = " AND ".join(conditions)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params + [limit, (page - 1) * limit])
        )

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM invoices WHERE {where}",
            tuple(params)
        ) or 0

        return InvoicePage(
            invoices=[Invoice.model_validate(row) for row in rows],
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if limit else 0,
        )

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update the mutable fields of an invoice.

        Only billed_to_name and status can change; items, totals, project
        title and number are fixed at creation.

        Raises:
            InvoiceNotFoundError: If invoice not found or not owned
        """
        user_id = get_current_user_id()

        current = self.get_by_id(invoice_id)
        if current is None:
            raise InvoiceNotFoundError(invoice_id)

        updates = {
            k: v for k, v in data.model_dump(mode="json", exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }
        if not updates:
            return current

        set_parts = []
        params = []
        for field, value in updates.items():
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend([invoice_id, user_id])

        rows = self.postgres.execute_returning(
            f"""
            UPDATE invoices
            SET {', '.join(set_parts)}
            WHERE id = %s AND user_id = %s
            RETURNING *
            """,
            tuple(params)
        )
        if not rows:
            raise InvoiceNotFoundError(invoice_id)

        updated = Invoice.model_validate(rows[0])

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, invoice_id: UUID) -> bool:
        """
        Delete an invoice. No cascading side effects.

        Returns:
            True if deleted, False if not found or not owned
        """
        rows = self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s AND user_id = %s RETURNING *",
            (invoice_id, get_current_user_id())
        )
        if not rows:
            return False

        deleted = Invoice.model_validate(rows[0])

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.DELETE,
            changes={"deleted": deleted.model_dump(mode="json")}
        )

        logger.info("Deleted invoice %s", deleted.invoice_number)
        return True

    def render_pdf(self, invoice_id: UUID) -> RenderedDocument:
        """
        Render one stored invoice.

        Raises:
            InvoiceNotFoundError: If invoice not found or not owned
            RenderError: If PDF generation fails
        """
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)

        return self.render_invoice(invoice)

    def render_invoice(self, invoice: Invoice) -> RenderedDocument:
        """Render an already-fetched invoice."""
        content = render_invoice_pdf(InvoicePDFData.from_invoice(invoice), self.config)
        return RenderedDocument(
            filename=generate_pdf_filename(invoice.invoice_number, invoice.billed_to_name),
            content=content,
        )

    def render_combined_pdf(self, data: CombinedPDFRequest) -> RenderedDocument:
        """
        Render an ad hoc multi-project invoice without storing it.

        The totals are checked against the items with the usual tolerance.
        The number is synthetic (COMBINED-<epoch millis>), and the billed-to
        name falls back to the single client given or "Multiple Clients".

        Raises:
            InvoiceValidationError: If there are no items or the totals disagree
        """
        if not data.items:
            raise InvoiceValidationError(["Items are required"])

        ensure_totals_consistent(
            data.items, data.subtotal, data.tax_percent, data.total,
            self.config.money_tolerance,
        )

        now = now_utc()
        unique_clients = list(dict.fromkeys(c for c in data.clients if c))
        if data.billed_to_name:
            billed_to = data.billed_to_name
        elif len(unique_clients) > 1:
            billed_to = MULTIPLE_CLIENTS
        else:
            billed_to = unique_clients[0] if unique_clients else ""

        pdf_data = InvoicePDFData(
            invoice_number=f"COMBINED-{int(now.timestamp() * 1000)}",
            invoice_date=now,
            project_title=COMBINED_PROJECT_TITLE,
            billed_to_name=billed_to,
            items=data.items,
            subtotal=data.subtotal,
            tax_percent=data.tax_percent,
            total=data.total,
            status=InvoiceStatus.PENDING,
        )

        return RenderedDocument(
            filename=f"Combined_Invoice_{now.strftime('%Y-%m-%d')}.pdf",
            content=render_invoice_pdf(pdf_data, self.config),
        )

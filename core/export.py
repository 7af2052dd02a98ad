"""
Bulk invoice export: many invoices, one ZIP of PDFs.

The batch is all-or-nothing. Every owned invoice is rendered in request
order into one archive held in memory; if any render fails, no archive is
produced. Ids the caller does not own are dropped without comment.
"""

import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Sequence
from uuid import UUID

from core.config import InvoiceConfig
from core.exceptions import BatchSizeError, EmptyBatchError
from core.services.invoice_service import InvoiceService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkExport:
    """A finished export archive."""

    filename: str
    content: bytes
    count: int
    media_type: str = "application/zip"


def generate_bulk_zip_filename(now: datetime | None = None) -> str:
    """Archive name, e.g. 'invoices_2025-01-15_14-30-05.zip'."""
    now = now or now_utc()
    return f"invoices_{now.strftime('%Y-%m-%d')}_{now.strftime('%H-%M-%S')}.zip"


class BulkInvoiceExporter:
    """Renders a batch of the current user's invoices into a ZIP archive."""

    def __init__(self, invoice_service: InvoiceService, config: InvoiceConfig | None = None):
        self.invoice_service = invoice_service
        self.config = config or InvoiceConfig()

    def export(self, invoice_ids: Sequence[UUID]) -> BulkExport:
        """
        Build one ZIP holding a PDF per owned invoice.

        Size limits are checked before anything is fetched.

        Raises:
            EmptyBatchError: If no ids are given or none are owned by the caller
            BatchSizeError: If more than max_bulk_invoices ids are given
            RenderError: If any invoice fails to render
        """
        if not invoice_ids:
            raise EmptyBatchError(0)

        maximum = self.config.max_bulk_invoices
        if len(invoice_ids) > maximum:
            raise BatchSizeError(len(invoice_ids), maximum)

        # Keep request order; duplicates collapse to one entry
        wanted = list(dict.fromkeys(invoice_ids))
        found = {invoice.id: invoice for invoice in self.invoice_service.list_by_ids(wanted)}
        invoices = [found[invoice_id] for invoice_id in wanted if invoice_id in found]

        if not invoices:
            raise EmptyBatchError(len(invoice_ids))

        buffer = BytesIO()
        with zipfile.ZipFile(
            buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.config.zip_compression_level,
        ) as archive:
            for invoice in invoices:
                document = self.invoice_service.render_invoice(invoice)
                archive.writestr(document.filename, document.content)

        logger.info(
            "Exported %d of %d requested invoices", len(invoices), len(invoice_ids)
        )

        return BulkExport(
            filename=generate_bulk_zip_filename(),
            content=buffer.getvalue(),
            count=len(invoices),
        )

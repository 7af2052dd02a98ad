"""Tests for core/export.py - bulk ZIP export."""

import zipfile
from datetime import datetime, timezone
from io import BytesIO
from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.config import InvoiceConfig
from core.exceptions import (
    BatchSizeError,
    EmptyBatchError,
    RenderError,
)
from core.export import BulkInvoiceExporter, generate_bulk_zip_filename
from core.pdf_renderer import RenderedDocument, generate_pdf_filename
from core.services.invoice_service import InvoiceService


@pytest.fixture
def invoice_service():
    service = Mock(spec=InvoiceService)
    service.render_invoice.side_effect = lambda inv: RenderedDocument(
        filename=generate_pdf_filename(inv.invoice_number, inv.billed_to_name),
        content=b"%PDF-" + inv.invoice_number.encode(),
    )
    return service


@pytest.fixture
def exporter(invoice_service):
    return BulkInvoiceExporter(invoice_service, InvoiceConfig())


def _entries(content: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(BytesIO(content)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


class TestFilename:

    def test_date_and_time_with_dashes(self):
        now = datetime(2025, 1, 15, 14, 30, 5, tzinfo=timezone.utc)
        assert generate_bulk_zip_filename(now) == "invoices_2025-01-15_14-30-05.zip"


class TestLimits:

    def test_empty_request_rejected_before_fetch(self, exporter, invoice_service):
        with pytest.raises(EmptyBatchError) as exc_info:
            exporter.export([])

        assert exc_info.value.requested == 0

        invoice_service.list_by_ids.assert_not_called()

    def test_over_limit_rejected_before_fetch(self, exporter, invoice_service):
        with pytest.raises(BatchSizeError) as exc_info:
            exporter.export([uuid4() for _ in range(51)])

        assert exc_info.value.maximum == 50
        invoice_service.list_by_ids.assert_not_called()

    def test_exactly_fifty_allowed(self, exporter, invoice_service, make_invoice):
        ids = [uuid4() for _ in range(50)]
        invoice_service.list_by_ids.return_value = [make_invoice(id=str(ids[0]))]

        result = exporter.export(ids)

        assert result.count == 1

    def test_none_owned_raises_empty_batch(self, exporter, invoice_service):
        invoice_service.list_by_ids.return_value = []

        with pytest.raises(EmptyBatchError) as exc_info:
            exporter.export([uuid4()])

        assert exc_info.value.requested == 1
        assert str(exc_info.value) == "No valid invoices found"


class TestArchive:

    def test_one_entry_per_owned_invoice(self, exporter, invoice_service, make_invoice):
        first = make_invoice(invoice_number="INV-202501-001", billed_to_name="Acme")
        second = make_invoice(invoice_number="INV-202501-002", billed_to_name="Beta LLC")
        foreign_id = uuid4()
        invoice_service.list_by_ids.return_value = [second, first]

        result = exporter.export([first.id, foreign_id, second.id])

        entries = _entries(result.content)
        assert result.count == 2
        assert set(entries) == {
            "Invoice_INV-202501-001_Acme.pdf",
            "Invoice_INV-202501-002_Beta_LLC.pdf",
        }
        assert entries["Invoice_INV-202501-001_Acme.pdf"] == b"%PDF-INV-202501-001"

    def test_renders_in_request_order(self, exporter, invoice_service, make_invoice):
        first = make_invoice(invoice_number="INV-202501-001")
        second = make_invoice(invoice_number="INV-202501-002")
        invoice_service.list_by_ids.return_value = [second, first]

        exporter.export([first.id, second.id])

        rendered = [c.args[0].invoice_number for c in invoice_service.render_invoice.call_args_list]
        assert rendered == ["INV-202501-001", "INV-202501-002"]

    def test_entries_are_deflated(self, exporter, invoice_service, invoice):
        invoice_service.list_by_ids.return_value = [invoice]

        result = exporter.export([invoice.id])

        with zipfile.ZipFile(BytesIO(result.content)) as archive:
            assert all(i.compress_type == zipfile.ZIP_DEFLATED for i in archive.infolist())

    def test_result_metadata(self, exporter, invoice_service, invoice):
        invoice_service.list_by_ids.return_value = [invoice]

        result = exporter.export([invoice.id])

        assert result.media_type == "application/zip"
        assert result.filename.startswith("invoices_")
        assert result.filename.endswith(".zip")

    def test_render_failure_fails_whole_batch(self, exporter, invoice_service, make_invoice):
        first = make_invoice(invoice_number="INV-202501-001")
        second = make_invoice(invoice_number="INV-202501-002")
        invoice_service.list_by_ids.return_value = [first, second]
        invoice_service.render_invoice.side_effect = [
            RenderedDocument(filename="a.pdf", content=b"%PDF"),
            RenderError("INV-202501-002", "bad font"),
        ]

        with pytest.raises(RenderError):
            exporter.export([first.id, second.id])

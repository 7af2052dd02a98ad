"""
Single-invoice PDF rendering.

Pure transformation from invoice data to PDF bytes: no database or network
access. Output is deterministic for identical input, because the document
is built with reportlab's invariant mode and the only date printed is the
invoice's own date.

One layout serves single, bulk and combined exports.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from pydantic import BaseModel, Field
from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.config import InvoiceConfig
from core.exceptions import RenderError
from core.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from core.money import format_currency, tax_amount_of
from utils.timezone import to_local

logger = logging.getLogger(__name__)

PRIMARY_COLOR = colors.HexColor("#3b82f6")
TEXT_COLOR = colors.HexColor("#374151")
HEADER_ROW_COLOR = colors.HexColor("#f3f4f6")
STRIPE_COLOR = colors.HexColor("#f9fafb")
GRID_COLOR = colors.HexColor("#d1d5db")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class RenderedDocument:
    """A rendered file ready to send as an attachment."""

    filename: str
    content: bytes
    media_type: str = "application/pdf"


class InvoicePDFData(BaseModel):
    """Everything printed on an invoice PDF."""

    invoice_number: str
    invoice_date: datetime
    project_title: str
    billed_to_name: str
    items: list[InvoiceItem] = Field(default_factory=list)
    subtotal: float
    tax_percent: float = 0
    total: float
    status: InvoiceStatus = InvoiceStatus.PENDING

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoicePDFData":
        """PDF data for a stored invoice, dated by its creation time."""
        return cls(
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.created_at,
            project_title=invoice.project_title,
            billed_to_name=invoice.billed_to_name,
            items=invoice.items,
            subtotal=invoice.subtotal,
            tax_percent=invoice.tax_percent,
            total=invoice.total,
            status=invoice.status,
        )


def generate_pdf_filename(invoice_number: str, billed_to_name: str) -> str:
    """
    Download filename for one invoice.

    Every character of the billed-to name outside [A-Za-z0-9] becomes '_',
    one for one: ("INV-202501-001", "Acme & Co.") ->
    "Invoice_INV-202501-001_Acme___Co_.pdf".
    """
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", billed_to_name)
    return f"Invoice_{invoice_number}_{sanitized}.pdf"


def _format_quantity(quantity: float) -> str:
    return f"{quantity:g}"


def _format_percent(tax_percent: float) -> str:
    return f"{tax_percent:g}%"


def _format_date(value: datetime, tz_name: str) -> str:
    if value.tzinfo is not None:
        value = to_local(value, tz_name)
    return value.strftime("%d %B %Y")


def _styles() -> dict[str, ParagraphStyle]:
    sample = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "InvoiceTitle", parent=sample["Title"], textColor=colors.white,
            fontSize=26, leading=30, alignment=0,
        ),
        "header": ParagraphStyle(
            "InvoiceHeader", parent=sample["Normal"], textColor=colors.white,
            fontSize=10, leading=14, alignment=TA_RIGHT,
        ),
        "label": ParagraphStyle(
            "InvoiceLabel", parent=sample["Heading4"], textColor=TEXT_COLOR,
            spaceAfter=2,
        ),
        "body": ParagraphStyle(
            "InvoiceBody", parent=sample["Normal"], textColor=TEXT_COLOR,
            fontSize=10, leading=13,
        ),
        "footer": ParagraphStyle(
            "InvoiceFooter", parent=sample["Italic"], textColor=TEXT_COLOR,
            fontSize=9, leading=12,
        ),
    }


def _header_block(data: InvoicePDFData, config: InvoiceConfig, styles) -> Table:
    meta = "<br/>".join([
        f"<b>{escape(config.company_name)}</b>",
        f"Invoice #: {escape(data.invoice_number)}",
        f"Date: {_format_date(data.invoice_date, config.display_timezone)}",
        f"Status: {data.status.value.upper()}",
    ])
    table = Table(
        [[Paragraph("INVOICE", styles["title"]), Paragraph(meta, styles["header"])]],
        colWidths=[3.2 * inch, 3.0 * inch],
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PRIMARY_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 14),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 14),
        ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ("RIGHTPADDING", (0, 0), (-1, -1), 12),
    ]))
    return table


def _parties_block(data: InvoicePDFData, styles) -> Table:
    bill_to = [
        Paragraph("BILL TO:", styles["label"]),
        Paragraph(escape(data.billed_to_name), styles["body"]),
    ]
    project = [
        Paragraph("PROJECT:", styles["label"]),
        Paragraph(escape(data.project_title), styles["body"]),
    ]
    table = Table([[bill_to, project]], colWidths=[3.1 * inch, 3.1 * inch])
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    return table


def _items_block(data: InvoicePDFData, config: InvoiceConfig, styles) -> Table:
    rows = [["Description", "Quantity", "Rate", "Amount"]]
    for item in data.items:
        rows.append([
            Paragraph(escape(item.description), styles["body"]),
            _format_quantity(item.quantity),
            format_currency(item.rate, config.currency_symbol),
            format_currency(item.amount, config.currency_symbol),
        ])

    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_ROW_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, -1), TEXT_COLOR),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("LINEBELOW", (0, 0), (-1, 0), 1, GRID_COLOR),
    ]
    # Alternate row shading, starting with the first item row
    for row_index in range(1, len(rows), 2):
        commands.append(("BACKGROUND", (0, row_index), (-1, row_index), STRIPE_COLOR))

    table = Table(rows, colWidths=[3.1 * inch, 0.9 * inch, 1.1 * inch, 1.1 * inch], repeatRows=1)
    table.setStyle(TableStyle(commands))
    return table


def totals_rows(data: InvoicePDFData, config: InvoiceConfig) -> list[list[str]]:
    """Label/amount rows of the totals block. The tax row appears only when tax_percent > 0."""
    symbol = config.currency_symbol
    rows = [["Subtotal:", format_currency(data.subtotal, symbol)]]
    if data.tax_percent > 0:
        rows.append([
            f"Tax ({_format_percent(data.tax_percent)}):",
            format_currency(tax_amount_of(data.subtotal, data.tax_percent), symbol),
        ])
    rows.append(["TOTAL:", format_currency(data.total, symbol)])
    return rows


def _totals_block(data: InvoicePDFData, config: InvoiceConfig) -> Table:
    rows = totals_rows(data, config)
    table = Table(rows, colWidths=[1.4 * inch, 1.4 * inch], hAlign="RIGHT")
    table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("TEXTCOLOR", (0, 0), (-1, -1), TEXT_COLOR),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, -1), (-1, -1), 12),
        ("BOX", (0, 0), (-1, -1), 1, GRID_COLOR),
        ("LINEABOVE", (0, -1), (-1, -1), 1, GRID_COLOR),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def render_invoice_pdf(data: InvoicePDFData, config: InvoiceConfig | None = None) -> bytes:
    """
    Render one invoice as PDF bytes.

    Layout: header band (title, number, date, status), bill-to and project
    side by side, item table, totals (tax row only when tax_percent > 0),
    fixed footer. Long item lists flow onto further pages.

    Raises:
        RenderError: If reportlab fails to build the document.
    """
    config = config or InvoiceConfig()
    styles = _styles()

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"Invoice {data.invoice_number}",
        author=config.company_name,
        invariant=1,
    )

    elements = [
        _header_block(data, config, styles),
        Spacer(1, 0.35 * inch),
        _parties_block(data, styles),
        Spacer(1, 0.35 * inch),
        _items_block(data, config, styles),
        Spacer(1, 0.3 * inch),
        _totals_block(data, config),
        Spacer(1, 0.6 * inch),
    ]
    elements.extend(Paragraph(escape(line), styles["footer"]) for line in config.footer_lines)

    try:
        doc.build(elements)
    except Exception as e:
        logger.exception("PDF build failed for invoice %s", data.invoice_number)
        raise RenderError(data.invoice_number, str(e)) from e

    return buffer.getvalue()

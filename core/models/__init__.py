"""Core domain models."""

from core.models.invoice import (
    Invoice,
    InvoiceCreate,
    InvoiceItem,
    InvoicePage,
    InvoiceStatus,
    InvoiceUpdate,
    CombinedInvoiceCreate,
    CombinedPDFRequest,
)

__all__ = [
    "Invoice", "InvoiceCreate", "InvoiceItem", "InvoicePage",
    "InvoiceStatus", "InvoiceUpdate",
    "CombinedInvoiceCreate", "CombinedPDFRequest",
]

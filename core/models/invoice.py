"""Invoice domain models.

Amounts are floats in the invoice currency; consistency between items,
subtotal and total is checked with a 0.01 tolerance (see core.money).

An invoice is a snapshot: project_title and the items are copied in at
creation and never follow later edits to the source project. billed_to_name
is the one content field that stays editable.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceStatus(str, Enum):
    """Invoice payment status."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class InvoiceItem(BaseModel):
    """
    One billed line.

    amount is supplied by the caller rather than derived; the validator
    checks it against quantity * rate. Bounds are left to the validator so
    every violation is reported together.
    """

    description: str = ""
    quantity: float = 0
    rate: float = 0
    amount: float = 0

    model_config = {"str_strip_whitespace": True}


class InvoiceCreate(BaseModel):
    """Candidate invoice as submitted. The owner comes from the user context."""

    project_id: str = ""
    project_title: str = ""
    billed_to_name: str = ""
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_percent: float = 0
    subtotal: float = 0
    total: float = 0

    model_config = {"str_strip_whitespace": True}


class CombinedInvoiceCreate(BaseModel):
    """A stored invoice that bills items from several projects at once."""

    primary_project_id: str = ""
    billed_to_name: str = ""
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_percent: float = 0
    subtotal: float = 0
    total: float = 0

    model_config = {"str_strip_whitespace": True}


class CombinedPDFRequest(BaseModel):
    """Ad hoc multi-project invoice rendered straight to PDF, never stored."""

    billed_to_name: str = ""
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_percent: float = 0
    subtotal: float = 0
    total: float = 0
    clients: list[str] = Field(default_factory=list)

    model_config = {"str_strip_whitespace": True}


class InvoiceUpdate(BaseModel):
    """Fields that may change after issue. All optional."""

    billed_to_name: str | None = Field(None, min_length=1, max_length=200)
    status: InvoiceStatus | None = None

    model_config = {"str_strip_whitespace": True}


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    user_id: UUID
    invoice_number: str
    project_id: str
    project_title: str
    billed_to_name: str
    items: list[InvoiceItem]
    subtotal: float
    tax_percent: float
    total: float
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvoicePage(BaseModel):
    """One page of an owner's invoice history, newest first."""

    invoices: list[Invoice]
    page: int
    limit: int
    total: int
    pages: int

"""Typed exceptions for invoice failures.

Each carries the structured fields the HTTP layer needs to pick a status
code and message; none of them are retried inside the core.
"""

from uuid import UUID


class InvoiceError(Exception):
    """Base class for invoice numbering, validation and export errors."""


class InvoiceValidationError(InvoiceError):
    """
    Payload failed validation. Carries every violation, not just the first.

    Never corrupts state: raised before anything is written.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Validation failed: " + "; ".join(self.errors))


class DuplicateInvoiceNumberError(InvoiceError):
    """
    The unique constraint on invoice_number rejected an insert.

    Another writer claimed the same number between allocation and insert.
    The caller should retry the whole create, which re-allocates.
    """

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number {invoice_number} already exists")


class InvoiceSequenceExhaustedError(InvoiceError):
    """All 999 numbers of a period are taken. Raised before any write."""

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"No invoice numbers left for period {period}")


class InvoiceNotFoundError(InvoiceError):
    """
    Invoice does not exist or belongs to another user.

    The two cases are deliberately indistinguishable.
    """

    def __init__(self, invoice_id: UUID | str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class BatchSizeError(InvoiceError):
    """Bulk export asked for more invoices than allowed. Raised before any fetch."""

    def __init__(self, requested: int, maximum: int):
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Maximum {maximum} invoices allowed per bulk export (got {requested})"
        )


class EmptyBatchError(InvoiceError):
    """
    Bulk export has nothing to render.

    requested == 0 means no ids were sent (rejected before any fetch);
    otherwise none of the requested ids are owned by the caller.
    """

    def __init__(self, requested: int):
        self.requested = requested
        if requested:
            message = "No valid invoices found"
        else:
            message = "No invoice IDs provided"
        super().__init__(message)


class RenderError(InvoiceError):
    """PDF generation failed. In a bulk export this fails the whole batch."""

    def __init__(self, invoice_number: str, reason: str):
        self.invoice_number = invoice_number
        self.reason = reason
        super().__init__(f"Failed to render invoice {invoice_number}: {reason}")

"""
Invoice payload validation.

validate_invoice_data() runs every check and collects all violations in a
fixed order, so one call reports everything wrong with a payload. It never
raises. ensure_persistable() is the narrower guard the service runs
immediately before every INSERT, so rows that bypass the request validator
still cannot be written with a malformed number or inconsistent totals.
ensure_totals_consistent() checks totals alone, for documents that are
rendered without being stored.
"""

from dataclasses import dataclass, field
from typing import Sequence

from core.exceptions import InvoiceValidationError
from core.models.invoice import InvoiceCreate, InvoiceItem
from core.money import MONEY_TOLERANCE, amounts_match, subtotal_of, total_of
from core.numbering import is_valid_invoice_number

SUBTOTAL_MISMATCH = "Subtotal does not match items total"
TOTAL_MISMATCH = "Total calculation is incorrect"
INVALID_NUMBER = "Invoice number must look like INV-YYYYMM-NNN"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one payload."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise InvoiceValidationError carrying every error, if any."""
        if self.errors:
            raise InvoiceValidationError(self.errors)


def _item_errors(items: Sequence[InvoiceItem], tolerance: float) -> list[str]:
    if not items:
        return ["At least one item is required"]

    errors = []
    for index, item in enumerate(items, start=1):
        if not item.description.strip():
            errors.append(f"Item {index}: Description is required")
        if item.quantity <= 0:
            errors.append(f"Item {index}: Quantity must be positive")
        if item.rate < 0:
            errors.append(f"Item {index}: Rate cannot be negative")
        if item.amount < 0:
            errors.append(f"Item {index}: Amount cannot be negative")
        elif not amounts_match(item.amount, item.quantity * item.rate, tolerance):
            errors.append(f"Item {index}: Amount does not match quantity x rate")
    return errors


def _totals_errors(
    items: Sequence[InvoiceItem],
    subtotal: float,
    tax_percent: float,
    total: float,
    tolerance: float,
) -> list[str]:
    errors = []
    if not amounts_match(subtotal, subtotal_of(items), tolerance):
        errors.append(SUBTOTAL_MISMATCH)
    if not amounts_match(total, total_of(subtotal, tax_percent), tolerance):
        errors.append(TOTAL_MISMATCH)
    return errors


def validate_invoice_data(
    data: InvoiceCreate,
    tolerance: float = MONEY_TOLERANCE,
) -> ValidationResult:
    """
    Validate a candidate invoice.

    Checks, all of which run regardless of earlier failures:
    required project id / project title / billed-to name, at least one item
    and per-item bounds (1-based in messages), tax percent in [0, 100],
    non-negative subtotal and total, and subtotal/total agreement with the
    recomputed values within tolerance.
    """
    errors: list[str] = []

    if not data.project_id.strip():
        errors.append("Project ID is required")
    if not data.project_title.strip():
        errors.append("Project title is required")
    if not data.billed_to_name.strip():
        errors.append("Billed to name is required")

    errors.extend(_item_errors(data.items, tolerance))

    if data.tax_percent < 0 or data.tax_percent > 100:
        errors.append("Tax percentage must be between 0 and 100")
    if data.subtotal < 0:
        errors.append("Subtotal cannot be negative")
    if data.total < 0:
        errors.append("Total cannot be negative")

    errors.extend(
        _totals_errors(data.items, data.subtotal, data.tax_percent, data.total, tolerance)
    )

    return ValidationResult(errors=errors)


def ensure_totals_consistent(
    items: Sequence[InvoiceItem],
    subtotal: float,
    tax_percent: float,
    total: float,
    tolerance: float = MONEY_TOLERANCE,
) -> None:
    """
    Raise unless subtotal and total agree with the items.

    Raises:
        InvoiceValidationError: With the subtotal and/or total mismatch message.
    """
    errors = _totals_errors(items, subtotal, tax_percent, total, tolerance)
    if errors:
        raise InvoiceValidationError(errors)


def ensure_persistable(
    invoice_number: str,
    items: Sequence[InvoiceItem],
    subtotal: float,
    tax_percent: float,
    total: float,
    tolerance: float = MONEY_TOLERANCE,
) -> None:
    """
    Guard run immediately before every INSERT.

    Rejects a number outside the INV-YYYYMM-NNN shape as well as totals that
    disagree with the items.

    Raises:
        InvoiceValidationError: With every failed check.
    """
    errors = []
    if not is_valid_invoice_number(invoice_number):
        errors.append(INVALID_NUMBER)
    errors.extend(_totals_errors(items, subtotal, tax_percent, total, tolerance))
    if errors:
        raise InvoiceValidationError(errors)

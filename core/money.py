"""Money arithmetic for invoices.

Amounts are plain floats, compared with a fixed absolute tolerance so that
client-side and server-side recomputation of the same sums agree.
"""

from typing import Iterable

from core.models.invoice import InvoiceItem

MONEY_TOLERANCE = 0.01


def subtotal_of(items: Iterable[InvoiceItem]) -> float:
    """Sum of item amounts. Empty input gives 0."""
    return sum((item.amount for item in items), 0.0)


def tax_amount_of(subtotal: float, tax_percent: float) -> float:
    return subtotal * tax_percent / 100


def total_of(subtotal: float, tax_percent: float) -> float:
    """Tax-inclusive total. Equals subtotal exactly when tax_percent is 0."""
    return subtotal + tax_amount_of(subtotal, tax_percent)


def amounts_match(a: float, b: float, tolerance: float = MONEY_TOLERANCE) -> bool:
    return abs(a - b) <= tolerance


def format_currency(amount: float, symbol: str = "$") -> str:
    """Format for display, e.g. 1234.5 -> '$1,234.50'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"

"""
Invoice number allocation.

Numbers look like INV-YYYYMM-NNN: a period prefix for the UTC year-month and
a three-digit sequence that restarts every period. A period therefore holds
at most 999 invoices; the allocator refuses to go past -999 rather than emit
a four-digit sequence that would sort below it.

There is no counter row. The next number is re-derived by scanning for the
greatest existing number in the current period, across all users since the
numbers are globally unique. Two concurrent allocations in the same period
can compute the same candidate; the UNIQUE constraint on
invoices.invoice_number is what actually serializes them. The loser gets
DuplicateInvoiceNumberError from the service and must allocate again from
scratch, because the store now holds the winner's number.
"""

import logging
import re
from datetime import datetime

import psycopg2

from clients.postgres_client import PostgresClient
from core.exceptions import InvoiceSequenceExhaustedError
from utils.timezone import month_bucket, now_utc

logger = logging.getLogger(__name__)

NUMBER_PREFIX = "INV"
SEQUENCE_DIGITS = 3
MAX_SEQUENCE = 10 ** SEQUENCE_DIGITS - 1

INVOICE_NUMBER_PATTERN = re.compile(r"^INV-\d{6}-\d{3}$")


def period_prefix(now: datetime) -> str:
    """Period prefix for a timestamp, e.g. 'INV-202501'."""
    return f"{NUMBER_PREFIX}-{month_bucket(now)}"


def format_invoice_number(period: str, sequence: int) -> str:
    return f"{period}-{sequence:0{SEQUENCE_DIGITS}d}"


def is_valid_invoice_number(value: str) -> bool:
    """Whether value has the INV-YYYYMM-NNN shape."""
    return bool(INVOICE_NUMBER_PATTERN.match(value))


def next_sequence(last_number: str | None) -> int:
    """
    Sequence that follows last_number within its period.

    None (no invoices yet this period) gives 1. A number whose last three
    characters are not digits also restarts at 1; the unique constraint
    catches any resulting collision.
    """
    if last_number is None:
        return 1

    tail = last_number[-SEQUENCE_DIGITS:]
    if not tail.isdigit():
        logger.warning("Unparseable invoice number %r, restarting sequence", last_number)
        return 1

    return int(tail) + 1


class InvoiceNumberAllocator:
    """Derives the next invoice number for the current period from the store."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def next_number(self, now: datetime | None = None) -> str:
        """
        Next invoice number for the period containing `now` (default: current time).

        On a lookup failure this returns the period's first number instead of
        guessing; if that number is taken, the insert fails on the unique
        constraint and the caller retries.

        Raises:
            InvoiceSequenceExhaustedError: If -999 is already taken this period
        """
        period = period_prefix(now or now_utc())

        try:
            row = self.postgres.execute_single(
                """
                SELECT invoice_number FROM invoices
                WHERE invoice_number LIKE %s
                ORDER BY invoice_number DESC
                LIMIT 1
                """,
                (f"{period}-%",)
            )
        except psycopg2.Error:
            logger.exception("Invoice number lookup failed for period %s", period)
            return format_invoice_number(period, 1)

        last_number = row["invoice_number"] if row else None
        sequence = next_sequence(last_number)
        if sequence > MAX_SEQUENCE:
            logger.error("Invoice numbers exhausted for period %s", period)
            raise InvoiceSequenceExhaustedError(period)

        return format_invoice_number(period, sequence)

"""Shared test fixtures for the invoice test suite."""

import pytest
from datetime import datetime, timezone
from uuid import UUID, uuid4
from pathlib import Path
from unittest.mock import Mock

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.models import Invoice, InvoiceItem, InvoiceStatus
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for ownership isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

FIXED_NOW = datetime(2025, 1, 15, 14, 30, 5, tzinfo=timezone.utc)


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


@pytest.fixture
def as_test_user_b(test_user_b_id):
    """Run the test as the secondary test user."""
    with user_context(test_user_b_id):
        yield test_user_b_id


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def mock_postgres():
    """PostgresClient stand-in; tests script the rows it returns."""
    return Mock(spec=PostgresClient)


@pytest.fixture
def mock_audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def invoice_config() -> InvoiceConfig:
    return InvoiceConfig()


# =============================================================================
# INVOICE DATA
# =============================================================================


def _items() -> list[InvoiceItem]:
    """Two items totalling 150.00."""
    return [
        InvoiceItem(description="Design work", quantity=2, rate=50, amount=100),
        InvoiceItem(description="Hosting", quantity=1, rate=50, amount=50),
    ]


def _invoice_row(**overrides) -> dict:
    """A row as RealDictCursor returns it from the invoices table."""
    row = {
        "id": str(uuid4()),
        "user_id": str(TEST_USER_ID),
        "invoice_number": "INV-202501-001",
        "project_id": "proj-1",
        "project_title": "Website Redesign",
        "billed_to_name": "Acme Corp",
        "items": [item.model_dump() for item in _items()],
        "subtotal": 150.0,
        "tax_percent": 10.0,
        "total": 165.0,
        "status": InvoiceStatus.PENDING.value,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    row.update(overrides)
    return row


def _invoice(**overrides) -> Invoice:
    return Invoice.model_validate(_invoice_row(**overrides))


@pytest.fixture
def items() -> list[InvoiceItem]:
    return _items()


@pytest.fixture
def make_invoice_row():
    """Factory: make_invoice_row(status="paid", ...) -> row dict."""
    return _invoice_row


@pytest.fixture
def make_invoice():
    """Factory: make_invoice(invoice_number="INV-202501-002", ...) -> Invoice."""
    return _invoice


@pytest.fixture
def invoice_row() -> dict:
    return _invoice_row()


@pytest.fixture
def invoice(invoice_row) -> Invoice:
    return Invoice.model_validate(invoice_row)

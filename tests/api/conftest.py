"""API test fixtures: authenticated TestClient over mocked services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from auth.types import Session
from core.export import BulkInvoiceExporter
from core.services.invoice_service import InvoiceService
from utils.timezone import now_utc


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service():
    return Mock(spec=InvoiceService)


@pytest.fixture
def exporter():
    return Mock(spec=BulkInvoiceExporter)


@pytest.fixture
def services(invoice_service, exporter):
    return {
        "invoice": invoice_service,
        "export": exporter,
    }


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_manager(test_user_id):
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(mock_session_manager, services):
    """FastAPI app with auth middleware, error handlers, and invoice routes."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, session_manager=mock_session_manager)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_invoices_router(services), prefix="/api")

    return app


@pytest.fixture
def client(app):
    """Authenticated test client (bearer token)."""
    return TestClient(
        app,
        raise_server_exceptions=False,
        headers={"Authorization": "Bearer test-token"},
    )


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client."""
    return TestClient(app, raise_server_exceptions=False)

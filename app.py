"""Application entry point: wires clients, services, middleware and routes.

Run with:
    uvicorn app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.export import BulkInvoiceExporter
from core.numbering import InvoiceNumberAllocator
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: InvoiceConfig | None = None) -> dict:
    """Services dict consumed by the routers."""
    config = config or InvoiceConfig()
    audit = AuditLogger(postgres)
    invoice_service = InvoiceService(
        postgres,
        audit,
        allocator=InvoiceNumberAllocator(postgres),
        config=config,
    )
    return {
        "invoice": invoice_service,
        "export": BulkInvoiceExporter(invoice_service, config),
    }


def create_app(
    invoice_config: InvoiceConfig | None = None,
    auth_config: AuthConfig | None = None,
) -> FastAPI:
    """Build the FastAPI app. Connection URLs come from Vault."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    auth_config = auth_config or AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    services = build_services(postgres, invoice_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, closing connections")
        postgres.close()
        valkey.close()

    app = FastAPI(title="Studio Invoices", version="0.1.0", lifespan=lifespan)

    # Last added runs first: request ID is assigned before auth
    app.add_middleware(
        AuthMiddleware,
        session_manager=SessionManager(valkey, auth_config),
        cookie_name=auth_config.session_cookie_name,
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_invoices_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        valkey.ping()
        return {"status": "ok"}

    return app

"""Invoice endpoints under /api/invoices."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field
from starlette.responses import Response

from api.base import success_response
from core.models import (
    CombinedInvoiceCreate,
    CombinedPDFRequest,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceUpdate,
)


class BulkPDFRequest(BaseModel):
    invoice_ids: list[UUID] = Field(default_factory=list)


def _attachment(filename: str, content: bytes, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def create_invoices_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    exporter = services["export"]

    def _ok(request: Request, data) -> dict:
        request_id = getattr(request.state, "request_id", None)
        return success_response(data, request_id=request_id).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Collection routes (registered before the /{invoice_id} routes)
    # -------------------------------------------------------------------------

    @router.get("/invoices")
    def list_invoices(
        request: Request,
        status: InvoiceStatus | None = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
    ):
        result = invoice_svc.list(status=status, page=page, limit=limit)
        return _ok(request, result.model_dump(mode="json"))

    @router.post("/invoices", status_code=201)
    def create_invoice(request: Request, body: InvoiceCreate):
        invoice = invoice_svc.create(body)
        return _ok(request, invoice.model_dump(mode="json"))

    @router.post("/invoices/combined", status_code=201)
    def create_combined_invoice(request: Request, body: CombinedInvoiceCreate):
        invoice = invoice_svc.create_combined(body)
        return _ok(request, invoice.model_dump(mode="json"))

    @router.post("/invoices/bulk-pdf")
    def bulk_pdf(body: BulkPDFRequest):
        export = exporter.export(body.invoice_ids)
        return _attachment(export.filename, export.content, export.media_type)

    @router.post("/invoices/combined-pdf")
    def combined_pdf(body: CombinedPDFRequest):
        document = invoice_svc.render_combined_pdf(body)
        return _attachment(document.filename, document.content, document.media_type)

    # -------------------------------------------------------------------------
    # Single invoice routes
    # -------------------------------------------------------------------------

    @router.get("/invoices/{invoice_id}")
    def get_invoice(request: Request, invoice_id: UUID):
        invoice = invoice_svc.get_by_id(invoice_id)
        if invoice is None:
            raise ValueError("Invoice not found")
        return _ok(request, invoice.model_dump(mode="json"))

    @router.put("/invoices/{invoice_id}")
    def update_invoice(request: Request, invoice_id: UUID, body: InvoiceUpdate):
        invoice = invoice_svc.update(invoice_id, body)
        return _ok(request, invoice.model_dump(mode="json"))

    @router.delete("/invoices/{invoice_id}")
    def delete_invoice(request: Request, invoice_id: UUID):
        if not invoice_svc.delete(invoice_id):
            raise ValueError("Invoice not found")
        return _ok(request, {"deleted": True})

    @router.post("/invoices/{invoice_id}/pdf")
    def invoice_pdf(invoice_id: UUID):
        document = invoice_svc.render_pdf(invoice_id)
        return _attachment(document.filename, document.content, document.media_type)

    return router

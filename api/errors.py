"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    BatchSizeError,
    DuplicateInvoiceNumberError,
    EmptyBatchError,
    InvoiceNotFoundError,
    InvoiceSequenceExhaustedError,
    InvoiceValidationError,
    RenderError,
)

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: list[str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(
            code, message, details=details, request_id=_request_id(request)
        ).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(InvoiceValidationError)
    async def invoice_validation_handler(request: Request, exc: InvoiceValidationError):
        return _error(
            request, 400, ErrorCodes.VALIDATION_ERROR,
            "Validation failed", details=exc.errors,
        )

    @app.exception_handler(DuplicateInvoiceNumberError)
    async def duplicate_number_handler(request: Request, exc: DuplicateInvoiceNumberError):
        return _error(
            request, 409, ErrorCodes.INVOICE_NUMBER_CONFLICT,
            "Invoice number already exists. Please try again.",
        )

    @app.exception_handler(InvoiceSequenceExhaustedError)
    async def sequence_exhausted_handler(request: Request, exc: InvoiceSequenceExhaustedError):
        return _error(
            request, 409, ErrorCodes.INVOICE_NUMBERS_EXHAUSTED,
            "No invoice numbers left for this month",
        )

    @app.exception_handler(InvoiceNotFoundError)
    async def not_found_handler(request: Request, exc: InvoiceNotFoundError):
        return _error(request, 404, ErrorCodes.NOT_FOUND, "Invoice not found")

    @app.exception_handler(BatchSizeError)
    async def batch_size_handler(request: Request, exc: BatchSizeError):
        return _error(
            request, 400, ErrorCodes.BATCH_TOO_LARGE,
            f"Maximum {exc.maximum} invoices allowed per bulk export",
        )

    @app.exception_handler(EmptyBatchError)
    async def empty_batch_handler(request: Request, exc: EmptyBatchError):
        if not exc.requested:
            return _error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))
        return _error(request, 404, ErrorCodes.NO_VALID_INVOICES, str(exc))

    @app.exception_handler(RenderError)
    async def render_error_handler(request: Request, exc: RenderError):
        return _error(request, 500, ErrorCodes.RENDER_FAILED, "Failed to generate PDF")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _error(request, 404, ErrorCodes.NOT_FOUND, message)
        return _error(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(
            request, 422, ErrorCodes.VALIDATION_ERROR,
            "Request body or parameters are malformed",
            details=[
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ],
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")

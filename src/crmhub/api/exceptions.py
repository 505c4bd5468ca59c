"""Exception handlers for CRM Hub API.

Service errors map to HTTP by message category, so every error the
frontend sees carries one of: permission, lookup, duplicate, validation,
conflict, transient.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from crmhub.services.errors import CRMServiceError

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    "permission": 403,
    "lookup": 404,
    "duplicate": 409,
    "validation": 422,
    "conflict": 409,
    "transient": 503,
}


def _error_response(status_code: int, message: str, category: str, details) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "category": category,
            "details": jsonable_encoder(details),
        },
    )


async def service_error_handler(request: Request, exc: CRMServiceError) -> JSONResponse:
    """Handle service-layer errors."""
    status_code = STATUS_BY_CATEGORY.get(exc.category, 400)
    return _error_response(status_code, exc.message, exc.category, exc.details)


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request and Pydantic validation errors."""
    errors = exc.errors() if isinstance(exc, (RequestValidationError, ValidationError)) else []
    return _error_response(422, "Validation error", "validation", errors)


async def store_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """Database unreachable or connection dropped."""
    logger.warning(f"Database operation failed: {exc}")
    return _error_response(503, "Service temporarily unavailable", "transient", {})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unexpected error", exc_info=exc)
    return _error_response(500, "Internal server error", "error", {})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers."""
    app.add_exception_handler(CRMServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(OperationalError, store_unavailable_handler)
    app.add_exception_handler(Exception, generic_error_handler)

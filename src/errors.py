"""Domain exceptions raised by the service layer.

Services never build HTTP responses; they raise one of these and the
handler registered in src.main turns it into a JSON error with the
matching status code.
"""

from __future__ import annotations

import logging
from typing import cast

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.schemas.rfc import RfcResult

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class. Carries the client-facing Spanish message and a code."""

    status_code = 400
    code = "BUSINESS_ERROR"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationFailedError(ServiceError):
    code = "VALIDATION_ERROR"


class InvalidRfcError(ServiceError):
    """RFC failed validation; the full analysis travels with the error."""

    code = "INVALID_RFC"

    def __init__(self, result: RfcResult) -> None:
        super().__init__(f"RFC inválido: {', '.join(result.errors)}")
        self.result = result


class AuthenticationError(ServiceError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"


class PermissionDeniedError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a ServiceError as {"success": false, "detail": ..., "error": code}."""
    # Only registered for ServiceError
    error = cast(ServiceError, exc)
    if error.status_code >= 500:
        logger.error("Service error on %s: %s", request.url.path, error.detail)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, error.detail)

    body: dict[str, object] = {"success": False, "detail": error.detail, "error": error.code}
    if isinstance(error, InvalidRfcError):
        body["data"] = error.result.model_dump(mode="json")
    return JSONResponse(status_code=error.status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the ServiceError handler to an application."""
    app.add_exception_handler(ServiceError, service_error_handler)


class ClienteNotFoundError(NotFoundError):
    def __init__(self, detail: str = "Cliente no encontrado") -> None:
        super().__init__(detail)


class DuplicateClienteError(ConflictError):
    """Another client already uses the RFC or client number."""


class SolicitudNotFoundError(NotFoundError):
    def __init__(self, detail: str = "Solicitud no encontrada") -> None:
        super().__init__(detail)

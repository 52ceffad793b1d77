"""
Billing errors and the handlers that render them.

Every error body has the same shape:

    {"error_code": "ERR_BALANCE_001", "message": "...", "details": {...}}

Ledger and issuance failures are AppException subclasses; FastAPI
HTTPExceptions and request validation errors are mapped onto the same body.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ValidationFailedError(AppException):
    """Raised when a request is well-formed but violates a business rule."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class DuplicateResourceError(AppException):
    """Raised when a party with the same name or phone already exists."""

    def __init__(self, resource: str, field: str):
        super().__init__(
            message=f"{resource} already exists with matching {field}",
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "field": field}
        )


class InsufficientBalanceError(AppException):
    """Raised under the strict floor policy when a pool would go negative."""

    def __init__(self, party: str, party_id: int, pool: str, balance: float, amount: float):
        super().__init__(
            message=f"Insufficient {pool} balance for {party} {party_id}",
            error_code="ERR_BALANCE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "party_type": party,
                "party_id": party_id,
                "pool": pool,
                "balance": balance,
                "amount": amount
            }
        )


class BalanceConsistencyError(AppException):
    """Raised when a balance changed between read and write of a mutation."""

    def __init__(self, party: str, party_id: int, pool: str):
        super().__init__(
            message=f"{pool} balance of {party} {party_id} changed concurrently; retry the request",
            error_code="ERR_BALANCE_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"party_type": party, "party_id": party_id, "pool": pool}
        )


class IssuanceFailedError(AppException):
    """
    Raised when an invoice/ticket could not be issued.

    The record and all of its balance mutations were rolled back together.
    """

    def __init__(self, document: str, stage: str, reason: str):
        super().__init__(
            message=f"{document} issuance failed during {stage}: {reason}",
            error_code="ERR_ISSUANCE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"document": document, "stage": stage}
        )


_HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def _error_body(error_code: str, message: Any, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {"error_code": error_code, "message": message, "details": details or {}}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(_HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"), exc.detail),
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with ctx values stringified (ctx may hold the raised ValueError)."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("ERR_VALIDATION", "Validation error", {"errors": jsonable_errors(exc)}),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("ERR_INTERNAL_SERVER", "An internal server error occurred"),
    )

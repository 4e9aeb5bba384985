"""MFA API error handling.

Provides MfaHttpError and the FastAPI exception handlers that turn every
failure into the JSON error envelope with request_id tracing.

Global exception handlers:
- MfaHttpError: Application-specific errors with structured envelope
- Domain errors: engine and store exceptions mapped by DOMAIN_ERROR_MAP
- HTTPException: Starlette routing errors (404, 405) and FastAPI HTTP errors
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from mfa.analysis.record import (
    InvalidNameError,
    MalformedRecordError,
    RatingBoundsError,
    RecordStateError,
    UnknownEntityError,
)
from mfa.api.error_model import make_error_response, routing_error_code
from mfa.persistence.store import AnalysisNotFoundError, StoreError
from mfa.scoring.engine import ShapeMismatchError
from mfa.scoring.pairwise import InvalidJudgmentError
from mfa.scoring.weights import WeightBoundsError

logger = logging.getLogger(__name__)


class MfaHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 404, 503).
        code: Machine-readable error code (e.g., "SAVE_FAILED").
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


# Ordered: the first matching class wins.
DOMAIN_ERROR_MAP: tuple[tuple[type[Exception], int, str], ...] = (
    (AnalysisNotFoundError, 404, "NOT_FOUND"),
    (UnknownEntityError, 404, "NOT_FOUND"),
    (InvalidNameError, 422, "INVALID_NAME"),
    (InvalidJudgmentError, 422, "INVALID_JUDGMENT"),
    (WeightBoundsError, 422, "WEIGHT_OUT_OF_BOUNDS"),
    (RatingBoundsError, 422, "RATING_OUT_OF_BOUNDS"),
    (ShapeMismatchError, 422, "SHAPE_MISMATCH"),
    (MalformedRecordError, 422, "MALFORMED_RECORD"),
    (RecordStateError, 409, "CONFLICT"),
    (StoreError, 503, "STORE_UNAVAILABLE"),
)


def _domain_error_details(exc: Exception) -> dict[str, Any] | None:
    if isinstance(exc, AnalysisNotFoundError):
        return {"analysis_id": exc.record_id}
    if isinstance(exc, UnknownEntityError):
        return {"kind": exc.kind, "id": exc.identifier}
    if isinstance(exc, MalformedRecordError):
        return {"field": exc.field}
    if isinstance(exc, ShapeMismatchError):
        return {"expected": exc.expected, "actual": exc.actual, "scenario_id": exc.scenario_id}
    return None


async def mfa_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for MfaHttpError."""
    assert isinstance(exc, MfaHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for engine and store exceptions.

    Store failures are logged at warning level; input errors are not logged.
    """
    for error_type, status_code, code in DOMAIN_ERROR_MAP:
        if isinstance(exc, error_type):
            break
    else:
        return await generic_exception_handler(request, exc)

    if status_code == 503:
        logger.warning("Store unavailable: %s", exc)
        message = "The analysis store is unavailable"
    else:
        message = str(exc)

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=status_code,
        details=_domain_error_details(exc),
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, HTTPException)

    code = routing_error_code(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Reports each failing field without echoing raw validation internals.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler.

    Returns 500 with a safe generic message and logs the exception.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )

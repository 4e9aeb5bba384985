"""Error envelope returned by every failing MFA API call.

Body shape: ``{"code", "message", "details", "request_id"}``. ``code`` is a
stable machine-readable string such as ``NOT_FOUND`` or ``INVALID_JUDGMENT``;
``details`` is null unless the error carries structured context.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from mfa.api.middleware.request_id import REQUEST_ID_HEADER, request_id_for

# Routing errors raised by Starlette before any MFA code runs.
ROUTING_ERROR_CODES: dict[int, str] = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def routing_error_code(status_code: int) -> str:
    """Envelope code for a framework HTTP error, e.g. ``HTTP_413`` if unmapped."""
    return ROUTING_ERROR_CODES.get(status_code, f"HTTP_{status_code}")


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render the error envelope, echoing the request id in body and header."""
    request_id = request_id_for(request)
    response = JSONResponse(
        status_code=http_status,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response

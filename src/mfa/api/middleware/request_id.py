"""Correlation ids for MFA API requests.

A caller-supplied ``X-Request-Id`` is kept (trimmed); otherwise a uuid4 is
issued. The id lands on ``request.state`` so error envelopes can report it.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-Id"


def request_id_for(request: Request) -> str:
    """The id assigned to ``request``, issuing one if the middleware did not run."""
    request_id: str | None = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and returns it in ``X-Request-Id``."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request_id_for(request)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

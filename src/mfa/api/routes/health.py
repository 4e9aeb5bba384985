"""Health check endpoint for the MFA API."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from mfa.persistence.store import utc_now_iso

router = APIRouter(tags=["Health"])

API_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    time: str
    version: str
    store: str


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request) -> HealthResponse:
    """Report liveness and which store backs the API.

    Args:
        request: The incoming request (used for app state access).

    Returns:
        HealthResponse with status "ok", current time, version and store kind.
    """
    store = request.app.state.store
    return HealthResponse(
        status="ok",
        time=utc_now_iso(),
        version=API_VERSION,
        store=type(store).__name__,
    )

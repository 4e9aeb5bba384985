"""MFA FastAPI application factory.

This module provides the create_app() factory for bootstrapping the MFA API.
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from mfa.api.errors import (
    DOMAIN_ERROR_MAP,
    MfaHttpError,
    domain_error_handler,
    generic_exception_handler,
    http_exception_handler,
    mfa_http_error_handler,
    request_validation_error_handler,
)
from mfa.api.middleware.request_id import RequestIdMiddleware
from mfa.api.routes.analyses import router as analyses_router
from mfa.api.routes.health import API_VERSION
from mfa.api.routes.health import router as health_router
from mfa.persistence.saver import DebouncedSaver
from mfa.persistence.store import AnalysisStore, get_analysis_store

logger = logging.getLogger(__name__)


def create_app(
    store: AnalysisStore | None = None,
    saver: DebouncedSaver | None = None,
) -> FastAPI:
    """Create and configure the MFA FastAPI application.

    This factory:
    - Resolves the analysis store (SQL when MFA_DATABASE_URL is set, else in-memory)
    - Creates the saver that writes edits to that store
    - Registers RequestIdMiddleware and the error envelope handlers
    - Mounts the health router and the /v1 analyses router

    Args:
        store: Optional store for testing. If None, uses get_analysis_store().
        saver: Optional saver for testing. If None, a DebouncedSaver over ``store``.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="MFA Decision Scoring API",
        description="Multi-factor analysis: weighted scenario scoring and ranking",
        version=API_VERSION,
    )

    if store is None:
        store = get_analysis_store()
    if saver is None:
        saver = DebouncedSaver(store)

    app.state.store = store
    app.state.saver = saver
    logger.info("MFA API using %s", type(store).__name__)

    app.add_middleware(RequestIdMiddleware)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Let pending saves finish before the process exits."""
        await saver.wait_idle()

    app.add_exception_handler(MfaHttpError, mfa_http_error_handler)
    for error_type, _status_code, _code in DOMAIN_ERROR_MAP:
        app.add_exception_handler(error_type, domain_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(analyses_router)

    return app

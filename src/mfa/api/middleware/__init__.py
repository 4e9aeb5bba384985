"""MFA API middleware."""

from mfa.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware, request_id_for

__all__ = ["REQUEST_ID_HEADER", "RequestIdMiddleware", "request_id_for"]

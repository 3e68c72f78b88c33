"""Middleware package for paygate."""

from paygate.app.middleware.auth import require_admin
from paygate.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "require_admin",
    "RequestIdMiddleware",
    "get_request_id",
]

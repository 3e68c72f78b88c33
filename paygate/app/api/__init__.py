"""API endpoints package for paygate."""

from paygate.app.api.admin import router as admin_router
from paygate.app.api.gateway import router as gateway_router

__all__ = [
    "admin_router",
    "gateway_router",
]

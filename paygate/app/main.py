import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paygate.app.api.admin import router as admin_router
from paygate.app.api.gateway import router as gateway_router
from paygate.app.core.config import Settings, settings as default_settings
from paygate.app.core.logging import get_logger, setup_logging
from paygate.app.core.store import KeyValueStore, create_store
from paygate.app.exceptions import GatewayException
from paygate.app.handlers import Handler, load_handler
from paygate.app.middleware.request_id import RequestIdMiddleware, get_request_id
from paygate.app.services.orchestrator import Orchestrator

HEALTH_CHECK_KEY = "_health_check_test"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    handler: Optional[Handler] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to the environment-loaded settings
        store: Key-value store; defaults to the backend named in settings
        handler: Business handler; defaults to ``settings.handler_path``

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or default_settings
    setup_logging(settings)
    logger = get_logger(__name__)

    store = store or create_store(settings)
    handler = handler or load_handler(settings.handler_path)
    orchestrator = Orchestrator(store, settings, handler)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Log startup and release the store connection on shutdown."""
        logger.info(
            "Application startup complete",
            extra={
                "store_backend": settings.store_backend,
                "free_rate_limit": settings.free_rate_limit,
                "price_credit": settings.price_credit,
                "cache_seconds": settings.cache_seconds,
                "debug_mode": settings.debug,
            },
        )
        yield
        await store.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="paygate",
        description="Pay-per-call gatekeeper with free-tier rate limiting, metered billing and response caching",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = orchestrator

    # Request ID middleware for tracing
    app.add_middleware(RequestIdMiddleware)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with a store round-trip."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}
        try:
            await store.set(HEALTH_CHECK_KEY, "ping", ttl=5)
            value = await store.get(HEALTH_CHECK_KEY)
            await store.delete(HEALTH_CHECK_KEY)
            if value == "ping":
                health_status["components"]["store"] = {
                    "status": "ok",
                    "type": settings.store_backend,
                }
            else:
                health_status["status"] = "degraded"
                health_status["components"]["store"] = {"status": "error", "error": "Unexpected value"}
        except GatewayException as e:
            health_status["status"] = "degraded"
            health_status["components"]["store"] = {
                "status": "error",
                "error": str(e)[:100],  # Truncate for security
            }
        return health_status

    # Order matters: the gateway router claims every remaining path
    app.include_router(admin_router)
    app.include_router(gateway_router)

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
        """Render gateway exceptions with their own status code."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; debug mode adds the
        exception message.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "exception_type": type(exc).__name__,
                "traceback": traceback.format_exc(),
            },
        )
        content: dict[str, Any] = {
            "error": "Internal Server Error",
            "message": str(exc) if settings.debug else "Internal server error",
            "status": 500,
            "request_id": request_id,
        }
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()

"""
MR-ROBOT Computer Repair - API Entrypoint

Database Connection Management:
- The dual-store mediator is created and initialized at startup
- Startup fails if neither store is reachable
- Both pools are closed at shutdown

Error Handling & Safe Responses:
- No stack traces or store identities to clients
- Structured JSON errors with request_id
- Aggregate store failures map to 503

Operational Endpoints:
- GET /healthz
- GET /api/health
- GET /api/v1/admin/database/status
"""

import os
from contextlib import asynccontextmanager
from typing import Callable

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import structlog

from mrrobot import __version__
from mrrobot.api.dependencies import build_mediator, generate_request_id
from mrrobot.api.v1 import admin, health
from mrrobot.config import get_config
from mrrobot.logging_config import configure_logging
from mrrobot.storage import AggregateStoreFailure, DualStoreMediator, MediatorError

load_dotenv()

# Configure structured logging
configure_logging()

logger = structlog.get_logger()


def create_app(mediator_factory: Callable[[], DualStoreMediator] = build_mediator) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        mediator_factory: Returns an uninitialized mediator; the lifespan
            initializes it and shuts it down
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
        - Build and initialize the dual-store mediator

        Shutdown:
        - Close both store pools
        """
        logger.info("app.startup", version=__version__)

        mediator = mediator_factory()
        try:
            mediator.initialize()
        except MediatorError as e:
            logger.error("app.startup.failed", error=str(e))
            mediator.shutdown()
            raise RuntimeError(f"No usable database store: {e}") from e

        app.state.mediator = mediator
        logger.info(
            "app.ready",
            stores=[identity.key for identity in mediator.available_stores()]
        )

        yield

        logger.info("app.shutdown")
        mediator.shutdown()
        app.state.mediator = None

    app = FastAPI(
        title="MR-ROBOT Computer Repair API",
        description="Data layer for bookings, contact and knowledge base",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # Middleware: Request ID
    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next):
        """Add request_id to request state for tracing."""
        request_id = generate_request_id()
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

    # Middleware: CORS (restrictive by default)
    cors_origins = [origin for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin]
    if not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(AggregateStoreFailure)
    async def store_failure_handler(request: Request, exc: AggregateStoreFailure):
        """
        No store produced a result.

        Store identities and driver messages stay in the logs.
        """
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "database.unavailable",
            error=str(exc),
            request_id=request_id,
            path=request.url.path,
            method=request.method
        )

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": {
                    "code": "service_unavailable",
                    "message": "Service temporarily unavailable. Please try again later.",
                    "request_id": request_id
                }
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        No stack traces to clients.
        """
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
            method=request.method
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "internal_error",
                    "message": "Something went wrong. Please try again later.",
                    "request_id": request_id
                }
            }
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(admin.router, tags=["admin"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "MR-ROBOT Computer Repair API",
            "docs": "/docs",
            "health": "/healthz"
        }

    return app


def reload_enabled() -> bool:
    """Auto-reload only in development (NODE_ENV or ENV)."""
    return get_config().environment == "development"


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mrrobot.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5000")),
        reload=reload_enabled(),
        log_level="info"
    )

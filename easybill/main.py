# ==== EASYBILL MAIN APPLICATION MODULE ==== #

"""
Main FastAPI application for EasyBill.

This module assembles the multi-tenant retail API: middleware chain, health
and info endpoints, versioned routers and the uniform error body.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from easybill import __version__
from easybill.errors import BusinessError, ErrorCodes, http_status_for
from easybill.middleware.correlation import CorrelationMiddleware
from easybill.middleware.rate_limit import RateLimitMiddleware
from easybill.middleware.tenancy import TenancyMiddleware
from easybill.observability.logging import get_logger, init_logging
from easybill.observability.metrics import init_metrics, metrics_router
from easybill.observability.tracing import init_tracing
from easybill.routes import (
    auth, customers, inventory, invoices, metadata, notifications, offers, reports,
    suppliers, tenants, users
)
from easybill.settings import settings
from easybill.storage.db import close_database, get_session, init_database
from easybill.storage.redis import close_redis_client, get_redis_client


logger = get_logger(__name__)

API_PREFIX = "/api/v1"


# ==== APPLICATION LIFECYCLE MANAGEMENT ==== #


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown operations.

    Args:
        app (FastAPI): FastAPI application instance

    Yields:
        None: Control back to FastAPI during application runtime
    """
    # --► STARTUP SEQUENCE
    init_logging(settings.LOG_LEVEL, settings.LOG_TO_FILES)
    init_tracing(settings.SERVICE_NAME)
    init_database()
    logger.info("EasyBill started", environment=settings.APP_ENV)

    yield

    # --► SHUTDOWN SEQUENCE
    await close_database()
    await close_redis_client()


# ==== APPLICATION FACTORY ==== #


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Middleware is added innermost first, so requests pass through CORS,
    then correlation, then tenancy, then rate limiting before reaching a
    route. Tenancy rejections therefore carry the correlation id and CORS
    headers.

    Returns:
        FastAPI: Fully configured FastAPI application instance
    """
    app = FastAPI(
        title="EasyBill",
        description="Multi-tenant billing, inventory and supplier management",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if settings.APP_ENV == "dev" else None
    )

    # --► OBSERVABILITY INITIALIZATION
    init_metrics(app)

    # --► MIDDLEWARE STACK CONFIGURATION
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(TenancyMiddleware, require_tenant=settings.TENANT_REQUIRED)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # --► ENDPOINTS
    _register_health_endpoints(app)
    _register_info_endpoint(app)
    _register_routers(app)

    # --► EXCEPTION HANDLERS
    _register_exception_handlers(app)

    # --► OPENTELEMETRY INSTRUMENTATION
    FastAPIInstrumentor.instrument_app(app)

    return app


# ==== ENDPOINT REGISTRATION HELPERS ==== #


def _cors_preflight() -> JSONResponse:
    response = JSONResponse(content={})
    response.headers["access-control-allow-origin"] = "*"
    response.headers["access-control-allow-methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    response.headers["access-control-allow-headers"] = "*"
    return response


def _register_health_endpoints(app: FastAPI) -> None:
    """
    Register liveness and readiness endpoints.

    Args:
        app (FastAPI): FastAPI application instance
    """
    @app.get("/healthz", tags=["health"])
    async def health_check() -> dict:
        return {
            "status": "ok",
            "service": settings.SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.options("/healthz", tags=["health"])
    async def health_check_options() -> JSONResponse:
        return _cors_preflight()

    @app.get("/readyz", tags=["health"])
    async def readiness_check() -> dict:
        return {
            "status": "ready",
            "service": settings.SERVICE_NAME,
            "environment": settings.APP_ENV
        }

    @app.options("/readyz", tags=["health"])
    async def readiness_check_options() -> JSONResponse:
        return _cors_preflight()


def _register_info_endpoint(app: FastAPI) -> None:
    """
    Register application information endpoint with dependency checks.

    Args:
        app (FastAPI): FastAPI application instance
    """
    @app.get("/info", tags=["info"])
    async def app_info() -> dict:
        """
        Report service metadata and database / Redis connectivity.

        Returns:
            dict: Application metadata and dependency status
        """
        # --► DATABASE STATUS CHECK
        try:
            async with get_session() as db:
                await db.execute(text("SELECT 1"))
            database_status = "connected"
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database status check failed", error=str(e))
            database_status = "disconnected"

        # --► REDIS STATUS CHECK
        try:
            await get_redis_client().ping()
            redis_status = "connected"
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis status check failed", error=str(e))
            redis_status = "disconnected"

        return {
            "service": settings.SERVICE_NAME,
            "version": __version__,
            "environment": settings.APP_ENV,
            "database_status": database_status,
            "redis_status": redis_status,
            "rate_limit": "enabled" if settings.RATE_LIMIT_ENABLED else "disabled",
        }


def _register_routers(app: FastAPI) -> None:
    """
    Register all application routers with their prefixes and tags.

    Args:
        app (FastAPI): FastAPI application instance
    """
    app.include_router(metrics_router, prefix="", tags=["monitoring"])
    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["users"])
    app.include_router(tenants.router, prefix=f"{API_PREFIX}/tenants", tags=["tenants"])
    app.include_router(invoices.router, prefix=f"{API_PREFIX}/invoices", tags=["invoices"])
    app.include_router(inventory.router, prefix=API_PREFIX, tags=["inventory"])
    app.include_router(suppliers.router, prefix=f"{API_PREFIX}/suppliers", tags=["suppliers"])
    app.include_router(customers.router, prefix=f"{API_PREFIX}/customers", tags=["customers"])
    app.include_router(offers.router, prefix=f"{API_PREFIX}/offers", tags=["offers"])
    app.include_router(reports.router, prefix=f"{API_PREFIX}/reports", tags=["reports"])
    app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["notifications"])
    app.include_router(metadata.router, prefix=f"{API_PREFIX}/metadata", tags=["metadata"])


# ==== EXCEPTION HANDLERS ==== #


def _error_body(request: Request, error: str, message: str, code: str) -> dict:
    return {
        "error": error,
        "message": message,
        "code": code,
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
    }


def _register_exception_handlers(app: FastAPI) -> None:
    """
    Register handlers rendering every failure in the uniform error body.

    Args:
        app (FastAPI): FastAPI application instance
    """
    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
        status_code = http_status_for(exc)
        body = _error_body(request, type(exc).__name__, exc.formatted_message, exc.error_code)
        field_errors = getattr(exc, "field_errors", None)
        if field_errors:
            body["field_errors"] = field_errors

        if status_code >= 500:
            logger.error("Business error", code=exc.error_code, path=request.url.path)
        else:
            logger.info(
                "Request rejected",
                code=exc.error_code,
                status=status_code,
                path=request.url.path,
            )
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        field_errors = {}
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            field_errors[location or "request"] = error.get("msg", "Invalid value")

        body = _error_body(request, "ValidationError", "Request validation failed", ErrorCodes.VALIDATION_ERROR)
        body["field_errors"] = field_errors
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            body = _error_body(
                request, "Not found", "The requested resource was not found", ErrorCodes.RESOURCE_NOT_FOUND
            )
        elif exc.status_code == 405:
            body = _error_body(request, "Method not allowed", "Method not allowed", ErrorCodes.INVALID_REQUEST)
        else:
            body = _error_body(request, "HTTPError", str(exc.detail), ErrorCodes.INVALID_REQUEST)
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "Internal server error",
                "An unexpected error occurred",
                ErrorCodes.INTERNAL_SERVER_ERROR,
            ),
        )


# ==== APPLICATION INSTANCE ==== #


app = create_app()

"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application(), optionally with a Database
     supplied by the caller (tests pass a SQLite one).
  2. lifespan context manager runs on startup / shutdown.
  3. Middleware and routers are registered; every router lives under /api.
  4. Exception handlers turn service errors into JSON responses.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bizdesk.api.routes import (
    ai,
    analytics,
    announcements,
    auth,
    backup,
    company,
    customers,
    documents,
    expenses,
    invoices,
    notifications,
    platform_settings,
    products,
    reports,
    returns,
    sales,
    superadmin,
    support_tickets,
    users,
)
from bizdesk.core.config import settings
from bizdesk.core.exceptions import ServiceError
from bizdesk.core.logging import configure_logging, get_logger
from bizdesk.db.base import utcnow
from bizdesk.db.session import Database
from bizdesk.middleware.input_guard import InputGuardMiddleware
from bizdesk.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from bizdesk.middleware.request_id import RequestIDMiddleware
from bizdesk.middleware.response_headers import ResponseHeadersMiddleware

logger = get_logger(__name__)

API_PREFIX = "/api"

ROUTERS = (
    superadmin.router,
    announcements.router,
    support_tickets.router,
    platform_settings.router,
    auth.router,
    company.router,
    products.router,
    customers.router,
    sales.router,
    invoices.router,
    expenses.router,
    documents.router,
    returns.router,
    users.router,
    reports.router,
    ai.router,
    notifications.router,
    backup.router,
    analytics.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging

    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
    )
    yield
    logger.info("Shutting down, disposing DB engine")
    await app.state.database.dispose()


def _validation_detail(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{'.'.join(location)}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


def create_application(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant business management backend: inventory, sales, "
            "invoicing, expenses, CRM and a super-admin console."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.database = database or Database.from_settings()
    app.state.limiter = FixedWindowRateLimiter.from_settings()

    # ── Middleware (last added runs first) ────────────────────────────────────
    app.add_middleware(InputGuardMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(ResponseHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID", "Retry-After"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    for router in ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Service error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        detail = _validation_detail(exc)
        logger.info("Request validation failed", path=request.url.path, detail=detail)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": detail},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        content = {"detail": "Internal server error"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )

    # ── Health Checks ─────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "healthy", "app": settings.APP_NAME, "timestamp": utcnow().isoformat()}

    @app.get(f"{API_PREFIX}/wake", tags=["Health"], summary="Wake an idle instance")
    async def wake() -> dict:
        return {"status": "awake", "message": "Server is ready", "timestamp": utcnow().isoformat()}

    @app.post(f"{API_PREFIX}/ping", tags=["Health"], summary="Keep-alive ping")
    async def ping() -> dict:
        return {"status": "pong", "serverTime": utcnow().isoformat()}

    return app


app = create_application()

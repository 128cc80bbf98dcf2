"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from workhub.api import router as api_router
from workhub.config import get_settings
from workhub.db.session import close_db, init_db
from workhub.exceptions import AuthenticationError, WorkhubError
from workhub.logging_config import configure_logging
from workhub.middleware.logging import LoggingMiddleware
from workhub.middleware.request_id import RequestIDMiddleware

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info("starting_api", app=settings.app_name, version=settings.app_version)
    await init_db()
    logger.info("database_connection_initialized")

    yield

    # Shutdown
    logger.info("shutting_down_api")
    await close_db()
    logger.info("database_connection_closed")


async def workhub_error_handler(request: Request, exc: WorkhubError) -> ORJSONResponse:
    """Translate a domain error into ``{"detail", "code"}`` with its status code."""
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("domain_error", code=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", code=exc.code, status=exc.status_code)
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Client, project and task management with per-resource permissions",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_exception_handler(WorkhubError, workhub_error_handler)

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from nginx
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()

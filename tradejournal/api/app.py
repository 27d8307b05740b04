"""FastAPI Application Factory.

Creates and configures the trade journal API with its full middleware
stack: security headers, request tracing, error handling, and CORS.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tradejournal.api.config import APIConfig, DEFAULT_API_CONFIG
from tradejournal.api.dependencies import get_db
from tradejournal.api.models import HealthResponse
from tradejournal.api.routes import calendars, sharing, tags, trades
from tradejournal.api_errors import ErrorHandlingMiddleware, register_exception_handlers
from tradejournal.db.engine import init_db
from tradejournal.logging_config import configure_logging
from tradejournal.logging_config.middleware import RequestTracingMiddleware

logger = logging.getLogger(__name__)


# ── Security Headers Middleware ───────────────────────────────────────


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if os.environ.get("TJ_ENABLE_HSTS", "").lower() == "true":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


# ── Lifespan (startup / shutdown) ────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging and the schema at startup."""
    configure_logging()
    if app.state.create_tables:
        init_db()
    logger.info("Trade journal API starting up")
    yield
    logger.info("Trade journal API shutting down")


# ── App Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[APIConfig] = None, create_tables: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware stack (outermost → innermost):
        SecurityHeaders → RequestTracing → ErrorHandling → CORS → App

    Args:
        config: API configuration. Uses defaults if not provided.
        create_tables: Create missing tables at startup.

    Returns:
        Configured FastAPI application.
    """
    config = config or DEFAULT_API_CONFIG

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
        docs_url=config.docs_url,
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.create_tables = create_tables

    # add_middleware prepends, so order here is innermost-first.
    cors_origins = os.environ.get("TJ_CORS_ORIGINS", "").split(",")
    cors_origins = [o.strip() for o in cors_origins if o.strip()] or config.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestTracingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # ── Health check ─────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    def health(db: Session = Depends(get_db)):
        components = {}
        try:
            db.execute(text("SELECT 1"))
            components["database"] = "ok"
        except SQLAlchemyError as e:
            components["database"] = f"error: {e}"

        overall = "ok" if all(v == "ok" for v in components.values()) else "degraded"
        return {
            "status": overall,
            "version": config.version,
            "components": components,
        }

    # ── Route modules ────────────────────────────────────────────

    app.include_router(calendars.router, prefix=config.prefix)
    app.include_router(trades.router, prefix=config.prefix)
    app.include_router(tags.router, prefix=config.prefix)
    app.include_router(sharing.router, prefix=config.prefix)

    logger.info("Trade journal API v%s initialized", config.version)
    return app

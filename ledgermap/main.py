"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
import logging
import os
import traceback

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from ledgermap import __version__
from ledgermap.api.routes import mapping, taxonomy
from ledgermap.config import get_settings
from ledgermap.database import SessionLocal, init_db
from ledgermap.exceptions import LedgerMapError
from ledgermap.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
)
from ledgermap.services.taxonomy_service import get_taxonomy_service

# Initialize Sentry for error tracking (must be done early)
sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("APP_VERSION", __version__),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=None, event_level="ERROR"),
        ],
        send_default_pii=False,
    )

settings = get_settings()

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        add_correlation_id_processor,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="LedgerMap API",
    description="""
## Ledger-to-Taxonomy Mapping API

Maps free-text ledger account names from trial balances to standardized
financial-statement line items.

- **Suggestions**: ranked taxonomy candidates for every unmapped ledger name
- **Apply**: accept one mapping, or bulk-accept everything above a confidence threshold
- **Statistics**: mapping completion per period, for the latest period, or overall
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Mapping", "description": "Suggestions, mappings and statistics"},
        {"name": "Taxonomy", "description": "Standard reporting line items"},
        {"name": "Health", "description": "Health checks"},
    ],
)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(mapping.router, prefix="/api/v1", tags=["Mapping"])
app.include_router(taxonomy.router, prefix="/api/v1", tags=["Taxonomy"])


@app.exception_handler(LedgerMapError)
async def ledgermap_exception_handler(request: Request, exc: LedgerMapError):
    """Handle all LedgerMap custom exceptions."""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        "ledgermap_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    sentry_sdk.capture_exception(exc)

    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "LMP-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Initialize application on startup."""
    logger.info("Starting LedgerMap API", debug=settings.debug)

    if not sentry_dsn:
        logger.warning("Sentry error tracking not configured (SENTRY_DSN not set)")

    init_db()

    if settings.seed_taxonomy_on_startup:
        db = SessionLocal()
        try:
            get_taxonomy_service().sync(db)
        finally:
            db.close()

    logger.info("LedgerMap API started successfully")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Cleanup on application shutdown."""
    logger.info("Shutting down LedgerMap API")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("ledgermap.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

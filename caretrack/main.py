"""FastAPI application entry point."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from caretrack.core.config import settings
from caretrack.core.deps import get_db
from caretrack.core.exceptions import CareTrackError
from caretrack.core.structured_logging import build_log_context, configure_logging

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Health data must never leave the API
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from caretrack.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="CareTrack API",
    description="Patient check-ins, caretaker access and health insights",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(CareTrackError)
async def caretrack_error_handler(request: Request, exc: CareTrackError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.warning(
            "%s: %s",
            exc.code,
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Routers
# ============================================================================

from caretrack.routers import (
    assignments,
    checkins,
    dashboard,
    insights,
    invites,
    metrics,
    permissions,
    reports,
)

app.include_router(invites.router)
app.include_router(assignments.router)
app.include_router(permissions.router)
app.include_router(checkins.router)
app.include_router(metrics.router)
app.include_router(insights.router)
app.include_router(reports.router)
app.include_router(dashboard.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
@app.get("/healthz")
def health(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    db.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}

"""
FirmOS Governance API Entry Point.

This module initializes the FastAPI application with:
- CORS middleware
- Lifespan context management (service container)
- Exception handlers for contract violations and conflicts
- Router mounting
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.core_api.deps import build_services, settings
from apps.core_api.routers import (
    actions,
    autonomy,
    guardian,
    health,
    incidents,
    metrics,
    permissions,
    releases,
    validations,
)
from firmos_obs.logging import get_logger, setup_logging
from firmos_obs.tracing import setup_tracing
from firmos_policies.exceptions import PolicyInputError, ReleaseConflictError

# Setup logging
setup_logging(settings)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Builds the service container (catalog, stores, engines) on startup.
    State is in memory only; nothing to close on shutdown.
    """
    logger.info("api_starting", environment=settings.ENVIRONMENT)
    app.state.services = build_services(settings)

    yield

    logger.info("api_stopped")


# Initialize FastAPI application
app = FastAPI(
    title="FirmOS Governance API",
    description="Autonomy, Guardian and release decision engine",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Tracing (opt-in via OTEL_TRACES_ENABLED)
setup_tracing(app, settings)

# ============================================================================
# MIDDLEWARE
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.API_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================


@app.exception_handler(PolicyInputError)
async def policy_input_error_handler(request: Request, exc: PolicyInputError):
    """Malformed governance input is a client error."""
    logger.warning("policy_input_rejected", path=request.url.path, model=exc.model)
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid_input",
            "message": str(exc),
            "model": exc.model,
            "errors": jsonable_encoder(exc.errors),
        },
    )


@app.exception_handler(ReleaseConflictError)
async def release_conflict_handler(request: Request, exc: ReleaseConflictError):
    return JSONResponse(status_code=409, content={"error": "conflict", "message": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unhandled exceptions: log with traceback, never leak internals."""
    logger.exception("unhandled_exception", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please contact support.",
        },
    )


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(autonomy.router, prefix="/autonomy", tags=["autonomy"])
app.include_router(guardian.router, prefix="/guardian", tags=["guardian"])
app.include_router(validations.router, prefix="/validations", tags=["validations"])
app.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
app.include_router(incidents.router, prefix="/incidents", tags=["incidents"])
app.include_router(releases.router, prefix="/releases", tags=["releases"])
app.include_router(actions.router, prefix="/actions", tags=["actions"])

# Health and metrics
app.include_router(health.router, prefix="", tags=["health"])
app.include_router(metrics.router, prefix="", tags=["metrics"])


# ============================================================================
# ROOT ENDPOINT
# ============================================================================


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint - API information.

    Returns:
        API metadata and available endpoints
    """
    return {
        "name": "FirmOS Governance API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz",
        "metrics": "/metrics",
        "endpoints": {
            "autonomy": "POST /autonomy/evaluate",
            "guardian": "POST /guardian/run",
            "validations": "POST /validations",
            "permissions": "POST /permissions/check",
            "incidents": "GET /incidents",
            "releases": "POST /releases",
            "actions": "POST /actions/review",
        },
    }


# ============================================================================
# DEVELOPMENT HELPERS
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "apps.core_api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
        log_level="info",
    )

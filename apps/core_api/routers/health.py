"""
Health Check Endpoints.

- GET /healthz: Liveness probe (API running)
- GET /readyz: Readiness probe (service container built)
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """
    Liveness probe - is the API process running?

    Returns 200 OK if server is alive.
    """
    return {"status": "healthy", "service": "firmos-governance-api"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness probe - is the API ready to serve traffic?

    Returns:
        200 OK once the catalog is loaded and the stores are wired
        503 Service Unavailable before that
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        return JSONResponse(
            status_code=503, content={"status": "unavailable", "checks": {"services": "missing"}}
        )

    return {
        "status": "ready",
        "checks": {
            "catalog": "ok",
            "packs": len(services.catalog.pack_jurisdictions),
            "blocking_incidents": services.incident_log.has_blocking_incidents(),
        },
    }

"""
Prometheus Metrics Endpoint.

Exposes /metrics for Prometheus scraping.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes the governance counters from firmos_obs.metrics:
    - firmos_autonomy_tier_total{tier}
    - firmos_guardian_reports_total{passed}
    - firmos_release_transitions_total{status,outcome}
    - firmos_incidents_total{type,severity}
    - firmos_permission_denials_total{tool_name}

    Returns:
        Prometheus text format metrics
    """
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)

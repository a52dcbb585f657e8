"""
FastAPI Routers.

Contains:
- autonomy: POST /autonomy/evaluate
- guardian: POST /guardian/run, /guardian/run/{agent_id}
- validations: POST /validations
- permissions: POST /permissions/check, GET /permissions/packs/{agent_id}/{pack_id}
- incidents: /incidents
- releases: /releases
- actions: POST /actions/review
- health: GET /healthz, /readyz
- metrics: GET /metrics
"""

__all__ = [
    "actions",
    "autonomy",
    "guardian",
    "health",
    "incidents",
    "metrics",
    "permissions",
    "releases",
    "validations",
]

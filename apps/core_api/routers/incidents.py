"""
/incidents Router - Incident Log.

- GET /incidents: List with filters
- POST /incidents: Log an incident
- GET /incidents/blocking: Release circuit-breaker state
- GET /incidents/counts: Totals by type and severity
- GET /incidents/{id}: Single incident
- POST /incidents/{id}/resolve: Resolve an incident
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from apps.core_api.deps import Services, get_services
from firmos_policies.incident_log import Incident, IncidentCounts, IncidentSeverity, IncidentType

router = APIRouter()


class IncidentCreate(BaseModel):
    type: IncidentType
    description: str
    agent_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    workstream_id: str | None = None
    pack_id: str | None = None
    severity: IncidentSeverity | None = Field(
        None, description="Override the type's default severity"
    )


class IncidentResolve(BaseModel):
    resolution: str = Field(..., min_length=1)
    actor: str = "operator"


class BlockingStatus(BaseModel):
    blocking: bool
    incidents: list[Incident]


@router.get("", response_model=list[Incident])
def list_incidents(
    type: IncidentType | None = None,
    severity: IncidentSeverity | None = None,
    resolved: bool | None = None,
    agent_id: str | None = None,
    workstream_id: str | None = None,
    services: Services = Depends(get_services),
) -> list[Incident]:
    return services.incident_log.list(
        type=type,
        severity=severity,
        resolved=resolved,
        agent_id=agent_id,
        workstream_id=workstream_id,
    )


@router.post("", response_model=Incident, status_code=status.HTTP_201_CREATED)
def log_incident(body: IncidentCreate, services: Services = Depends(get_services)) -> Incident:
    return services.incident_log.log(
        body.type,
        body.description,
        body.agent_id,
        details=body.details,
        workstream_id=body.workstream_id,
        pack_id=body.pack_id,
        severity_override=body.severity,
    )


@router.get("/blocking", response_model=BlockingStatus)
def blocking(services: Services = Depends(get_services)) -> BlockingStatus:
    """Unresolved CRITICAL incidents block every release execution."""
    log = services.incident_log
    return BlockingStatus(
        blocking=log.has_blocking_incidents(),
        incidents=log.list(severity=IncidentSeverity.CRITICAL, resolved=False),
    )


@router.get("/counts", response_model=IncidentCounts)
def counts(services: Services = Depends(get_services)) -> IncidentCounts:
    return services.incident_log.counts()


@router.get("/{incident_id}", response_model=Incident)
def get_incident(incident_id: str, services: Services = Depends(get_services)) -> Incident:
    incident = services.incident_log.get(incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail=f"Incident {incident_id} not found")
    return incident


@router.post("/{incident_id}/resolve", response_model=Incident)
def resolve_incident(
    incident_id: str, body: IncidentResolve, services: Services = Depends(get_services)
) -> Incident:
    incident = services.incident_log.resolve(incident_id, body.resolution, actor=body.actor)
    if incident is None:
        raise HTTPException(status_code=404, detail=f"Incident {incident_id} not found")
    return incident

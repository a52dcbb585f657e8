"""
/releases Router - Release Workflow.

- POST /releases: Register a release request (pending)
- GET /releases/pending: Releases awaiting QC or authorization
- GET /releases/{id}: Workflow with its decision history
- POST /releases/{id}/qc: Run the QC gate
- POST /releases/{id}/authorize | deny | execute | rollback
- GET /releases/{id}/pack-access: Requester pack eligibility

Refused transitions return 200 with the unchanged workflow; the caller
compares `current_status`.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from apps.core_api.deps import Services, get_services
from firmos_policies.release_workflow import ReleaseRequest, ReleaseWorkflow

router = APIRouter()


class AuthorizeBody(BaseModel):
    conditions: list[str] = Field(default_factory=list)
    decided_by: str | None = None


class DenyBody(BaseModel):
    reason: str = Field(..., min_length=1)
    decided_by: str | None = None


class ExecuteBody(BaseModel):
    notes: str | None = None
    decided_by: str | None = None


class RollbackBody(BaseModel):
    reason: str = Field(..., min_length=1)
    decided_by: str | None = None


class PackAccessResult(BaseModel):
    release_id: str
    allowed: bool


def _found(release_id: str, workflow: ReleaseWorkflow | None) -> ReleaseWorkflow:
    if workflow is None:
        raise HTTPException(status_code=404, detail=f"Release {release_id} not found")
    return workflow


@router.post("", response_model=ReleaseWorkflow, status_code=status.HTTP_201_CREATED)
def create_release(
    request: ReleaseRequest, services: Services = Depends(get_services)
) -> ReleaseWorkflow:
    return services.releases.create(request)


@router.get("/pending", response_model=list[ReleaseWorkflow])
def pending_releases(services: Services = Depends(get_services)) -> list[ReleaseWorkflow]:
    return services.releases.list_pending()


@router.get("/{release_id}", response_model=ReleaseWorkflow)
def get_release(release_id: str, services: Services = Depends(get_services)) -> ReleaseWorkflow:
    return _found(release_id, services.releases.get(release_id))


@router.post("/{release_id}/qc", response_model=ReleaseWorkflow)
def run_qc(release_id: str, services: Services = Depends(get_services)) -> ReleaseWorkflow:
    return _found(release_id, services.releases.run_qc(release_id))


@router.post("/{release_id}/authorize", response_model=ReleaseWorkflow)
def authorize(
    release_id: str, body: AuthorizeBody, services: Services = Depends(get_services)
) -> ReleaseWorkflow:
    workflow = services.releases.authorize(release_id, body.conditions, decided_by=body.decided_by)
    return _found(release_id, workflow)


@router.post("/{release_id}/deny", response_model=ReleaseWorkflow)
def deny(
    release_id: str, body: DenyBody, services: Services = Depends(get_services)
) -> ReleaseWorkflow:
    workflow = services.releases.deny(release_id, body.reason, decided_by=body.decided_by)
    return _found(release_id, workflow)


@router.post("/{release_id}/execute", response_model=ReleaseWorkflow)
def execute(
    release_id: str, body: ExecuteBody, services: Services = Depends(get_services)
) -> ReleaseWorkflow:
    workflow = services.releases.execute(release_id, body.notes, decided_by=body.decided_by)
    return _found(release_id, workflow)


@router.post("/{release_id}/rollback", response_model=ReleaseWorkflow)
def rollback(
    release_id: str, body: RollbackBody, services: Services = Depends(get_services)
) -> ReleaseWorkflow:
    workflow = services.releases.rollback(release_id, body.reason, decided_by=body.decided_by)
    return _found(release_id, workflow)


@router.get("/{release_id}/pack-access", response_model=PackAccessResult)
def pack_access(release_id: str, services: Services = Depends(get_services)) -> PackAccessResult:
    _found(release_id, services.releases.get(release_id))
    return PackAccessResult(
        release_id=release_id, allowed=services.releases.validate_pack_access(release_id)
    )

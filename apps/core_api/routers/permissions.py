"""
/permissions Router - Tool Permissions & Pack Access.

- POST /permissions/check: Gated tool check
- GET /permissions/packs/{agent_id}/{pack_id}: Pack eligibility
- GET /permissions/agents/{agent_id}: Domain, allowed packs and tools (domain list and tool groups)
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.core_api.deps import Services, get_services
from firmos_obs.metrics import permission_denials_total
from firmos_policies.permissions import PermissionCheckResult, ToolApprovalContext

router = APIRouter()


class PermissionCheckRequest(BaseModel):
    agent_id: str
    tool_name: str
    context: ToolApprovalContext | None = None


class PackAccessResponse(BaseModel):
    agent_id: str
    pack_id: str
    domain: str
    pack_jurisdiction: str | None
    allowed: bool


class AgentPermissionsResponse(BaseModel):
    agent_id: str
    domain: str
    packs: list[str]
    tools: list[str]


@router.post("/check", response_model=PermissionCheckResult)
def check(
    body: PermissionCheckRequest, services: Services = Depends(get_services)
) -> PermissionCheckResult:
    result = services.permissions.check_tool_permission(body.agent_id, body.tool_name, body.context)
    if not result.allowed:
        permission_denials_total.labels(tool_name=body.tool_name).inc()
    return result


@router.get("/packs/{agent_id}/{pack_id}", response_model=PackAccessResponse)
def pack_access(
    agent_id: str, pack_id: str, services: Services = Depends(get_services)
) -> PackAccessResponse:
    """Eligibility only; attempted use is reviewed through /actions/review."""
    gate = services.permissions
    return PackAccessResponse(
        agent_id=agent_id,
        pack_id=pack_id,
        domain=gate.get_agent_domain(agent_id),
        pack_jurisdiction=services.catalog.pack_jurisdiction(pack_id),
        allowed=gate.can_agent_use_pack(agent_id, pack_id),
    )


@router.get("/agents/{agent_id}", response_model=AgentPermissionsResponse)
def agent_permissions(
    agent_id: str, services: Services = Depends(get_services)
) -> AgentPermissionsResponse:
    gate = services.permissions
    domain = gate.get_agent_domain(agent_id)
    return AgentPermissionsResponse(
        agent_id=agent_id,
        domain=domain,
        packs=gate.allowed_packs(agent_id),
        tools=gate.allowed_tools(agent_id),
    )

"""Tool Permissions.

Permission rules for tool execution:
- Gated tools (release_action) need governor authorization AND a
  Guardian pass, checked in that order
- Guardian blockers can block any gated release
- Non-gated tools are always allowed by this check
- Domain agents (malta, rwanda) may only touch their jurisdiction's packs
- Each agent may only call tools from its assigned tool groups
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

from firmos_config.catalog import DEFAULT_CATALOG, GLOBAL_DOMAIN, Catalog
from firmos_policies.types import validate_input

RELEASE_GATED_GROUP = "RELEASE_GATED"


class ToolApprovalContext(BaseModel):
    """Sign-offs collected for a gated tool call."""

    model_config = ConfigDict(frozen=True)

    marco_approved: bool = False  # policy governor sign-off
    diane_pass: bool = False  # quality guardian sign-off


class ApprovalRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_agent: str
    type: Literal["authorize", "guardian_pass"]


class PermissionCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    requires_approval: ApprovalRequirement | None = None


class ToolPermissionGate:
    """Static tool and pack eligibility for agents."""

    def __init__(self, catalog: Catalog = DEFAULT_CATALOG):
        self.catalog = catalog

    # ------------------------------------------------------------------------
    # GATED TOOLS
    # ------------------------------------------------------------------------

    def is_gated(self, tool_name: str) -> bool:
        return tool_name in self.catalog.gated_tool_authorizers

    def check_tool_permission(
        self,
        agent_id: str,
        tool_name: str,
        context: ToolApprovalContext | dict | None = None,
    ) -> PermissionCheckResult:
        """
        Check if an agent can execute a tool.

        Args:
            agent_id: Calling agent
            tool_name: Tool being invoked
            context: Collected sign-offs (only consulted for gated tools)

        Returns:
            PermissionCheckResult: allowed flag, reason and the missing sign-off
        """
        approvals = validate_input(ToolApprovalContext, context or {})
        authorizers = self.catalog.gated_tool_authorizers.get(tool_name)

        if authorizers:
            if not approvals.marco_approved:
                authorizer = authorizers[0]
                return PermissionCheckResult(
                    allowed=False,
                    reason=f"Tool '{tool_name}' requires authorization from {authorizer}",
                    requires_approval=ApprovalRequirement(from_agent=authorizer, type="authorize"),
                )

            if not approvals.diane_pass:
                guardian = self.catalog.quality_guardian
                return PermissionCheckResult(
                    allowed=False,
                    reason=f"Tool '{tool_name}' requires Guardian pass from {guardian}",
                    requires_approval=ApprovalRequirement(from_agent=guardian, type="guardian_pass"),
                )

        return PermissionCheckResult(allowed=True)

    def can_authorize_gated_tool(self, agent_id: str, tool_name: str) -> bool:
        authorizers = self.catalog.gated_tool_authorizers.get(tool_name, ())
        return self.catalog.normalize_agent_id(agent_id) in authorizers

    def can_block_gated_tool(self, agent_id: str) -> bool:
        return self.catalog.normalize_agent_id(agent_id) in self.catalog.gated_tool_blockers

    # ------------------------------------------------------------------------
    # AGENT TOOL GROUPS
    # ------------------------------------------------------------------------

    def is_release_gated_tool(self, tool_name: str) -> bool:
        return self.catalog.tool_group(tool_name) == RELEASE_GATED_GROUP

    def can_agent_access_tool(self, agent_id: str, tool_name: str) -> bool:
        """
        Per-agent tool group check.

        Agents without a group assignment and tools outside every group
        are denied. A catalog that declares no groups allows every tool.
        """
        if not self.catalog.tool_groups:
            return True
        group = self.catalog.tool_group(tool_name)
        return group is not None and group in self.catalog.tool_groups_for_agent(agent_id)

    def allowed_tools(self, agent_id: str) -> list[str]:
        """Tools permitted by both the agent's domain list and its tool groups."""
        domain_tools = self.catalog.tools_for_domain(self.get_agent_domain(agent_id))
        return [t for t in domain_tools if self.can_agent_access_tool(agent_id, t)]

    # ------------------------------------------------------------------------
    # DOMAINS & PACKS
    # ------------------------------------------------------------------------

    def get_agent_domain(self, agent_id: str) -> str:
        return self.catalog.agent_domain(agent_id)

    def is_tool_allowed_in_domain(self, agent_id: str, tool_name: str) -> bool:
        """Domain allow-list check; domains without a list allow nothing."""
        return tool_name in self.catalog.tools_for_domain(self.get_agent_domain(agent_id))

    def allowed_packs(self, agent_id: str) -> list[str]:
        domain = self.get_agent_domain(agent_id)
        if domain == GLOBAL_DOMAIN:
            return sorted(self.catalog.pack_jurisdictions)
        jurisdiction = self.catalog.domain_jurisdictions[domain]
        return sorted(p for p, j in self.catalog.pack_jurisdictions.items() if j == jurisdiction)

    def can_agent_use_pack(self, agent_id: str, pack_id: str) -> bool:
        """
        Strict jurisdiction separation.

        Global agents may use any pack; domain agents only packs of their
        own jurisdiction. A False result is pack leakage and the caller
        must log it as an incident.
        """
        domain = self.get_agent_domain(agent_id)
        if domain == GLOBAL_DOMAIN:
            return True

        pack_jurisdiction = self.catalog.pack_jurisdiction(pack_id)
        return pack_jurisdiction is not None and pack_jurisdiction == self.catalog.domain_jurisdictions[domain]

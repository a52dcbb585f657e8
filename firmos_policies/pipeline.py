"""Governance Pipeline.

Single entry point that reviews a proposed agent action end to end:

1. Domain tool allow-list, agent tool groups and pack access
2. Tool permission (gated tools need governor + Guardian sign-off)
3. Autonomy tier
4. Guardian battery (tiers B and C, when a workstream is supplied)

Security-relevant failures along the way are logged as incidents.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from firmos_config.catalog import DEFAULT_CATALOG, Catalog
from firmos_memory.audit import AuditRecord, AuditSink
from firmos_obs.logging import decision_context, get_logger
from firmos_obs.metrics import autonomy_tier_total, guardian_reports_total, permission_denials_total
from firmos_obs.tracing import get_tracer
from firmos_policies.autonomy import ActionContext, AutonomyDecision, AutonomyEvaluator, AutonomyTier
from firmos_policies.guardian import GuardianEngine, GuardianReport, WorkstreamContext
from firmos_policies.incident_log import Incident, IncidentLog, IncidentSeverity
from firmos_policies.permissions import PermissionCheckResult, ToolApprovalContext, ToolPermissionGate
from firmos_policies.types import validate_input

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class ActionReview(BaseModel):
    """Outcome of a full governance review."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    tool_name: str
    permitted: bool
    permission: PermissionCheckResult
    decision: AutonomyDecision
    guardian_report: GuardianReport | None = None
    incidents: list[Incident] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)
    proceed: bool


class GovernancePipeline:
    """Wires the evaluators together and reports incidents to the log."""

    def __init__(
        self,
        incident_log: IncidentLog,
        catalog: Catalog = DEFAULT_CATALOG,
        evaluator: AutonomyEvaluator | None = None,
        guardian: GuardianEngine | None = None,
        permissions: ToolPermissionGate | None = None,
        audit_sink: AuditSink | None = None,
        hash_mismatch_severity: IncidentSeverity | str = IncidentSeverity.HIGH,
    ):
        self.incident_log = incident_log
        self.catalog = catalog
        self.evaluator = evaluator or AutonomyEvaluator()
        self.guardian = guardian or GuardianEngine(catalog)
        self.permissions = permissions or ToolPermissionGate(catalog)
        self.audit_sink = audit_sink
        self.hash_mismatch_severity = hash_mismatch_severity

    def review_action(
        self,
        agent_id: str,
        tool_name: str,
        action: ActionContext | dict,
        workstream: WorkstreamContext | dict | None = None,
        pack_id: str | None = None,
        approvals: ToolApprovalContext | dict | None = None,
    ) -> ActionReview:
        """
        Review a proposed action.

        Args:
            agent_id: Acting agent
            tool_name: Tool the agent wants to invoke
            action: Autonomy context of the action
            workstream: Workstream snapshot for the Guardian, if any
            pack_id: Pack the action uses (defaults to the workstream's pack)
            approvals: Sign-offs collected for gated tools

        Returns:
            ActionReview: `proceed` is True only when the action is
            permitted, not escalated, and the Guardian passed (when run)

        Raises:
            PolicyInputError: If any input is malformed (nothing is logged)
        """
        action = validate_input(ActionContext, action)
        if workstream is not None:
            workstream = validate_input(WorkstreamContext, workstream)
        approvals = validate_input(ToolApprovalContext, approvals or {})

        agent = self.catalog.normalize_agent_id(agent_id)
        pack_id = pack_id or (workstream.pack_id if workstream is not None else None)
        workstream_id = workstream.workstream_id if workstream is not None else None

        incidents: list[Incident] = []
        reasons: list[str] = []

        # Domain restrictions
        if not self.permissions.is_tool_allowed_in_domain(agent, tool_name):
            domain = self.permissions.get_agent_domain(agent)
            reason = f"Tool '{tool_name}' is not allowed in domain {domain}"
            reasons.append(reason)
            incidents.append(
                self.incident_log.log_unauthorized_tool_access(agent, tool_name, reason, workstream_id)
            )
        elif not self.permissions.can_agent_access_tool(agent, tool_name):
            group = self.catalog.tool_group(tool_name) or "no group"
            reason = f"Agent {agent} has no access to tool '{tool_name}' ({group})"
            reasons.append(reason)
            incidents.append(
                self.incident_log.log_unauthorized_tool_access(agent, tool_name, reason, workstream_id)
            )

        if pack_id is not None and not self.permissions.can_agent_use_pack(agent, pack_id):
            domain = self.permissions.get_agent_domain(agent)
            target = self.catalog.domain_jurisdictions.get(domain, domain)
            reasons.append(f"Agent {agent} cannot use pack {pack_id}")
            incidents.append(
                self.incident_log.log_pack_leakage(agent, pack_id, target, workstream_id)
            )

        # Gated tools
        permission = self.permissions.check_tool_permission(agent, tool_name, approvals)
        if not permission.allowed:
            permission_denials_total.labels(tool_name=tool_name).inc()
            reasons.append(permission.reason)
            missing = permission.requires_approval.type if permission.requires_approval else "approval"
            incidents.append(
                self.incident_log.log_gate_bypass_attempt(
                    agent, "RELEASE", f"{tool_name} without {missing}", workstream_id
                )
            )

        permitted = not reasons

        decision = self.evaluator.evaluate(action)
        autonomy_tier_total.labels(tier=decision.tier.value).inc()
        if decision.requires_human:
            reasons.append(decision.reasoning)

        report: GuardianReport | None = None
        if decision.tier != AutonomyTier.AUTO and workstream is not None:
            with decision_context(agent_id=agent, workstream_id=workstream_id):
                with tracer.start_as_current_span("guardian_run") as span:
                    span.set_attribute("workstream.id", workstream_id)
                    report = self.guardian.run(workstream)
                    span.set_attribute("guardian.passed", report.passed)
            guardian_reports_total.labels(passed=str(report.passed).lower()).inc()
            if not report.passed:
                reasons.append(report.blocked_reason or "Guardian checks failed")
            incidents.extend(
                self.incident_log.log_guardian_failures(
                    report, agent, pack_id, self.hash_mismatch_severity
                )
            )

        proceed = permitted and not decision.requires_human and (report is None or report.passed)

        review = ActionReview(
            agent_id=agent,
            tool_name=tool_name,
            permitted=permitted,
            permission=permission,
            decision=decision,
            guardian_report=report,
            incidents=incidents,
            reasons=reasons,
            proceed=proceed,
        )

        logger.info(
            "action_reviewed",
            agent_id=agent,
            tool_name=tool_name,
            tier=decision.tier.value,
            permitted=permitted,
            proceed=proceed,
            workstream_id=workstream_id,
            incidents=len(incidents),
        )
        self._audit(review, workstream_id)
        return review

    def _audit(self, review: ActionReview, workstream_id: str | None) -> None:
        if self.audit_sink is None:
            return
        details: dict[str, Any] = {
            "tool_name": review.tool_name,
            "tier": review.decision.tier.value,
            "rules_applied": review.decision.rules_applied,
            "proceed": review.proceed,
            "reasons": review.reasons,
        }
        self.audit_sink.record(
            AuditRecord(
                action="action_reviewed",
                actor=review.agent_id,
                resource_type="workstream" if workstream_id else "tool",
                resource_id=workstream_id or review.tool_name,
                details=details,
            )
        )

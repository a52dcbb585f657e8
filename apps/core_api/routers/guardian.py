"""
/guardian Router - Guardian Checks.

- POST /guardian/run: Run the battery against a workstream snapshot
- POST /guardian/run/{agent_id}: Same, plus the agent's evidence minimum

Pack mismatches and hash mismatches found here are logged as incidents.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from apps.core_api.deps import Services, get_services
from firmos_obs.metrics import guardian_reports_total
from firmos_policies.evidence import EvidenceType
from firmos_policies.guardian import AgentGuardianReport, GuardianReport, WorkstreamContext

router = APIRouter()


class AgentGuardianRequest(BaseModel):
    workstream: WorkstreamContext
    linked_evidence: list[EvidenceType] = Field(
        default_factory=list, description="Evidence taxonomy categories linked so far"
    )


@router.post("/run", response_model=GuardianReport)
def run(ctx: WorkstreamContext, services: Services = Depends(get_services)) -> GuardianReport:
    report = services.guardian.run(ctx)
    guardian_reports_total.labels(passed=str(report.passed).lower()).inc()
    services.incident_log.log_guardian_failures(
        report,
        agent_id=services.catalog.quality_guardian,
        pack_id=ctx.pack_id,
        hash_mismatch_severity=services.settings.HASH_MISMATCH_SEVERITY,
    )
    return report


@router.post("/run/{agent_id}", response_model=AgentGuardianReport)
def run_for_agent(
    agent_id: str,
    body: AgentGuardianRequest,
    services: Services = Depends(get_services),
) -> AgentGuardianReport:
    """Guardian battery plus AGENT_EVIDENCE_MINIMUM for `agent_id`."""
    report = services.guardian.run_for_agent(body.workstream, agent_id, body.linked_evidence)
    guardian_reports_total.labels(passed=str(report.passed).lower()).inc()
    services.incident_log.log_guardian_failures(
        report,
        agent_id=agent_id,
        pack_id=body.workstream.pack_id,
        hash_mismatch_severity=services.settings.HASH_MISMATCH_SEVERITY,
    )
    return report

"""Release Workflow.

Dual-control release discipline. Every transition appends one decision;
the current status is always the status of the last decision.

    any -> qc_in_progress -> {qc_passed | qc_failed}
    qc_passed -> authorized -> executed -> rolled_back
    any -> denied

Re-running QC re-opens the dual-control chain: a release must be
authorized again after every QC pass. Decisions are recorded as made by
the policy governor or a human operator, never by the requesting agent;
the Guardian appears as the QC reviewer and as the source of a block.

Invalid transitions are refused: the workflow comes back unchanged and a
warning is logged. A decision attempted by the requesting agent, or by an
agent without the role, is refused and logged as a release bypass
attempt. Unresolved CRITICAL incidents block every execution.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, computed_field

from firmos_config.catalog import DEFAULT_CATALOG, Catalog
from firmos_memory.audit import AuditRecord, AuditSink
from firmos_memory.stores import ReleaseStore
from firmos_obs.logging import decision_context, get_logger
from firmos_obs.metrics import guardian_reports_total, release_transitions_total
from firmos_obs.tracing import get_tracer
from firmos_policies.exceptions import PolicyInputError, ReleaseConflictError
from firmos_policies.guardian import CheckResult, GuardianEngine, GuardianReport, WorkstreamContext
from firmos_policies.incident_log import IncidentLog
from firmos_policies.permissions import ToolPermissionGate
from firmos_policies.types import Jurisdiction, Severity, utcnow, validate_input

logger = get_logger(__name__)
tracer = get_tracer(__name__)

OPERATOR = "operator"


class ReleaseType(str, Enum):
    TEMPLATE_PUBLISH = "template_publish"
    SERVICE_UPDATE = "service_update"
    AGENT_CONFIG = "agent_config"
    PACK_RELEASE = "pack_release"
    EMERGENCY_FIX = "emergency_fix"


class ReleaseStatus(str, Enum):
    PENDING = "pending"
    QC_IN_PROGRESS = "qc_in_progress"
    QC_PASSED = "qc_passed"
    QC_FAILED = "qc_failed"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    EXECUTED = "executed"
    ROLLED_BACK = "rolled_back"


PENDING_STATUSES = (ReleaseStatus.PENDING, ReleaseStatus.QC_PASSED)


# ============================================================================
# MODELS
# ============================================================================


class QCGateResult(BaseModel):
    """Outcome of the release QC gate, embedded in the QC decision."""

    model_config = ConfigDict(frozen=True)

    gate_id: str
    gate_name: str
    status: Literal["passed", "failed"]
    checks: list[CheckResult]
    timestamp: datetime = Field(default_factory=utcnow)
    reviewed_by: str
    guardian_report: GuardianReport | None = None
    notes: str | None = None

    @property
    def failed_checks(self) -> list[CheckResult]:
        return [c for c in self.checks if not c.passed]


class ReleaseRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    release_id: str = Field(min_length=1)
    type: ReleaseType
    pack_id: str = Field(min_length=1)
    requester_agent: str = Field(min_length=1)
    description: str
    artifact_refs: list[str] = Field(default_factory=list)
    evidence_refs: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    jurisdiction: Jurisdiction | None = None


class ReleaseDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    release_id: str
    status: ReleaseStatus
    decided_by: str
    decided_at: datetime = Field(default_factory=utcnow)
    qc_result: QCGateResult | None = None
    conditions: list[str] = Field(default_factory=list)
    denial_reason: str | None = None
    execution_notes: str | None = None


class ReleaseWorkflow(BaseModel):
    request: ReleaseRequest
    decisions: list[ReleaseDecision]
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def current_status(self) -> ReleaseStatus:
        return self.decisions[-1].status


# ============================================================================
# QC ADAPTER
# ============================================================================


@runtime_checkable
class QCRunner(Protocol):
    """Runs the quality gate for a release request."""

    def run(self, request: ReleaseRequest) -> QCGateResult:
        ...


class GuardianQCAdapter:
    """
    Release QC backed by the Guardian engine.

    The workstream snapshot comes from `metadata["workstream"]`; without
    one, an empty workstream is built from the request's pack and
    jurisdiction so the country-pack check still runs. Two release checks
    are added on top of the Guardian battery: evidence references are
    present, and the requester may use the pack.
    """

    def __init__(
        self,
        guardian: GuardianEngine,
        permissions: ToolPermissionGate,
        catalog: Catalog = DEFAULT_CATALOG,
    ):
        self.guardian = guardian
        self.permissions = permissions
        self.catalog = catalog

    def run(self, request: ReleaseRequest) -> QCGateResult:
        gate_id = f"GATE_RELEASE_{request.release_id}"
        gate_name = f"Release QC: {request.description}"

        report: GuardianReport | None = None
        checks: list[CheckResult] = []

        try:
            ctx = self._workstream_for(request)
        except PolicyInputError as e:
            ctx = None
            checks.append(self._snapshot_failure(f"Malformed workstream snapshot: {e}"))

        if ctx is not None:
            report = self.guardian.run(ctx)
            guardian_reports_total.labels(passed=str(report.passed).lower()).inc()
            checks.extend(report.checks)
        elif not checks:
            checks.append(
                self._snapshot_failure("No workstream snapshot or jurisdiction supplied")
            )

        checks.append(self._check_evidence_refs(request))
        checks.append(self._check_pack_access(request))

        passed = all(c.passed for c in checks if c.severity == Severity.ERROR)
        if report is not None:
            passed = passed and report.passed

        return QCGateResult(
            gate_id=gate_id,
            gate_name=gate_name,
            status="passed" if passed else "failed",
            checks=checks,
            reviewed_by=self.catalog.quality_guardian,
            guardian_report=report,
            notes=report.blocked_reason if report is not None else None,
        )

    def _workstream_for(self, request: ReleaseRequest) -> WorkstreamContext | None:
        snapshot = request.metadata.get("workstream")
        if snapshot is not None:
            return validate_input(WorkstreamContext, snapshot)
        if request.jurisdiction is None:
            return None
        return WorkstreamContext(
            workstream_id=f"RELEASE_{request.release_id}",
            pack_id=request.pack_id,
            jurisdiction=request.jurisdiction,
        )

    @staticmethod
    def _snapshot_failure(message: str) -> CheckResult:
        return CheckResult(
            check_id="WORKSTREAM_SNAPSHOT",
            passed=False,
            severity=Severity.ERROR,
            message=message,
        )

    @staticmethod
    def _check_evidence_refs(request: ReleaseRequest) -> CheckResult:
        count = len(request.evidence_refs)
        return CheckResult(
            check_id="RELEASE_EVIDENCE_REFS",
            passed=count > 0,
            severity=Severity.ERROR,
            message=(
                f"{count} evidence items referenced" if count else "No evidence references found"
            ),
            details={"evidence_count": count},
        )

    def _check_pack_access(self, request: ReleaseRequest) -> CheckResult:
        agent = self.catalog.normalize_agent_id(request.requester_agent)
        known_agent = not self.catalog.agents or agent in self.catalog.agents
        known_pack = self.catalog.pack_jurisdiction(request.pack_id) is not None

        if not known_agent:
            allowed, message = False, f"Unknown agent: {request.requester_agent}"
        elif not known_pack:
            allowed, message = False, f"Unknown pack: {request.pack_id}"
        else:
            allowed = self.permissions.can_agent_use_pack(agent, request.pack_id)
            message = (
                f"Agent {agent} authorized for pack {request.pack_id}"
                if allowed
                else f"Agent {agent} NOT authorized for pack {request.pack_id}"
            )

        return CheckResult(
            check_id="RELEASE_PACK_ACCESS",
            passed=allowed,
            severity=Severity.ERROR,
            message=message,
            details={"agent_id": agent, "pack_id": request.pack_id},
        )


# ============================================================================
# ENGINE
# ============================================================================


class ReleaseWorkflowEngine:
    """
    Release state machine over an injected store.

    All mutations of one release run under that release's lock, so
    concurrent calls on the same release are serialized and the decision
    history stays append-only.
    """

    def __init__(
        self,
        store: ReleaseStore,
        qc_runner: QCRunner,
        incident_log: IncidentLog,
        catalog: Catalog = DEFAULT_CATALOG,
        audit_sink: AuditSink | None = None,
    ):
        self.store = store
        self.qc_runner = qc_runner
        self.incident_log = incident_log
        self.catalog = catalog
        self.audit_sink = audit_sink
        self.permissions = ToolPermissionGate(catalog)

    # ------------------------------------------------------------------------
    # ROLES
    # ------------------------------------------------------------------------

    @property
    def release_deciders(self) -> frozenset[str]:
        """Who may authorize, execute and roll back: the governor or a human operator."""
        return frozenset((self.catalog.policy_governor, OPERATOR))

    @property
    def release_blockers(self) -> frozenset[str]:
        """Guardians whose block is recorded as a governor denial."""
        return frozenset((self.catalog.quality_guardian, *self.catalog.gated_tool_blockers))

    def recording_decider(self, workflow: ReleaseWorkflow) -> str:
        """Who is recorded for system decisions: the governor, or operator on the governor's own release."""
        governor = self.catalog.policy_governor
        if self._actor(workflow.request.requester_agent) == governor:
            return OPERATOR
        return governor

    # ------------------------------------------------------------------------
    # TRANSITIONS
    # ------------------------------------------------------------------------

    def create(self, request: ReleaseRequest | dict) -> ReleaseWorkflow:
        """
        Register a release request in `pending`.

        Raises:
            PolicyInputError: If the request is malformed
            ReleaseConflictError: If the release id is already registered
        """
        request = validate_input(ReleaseRequest, request)

        with self.store.lock(request.release_id, create=True):
            if self.store.get(request.release_id) is not None:
                raise ReleaseConflictError(f"Release {request.release_id} already exists")

            now = utcnow()
            workflow = ReleaseWorkflow(request=request, decisions=[], created_at=now, updated_at=now)
            decision = ReleaseDecision(
                release_id=request.release_id,
                status=ReleaseStatus.PENDING,
                decided_by=self.recording_decider(workflow),
                decided_at=workflow.created_at,
            )
            return self._apply(workflow, decision, actor=request.requester_agent)

    def run_qc(self, release_id: str) -> ReleaseWorkflow | None:
        """
        Run the QC gate from any state.

        Records qc_in_progress then qc_passed or qc_failed. A release that
        was already authorized, executed or closed is re-gated and must be
        authorized again. The Guardian is recorded as the QC reviewer.
        """
        lock = self.store.lock(release_id)
        if lock is None:
            return None

        with lock, decision_context(release_id=release_id):
            workflow = self.store.get(release_id)
            if workflow is None:
                return None

            decider = self.recording_decider(workflow)
            guardian = self.catalog.quality_guardian
            if workflow.current_status not in PENDING_STATUSES:
                logger.info(
                    "release_qc_rerun",
                    release_id=release_id,
                    from_status=workflow.current_status.value,
                )

            self._append(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=ReleaseStatus.QC_IN_PROGRESS,
                    decided_by=decider,
                ),
                actor=guardian,
                save=False,
            )

            with tracer.start_as_current_span("release_qc") as span:
                span.set_attribute("release.id", release_id)
                qc_result = self.qc_runner.run(workflow.request)
                span.set_attribute("release.qc_status", qc_result.status)
            status = (
                ReleaseStatus.QC_PASSED if qc_result.status == "passed" else ReleaseStatus.QC_FAILED
            )
            if status == ReleaseStatus.QC_FAILED:
                logger.warning(
                    "release_qc_failed",
                    release_id=release_id,
                    failed_checks=[c.check_id for c in qc_result.failed_checks],
                )

            return self._apply(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=status,
                    decided_by=decider,
                    qc_result=qc_result,
                ),
                actor=qc_result.reviewed_by,
            )

    def authorize(
        self,
        release_id: str,
        conditions: Iterable[str] | None = None,
        decided_by: str | None = None,
    ) -> ReleaseWorkflow | None:
        """Authorize a release. Only valid from qc_passed."""
        decided_by = decided_by or self.catalog.policy_governor

        lock = self.store.lock(release_id)
        if lock is None:
            return None

        with lock:
            workflow = self.store.get(release_id)
            if workflow is None:
                return None

            if self._is_bypass(workflow, "authorize", decided_by, self.release_deciders):
                return workflow

            if workflow.current_status != ReleaseStatus.QC_PASSED:
                return self._refuse(
                    workflow, "authorize", f"status is {workflow.current_status.value}"
                )

            return self._apply(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=ReleaseStatus.AUTHORIZED,
                    decided_by=self._actor(decided_by),
                    conditions=list(conditions or []),
                ),
                actor=decided_by,
            )

    def deny(
        self, release_id: str, reason: str, decided_by: str | None = None
    ) -> ReleaseWorkflow | None:
        """
        Deny a release. Valid from any state.

        A Guardian block is accepted from the quality guardian or a gated
        tool blocker and recorded as a denial by the governor (or the
        operator on the governor's own release), naming the blocker.
        """
        decided_by = decided_by or self.catalog.policy_governor

        lock = self.store.lock(release_id)
        if lock is None:
            return None

        with lock:
            workflow = self.store.get(release_id)
            if workflow is None:
                return None

            allowed = self.release_deciders | self.release_blockers
            if self._is_bypass(workflow, "deny", decided_by, allowed):
                return workflow

            actor = self._actor(decided_by)
            if actor in self.release_blockers and actor not in self.release_deciders:
                recorded_by = self.recording_decider(workflow)
                reason = f"Blocked by {actor}: {reason}"
            else:
                recorded_by = actor

            return self._apply(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=ReleaseStatus.DENIED,
                    decided_by=recorded_by,
                    denial_reason=reason,
                ),
                actor=decided_by,
            )

    def execute(
        self, release_id: str, notes: str | None = None, decided_by: str | None = None
    ) -> ReleaseWorkflow | None:
        """Mark a release executed. Only valid from authorized, with no blocking incidents."""
        decided_by = decided_by or self.catalog.policy_governor

        lock = self.store.lock(release_id)
        if lock is None:
            return None

        with lock:
            workflow = self.store.get(release_id)
            if workflow is None:
                return None

            if self._is_bypass(workflow, "execute", decided_by, self.release_deciders):
                return workflow

            if workflow.current_status != ReleaseStatus.AUTHORIZED:
                return self._refuse(workflow, "execute", "not authorized")

            if self.incident_log.has_blocking_incidents():
                return self._refuse(workflow, "execute", "unresolved CRITICAL incidents")

            return self._apply(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=ReleaseStatus.EXECUTED,
                    decided_by=self._actor(decided_by),
                    execution_notes=notes,
                ),
                actor=decided_by,
            )

    def rollback(
        self, release_id: str, reason: str, decided_by: str | None = None
    ) -> ReleaseWorkflow | None:
        """Roll back an executed release."""
        decided_by = decided_by or self.catalog.policy_governor

        lock = self.store.lock(release_id)
        if lock is None:
            return None

        with lock:
            workflow = self.store.get(release_id)
            if workflow is None:
                return None

            if self._is_bypass(workflow, "rollback", decided_by, self.release_deciders):
                return workflow

            if workflow.current_status != ReleaseStatus.EXECUTED:
                return self._refuse(workflow, "rollback", "not executed")

            return self._apply(
                workflow,
                ReleaseDecision(
                    release_id=release_id,
                    status=ReleaseStatus.ROLLED_BACK,
                    decided_by=self._actor(decided_by),
                    denial_reason=reason,
                ),
                actor=decided_by,
            )

    # ------------------------------------------------------------------------
    # QUERIES
    # ------------------------------------------------------------------------

    def get(self, release_id: str) -> ReleaseWorkflow | None:
        return self.store.get(release_id)

    def list_pending(self) -> list[ReleaseWorkflow]:
        """Releases waiting on QC or authorization."""
        return [w for w in self.store.all() if w.current_status in PENDING_STATUSES]

    def validate_pack_access(self, release_id: str) -> bool:
        """Whether the requester may use the release's pack. Unknown releases are False."""
        workflow = self.store.get(release_id)
        if workflow is None:
            return False
        request = workflow.request
        if self.catalog.pack_jurisdiction(request.pack_id) is None:
            return False
        return self.permissions.can_agent_use_pack(request.requester_agent, request.pack_id)

    # ------------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------------

    def _actor(self, agent_id: str) -> str:
        return self.catalog.normalize_agent_id(agent_id)

    def _is_bypass(
        self,
        workflow: ReleaseWorkflow,
        action: str,
        decided_by: str,
        allowed: frozenset[str],
    ) -> bool:
        """Refuse self-decisions and decisions by agents without the role."""
        actor = self._actor(decided_by)
        requester = self._actor(workflow.request.requester_agent)

        if actor == requester:
            reason = "requesting agent cannot decide its own release"
        elif actor not in allowed:
            reason = f"{actor} is not permitted to {action} releases"
        else:
            return False

        release_id = workflow.request.release_id
        self._refuse(workflow, action, reason, decided_by=actor)
        self.incident_log.log_gate_bypass_attempt(
            actor, "RELEASE", f"{action} release {release_id}: {reason}"
        )
        return True

    def _refuse(
        self,
        workflow: ReleaseWorkflow,
        action: str,
        reason: str,
        decided_by: str | None = None,
    ) -> ReleaseWorkflow:
        logger.warning(
            "release_transition_refused",
            release_id=workflow.request.release_id,
            action=action,
            current_status=workflow.current_status.value,
            decided_by=decided_by,
            reason=reason,
        )
        release_transitions_total.labels(status=workflow.current_status.value, outcome="refused").inc()
        return workflow

    def _apply(self, workflow: ReleaseWorkflow, decision: ReleaseDecision, actor: str) -> ReleaseWorkflow:
        return self._append(workflow, decision, actor, save=True)

    def _append(
        self,
        workflow: ReleaseWorkflow,
        decision: ReleaseDecision,
        actor: str,
        save: bool,
    ) -> ReleaseWorkflow:
        previous_status = workflow.current_status.value if workflow.decisions else None

        workflow.decisions.append(decision)
        workflow.updated_at = decision.decided_at
        if save:
            self.store.save(workflow)

        logger.info(
            "release_transition",
            release_id=decision.release_id,
            from_status=previous_status,
            to_status=decision.status.value,
            decided_by=decision.decided_by,
        )
        release_transitions_total.labels(status=decision.status.value, outcome="applied").inc()

        if self.audit_sink is not None:
            self.audit_sink.record(
                AuditRecord(
                    action=f"release_{decision.status.value}",
                    actor=self._actor(actor),
                    resource_type="release",
                    resource_id=decision.release_id,
                    details=decision.model_dump(
                        mode="json", exclude={"qc_result"}, exclude_none=True
                    ),
                    previous_state={"status": previous_status} if previous_status else None,
                    new_state={"status": decision.status.value},
                )
            )
        return workflow

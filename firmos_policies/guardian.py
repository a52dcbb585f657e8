"""Guardian Checks.

Quality gate run against a workstream snapshot before anything is
released. Six fixed checks, reported in a stable order:

- REQUIRED_OUTPUTS       error, hard-fail
- REQUIRED_EVIDENCE      error, hard-fail
- HASH_INTEGRITY         error, hard-fail
- COUNTRY_PACK_MISMATCH  error, hard-fail (cross-jurisdiction leakage guard)
- TASKS_COMPLETE         error
- DOCUMENTS_APPROVED     warning

Business failures never raise; they are reported as CheckResult entries.
Only malformed input raises (PolicyInputError).
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from firmos_config.catalog import DEFAULT_CATALOG, Catalog
from firmos_policies.evidence import (
    EvidenceCoverage,
    EvidenceType,
    evidence_satisfies_minimum,
    parse_evidence_types,
)
from firmos_policies.types import Jurisdiction, Severity, utcnow, validate_input

# ============================================================================
# WORKSTREAM SNAPSHOT
# ============================================================================


class TaskSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str
    required_outputs: list[str] = Field(default_factory=list)
    outputs_present: list[str] = Field(default_factory=list)
    required_evidence: list[str] = Field(default_factory=list)
    evidence_linked: list[str] = Field(default_factory=list)


class DocumentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str
    hash: str
    stored_hash: str


class WorkstreamMetadata(BaseModel):
    """Free-form metadata; the known keys feed contradiction scans downstream."""

    model_config = ConfigDict(frozen=True, extra="allow")

    client_name: str | None = None
    dates: list[str] = Field(default_factory=list)
    amounts: list[float] = Field(default_factory=list)
    ids: list[str] = Field(default_factory=list)


class WorkstreamContext(BaseModel):
    """Snapshot of a workstream as seen by the Guardian."""

    model_config = ConfigDict(frozen=True)

    workstream_id: str
    pack_id: str
    jurisdiction: Jurisdiction
    tasks: list[TaskSnapshot] = Field(default_factory=list)
    documents: list[DocumentSnapshot] = Field(default_factory=list)
    metadata: WorkstreamMetadata = Field(default_factory=WorkstreamMetadata)


# ============================================================================
# RESULTS
# ============================================================================


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_id: str
    passed: bool
    severity: Severity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class GuardianReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    workstream_id: str
    passed: bool
    checks: list[CheckResult]
    blocked_reason: str | None = None
    generated_at: datetime = Field(default_factory=utcnow)

    def check(self, check_id: str) -> CheckResult | None:
        """Look up a check result by id."""
        return next((c for c in self.checks if c.check_id == check_id), None)

    @property
    def failed_checks(self) -> list[CheckResult]:
        return [c for c in self.checks if not c.passed]


class AgentGuardianReport(GuardianReport):
    """Guardian report extended with the agent evidence-minimum check."""

    evidence_validation: EvidenceCoverage


# ============================================================================
# CHECKS
# ============================================================================


@dataclass(frozen=True)
class GuardianCheck:
    id: str
    name: str
    severity: Severity
    fail_hard: bool  # If true, cannot proceed even with "ignore"
    run: Callable[[WorkstreamContext, Catalog], CheckResult]


def _missing_per_task(ctx: WorkstreamContext, required_attr: str, present_attr: str) -> list[str]:
    missing: list[str] = []
    for task in ctx.tasks:
        present = set(getattr(task, present_attr))
        for required in getattr(task, required_attr):
            if required not in present:
                missing.append(f"{task.name}: {required}")
    return missing


def _check_required_outputs(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    missing = _missing_per_task(ctx, "required_outputs", "outputs_present")
    return CheckResult(
        check_id="REQUIRED_OUTPUTS",
        passed=not missing,
        severity=Severity.ERROR,
        message=(
            "All required outputs present"
            if not missing
            else f"Missing outputs: {', '.join(missing)}"
        ),
        details={"missing": missing},
    )


def _check_required_evidence(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    missing = _missing_per_task(ctx, "required_evidence", "evidence_linked")
    return CheckResult(
        check_id="REQUIRED_EVIDENCE",
        passed=not missing,
        severity=Severity.ERROR,
        message=(
            "All required evidence linked"
            if not missing
            else f"Missing evidence: {', '.join(missing)}"
        ),
        details={"missing": missing},
    )


def _check_hash_integrity(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    failures = [doc.name for doc in ctx.documents if doc.hash != doc.stored_hash]
    return CheckResult(
        check_id="HASH_INTEGRITY",
        passed=not failures,
        severity=Severity.ERROR,
        message=(
            "All document hashes verified"
            if not failures
            else f"Hash mismatch: {', '.join(failures)}"
        ),
        details={"failures": failures},
    )


def _check_country_pack(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    expected = catalog.pack_jurisdiction(ctx.pack_id)
    actual = ctx.jurisdiction.value
    matched = expected == actual
    return CheckResult(
        check_id="COUNTRY_PACK_MISMATCH",
        passed=matched,
        severity=Severity.ERROR,
        message=(
            f"Pack {ctx.pack_id} matches jurisdiction {actual}"
            if matched
            else f"FATAL: Pack {ctx.pack_id} cannot be used in {actual}"
        ),
        details={
            "pack_id": ctx.pack_id,
            "expected_jurisdiction": expected,
            "actual_jurisdiction": actual,
        },
    )


def _check_tasks_complete(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    incomplete = [t for t in ctx.tasks if t.status != "completed"]
    return CheckResult(
        check_id="TASKS_COMPLETE",
        passed=not incomplete,
        severity=Severity.ERROR,
        message=(
            "All tasks completed"
            if not incomplete
            else f"Incomplete tasks: {', '.join(t.name for t in incomplete)}"
        ),
        details={"incomplete": [t.id for t in incomplete]},
    )


def _check_documents_approved(ctx: WorkstreamContext, catalog: Catalog) -> CheckResult:
    unapproved = [d for d in ctx.documents if d.status not in ("approved", "released")]
    return CheckResult(
        check_id="DOCUMENTS_APPROVED",
        passed=not unapproved,
        severity=Severity.WARNING,
        message=(
            "All documents approved"
            if not unapproved
            else f"Unapproved documents: {', '.join(d.name for d in unapproved)}"
        ),
        details={"unapproved": [d.id for d in unapproved]},
    )


GUARDIAN_CHECKS: tuple[GuardianCheck, ...] = (
    GuardianCheck("REQUIRED_OUTPUTS", "Required Outputs Present", Severity.ERROR, True, _check_required_outputs),
    GuardianCheck("REQUIRED_EVIDENCE", "Required Evidence Linked", Severity.ERROR, True, _check_required_evidence),
    GuardianCheck("HASH_INTEGRITY", "Document Hash Integrity", Severity.ERROR, True, _check_hash_integrity),
    GuardianCheck(
        "COUNTRY_PACK_MISMATCH", "Country Pack Jurisdiction Match", Severity.ERROR, True, _check_country_pack
    ),
    GuardianCheck("TASKS_COMPLETE", "All Tasks Completed", Severity.ERROR, False, _check_tasks_complete),
    GuardianCheck("DOCUMENTS_APPROVED", "All Documents Approved", Severity.WARNING, False, _check_documents_approved),
)


# ============================================================================
# ENGINE
# ============================================================================


class GuardianEngine:
    """Runs the Guardian battery against workstream snapshots."""

    def __init__(
        self,
        catalog: Catalog = DEFAULT_CATALOG,
        checks: Iterable[GuardianCheck] = GUARDIAN_CHECKS,
    ):
        self.catalog = catalog
        self._checks = tuple(checks)

    @property
    def checks(self) -> tuple[GuardianCheck, ...]:
        return self._checks

    def run(self, ctx: WorkstreamContext | dict) -> GuardianReport:
        """
        Run every check and aggregate.

        `passed` requires both: no failed error-severity check (all_passed)
        and no failed hard-fail check (blocked). The two are computed
        separately; a future check may be hard-fail without being an error.

        Raises:
            PolicyInputError: If ctx is structurally malformed
        """
        ctx = validate_input(WorkstreamContext, ctx)

        results: list[CheckResult] = []
        blocked_messages: list[str] = []

        for check in self._checks:
            result = check.run(ctx, self.catalog)
            results.append(result)
            if not result.passed and check.fail_hard:
                blocked_messages.append(result.message)

        blocked = bool(blocked_messages)
        all_passed = all(r.passed or r.severity != Severity.ERROR for r in results)

        return GuardianReport(
            workstream_id=ctx.workstream_id,
            passed=all_passed and not blocked,
            checks=results,
            blocked_reason="; ".join(blocked_messages) if blocked else None,
        )

    def can_release(self, ctx: WorkstreamContext | dict) -> bool:
        """Quick check if a workstream can be released."""
        return self.run(ctx).passed

    def validate_agent_evidence_minimum(
        self, agent_id: str, linked_evidence: Iterable[EvidenceType | str]
    ) -> EvidenceCoverage:
        """Compare linked evidence categories with the agent's required minimum."""
        return evidence_satisfies_minimum(linked_evidence, self.catalog.evidence_minimum(agent_id))

    def run_for_agent(
        self,
        ctx: WorkstreamContext | dict,
        agent_id: str,
        linked_evidence: Iterable[EvidenceType | str],
    ) -> AgentGuardianReport:
        """Run the battery plus the AGENT_EVIDENCE_MINIMUM check."""
        linked = parse_evidence_types(linked_evidence)
        base = self.run(ctx)
        validation = self.validate_agent_evidence_minimum(agent_id, linked)
        missing = [t.value for t in validation.missing]

        evidence_check = CheckResult(
            check_id="AGENT_EVIDENCE_MINIMUM",
            passed=validation.satisfied,
            severity=Severity.ERROR,
            message=(
                f"Agent {agent_id} evidence requirements satisfied"
                if validation.satisfied
                else f"Missing evidence for {agent_id}: {', '.join(missing)}"
            ),
            details={"agent_id": agent_id, "missing": missing},
        )

        return AgentGuardianReport(
            workstream_id=base.workstream_id,
            passed=base.passed and validation.satisfied,
            checks=[*base.checks, evidence_check],
            blocked_reason=base.blocked_reason,
            generated_at=base.generated_at,
            evidence_validation=validation,
        )


_default_engine = GuardianEngine()


def run_guardian_checks(ctx: WorkstreamContext | dict) -> GuardianReport:
    """Run the battery with the built-in catalog."""
    return _default_engine.run(ctx)


def can_release(ctx: WorkstreamContext | dict) -> bool:
    return _default_engine.can_release(ctx)

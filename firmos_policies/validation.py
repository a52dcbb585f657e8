"""Validation Rules.

Four cross-cutting rules that decide whether an agent output may
proceed. Each validator is pure and independently callable; `run_all`
evaluates only the contexts it is given (an omitted context is
vacuously satisfied, the caller decides which rules apply).
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from firmos_config.catalog import DEFAULT_CATALOG, Catalog
from firmos_policies.evidence import EvidenceType
from firmos_policies.types import Jurisdiction, Severity, validate_input


class ValidationRuleId(str, Enum):
    PACK_SEPARATION = "VAL_PACK_SEPARATION"
    EVIDENCE_MINIMUM = "VAL_EVIDENCE_MINIMUM"
    GUARDIAN_PASS_REQUIRED = "VAL_GUARDIAN_PASS_REQUIRED"
    RELEASE_GATED = "VAL_RELEASE_GATED"


class ValidationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: ValidationRuleId
    name: str
    rule: str
    severity: Severity
    fail_hard: bool


VALIDATION_RULES: dict[ValidationRuleId, ValidationRule] = {
    ValidationRuleId.PACK_SEPARATION: ValidationRule(
        id=ValidationRuleId.PACK_SEPARATION,
        name="Pack Separation",
        rule="All referenced resources and templates must match engagement jurisdiction pack",
        severity=Severity.ERROR,
        fail_hard=True,
    ),
    ValidationRuleId.EVIDENCE_MINIMUM: ValidationRule(
        id=ValidationRuleId.EVIDENCE_MINIMUM,
        name="Evidence Minimum",
        rule="Required evidence taxonomy types must be present before final deliverables",
        severity=Severity.ERROR,
        fail_hard=True,
    ),
    ValidationRuleId.GUARDIAN_PASS_REQUIRED: ValidationRule(
        id=ValidationRuleId.GUARDIAN_PASS_REQUIRED,
        name="Guardian Pass Required",
        rule="Any client-facing delivery requires a Guardian PASS",
        severity=Severity.ERROR,
        fail_hard=True,
    ),
    ValidationRuleId.RELEASE_GATED: ValidationRule(
        id=ValidationRuleId.RELEASE_GATED,
        name="Release Gated",
        rule=(
            "Any external filing/submission requires governor authorization "
            "+ Guardian PASS + policy_allows_release"
        ),
        severity=Severity.ERROR,
        fail_hard=True,
    ),
}


# ============================================================================
# CONTEXTS
# ============================================================================


class PackSeparationContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    engagement_jurisdiction: Jurisdiction
    referenced_resource_ids: list[str] = Field(default_factory=list)
    referenced_template_ids: list[str] = Field(default_factory=list)


class EvidenceMinimumContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    required_types: list[EvidenceType]
    linked_types: list[EvidenceType]


class GuardianPassContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    guardian_check_result: Literal["PASS", "FAIL", "PENDING"]
    is_client_facing: bool


class ReleaseGateContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    governor_authorization: bool
    guardian_pass: bool
    policy_allows_release: bool
    release_type: Literal["delivery", "filing", "publication"]


# ============================================================================
# RESULTS
# ============================================================================


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: ValidationRuleId
    passed: bool
    message: str
    blocked_reason: str | None = None


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    all_passed: bool
    results: list[ValidationResult]
    blocked_reasons: list[str]


# ============================================================================
# RULE SET
# ============================================================================


class ValidationRuleSet:
    """The four validators, bound to a catalog for the jurisdiction tables."""

    def __init__(self, catalog: Catalog = DEFAULT_CATALOG):
        self.catalog = catalog

    def validate_pack_separation(self, ctx: PackSeparationContext | dict) -> ValidationResult:
        ctx = validate_input(PackSeparationContext, ctx)
        engagement = ctx.engagement_jurisdiction.value
        violations: list[str] = []

        for resource_id in ctx.referenced_resource_ids:
            scope = self.catalog.resource_jurisdictions.get(resource_id)
            # Unknown and GLOBAL resources are allowed everywhere
            if scope and scope != "GLOBAL" and scope != engagement:
                violations.append(
                    f"Resource {resource_id} is {scope} but engagement is {engagement}"
                )

        for template_id in ctx.referenced_template_ids:
            pack_id = self.catalog.template_packs.get(template_id)
            scope = self.catalog.pack_jurisdiction(pack_id) if pack_id else None
            if scope and scope != engagement:
                violations.append(
                    f"Template {template_id} belongs to pack {pack_id} ({scope}) "
                    f"but engagement is {engagement}"
                )

        return ValidationResult(
            rule_id=ValidationRuleId.PACK_SEPARATION,
            passed=not violations,
            message=(
                "Pack separation validated"
                if not violations
                else f"Pack separation violations: {'; '.join(violations)}"
            ),
            blocked_reason=(
                f"FATAL: Pack mismatch detected: {violations[0]}" if violations else None
            ),
        )

    def validate_evidence_minimum(self, ctx: EvidenceMinimumContext | dict) -> ValidationResult:
        ctx = validate_input(EvidenceMinimumContext, ctx)
        linked = set(ctx.linked_types)
        missing = [t.value for t in ctx.required_types if t not in linked]

        return ValidationResult(
            rule_id=ValidationRuleId.EVIDENCE_MINIMUM,
            passed=not missing,
            message=(
                "Evidence minimum satisfied"
                if not missing
                else f"Missing required evidence types: {', '.join(missing)}"
            ),
            blocked_reason=(
                f"Evidence minimum not met: {', '.join(missing)}" if missing else None
            ),
        )

    def validate_guardian_pass(self, ctx: GuardianPassContext | dict) -> ValidationResult:
        ctx = validate_input(GuardianPassContext, ctx)

        if not ctx.is_client_facing:
            return ValidationResult(
                rule_id=ValidationRuleId.GUARDIAN_PASS_REQUIRED,
                passed=True,
                message="Not client-facing, guardian pass not required",
            )

        passed = ctx.guardian_check_result == "PASS"
        return ValidationResult(
            rule_id=ValidationRuleId.GUARDIAN_PASS_REQUIRED,
            passed=passed,
            message=(
                "Guardian PASS received"
                if passed
                else f"Guardian check result: {ctx.guardian_check_result}"
            ),
            blocked_reason=(
                None
                if passed
                else f"Client-facing delivery blocked: Guardian check = {ctx.guardian_check_result}"
            ),
        )

    def validate_release_gate(self, ctx: ReleaseGateContext | dict) -> ValidationResult:
        ctx = validate_input(ReleaseGateContext, ctx)
        conditions = {
            self.catalog.policy_governor: ctx.governor_authorization,
            self.catalog.quality_guardian: ctx.guardian_pass,
            "policy": ctx.policy_allows_release,
        }
        failed = [name for name, ok in conditions.items() if not ok]
        passed = not failed

        return ValidationResult(
            rule_id=ValidationRuleId.RELEASE_GATED,
            passed=passed,
            message=(
                "Release gates satisfied"
                if passed
                else f"Release blocked: missing {', '.join(failed)}"
            ),
            blocked_reason=(
                None
                if passed
                else f"External {ctx.release_type} blocked: {', '.join(failed)} not satisfied"
            ),
        )

    def run_all(
        self,
        pack_separation: PackSeparationContext | dict | None = None,
        evidence_minimum: EvidenceMinimumContext | dict | None = None,
        guardian_pass: GuardianPassContext | dict | None = None,
        release_gate: ReleaseGateContext | dict | None = None,
    ) -> ValidationReport:
        """Run the supplied validations and consolidate."""
        results: list[ValidationResult] = []

        if pack_separation is not None:
            results.append(self.validate_pack_separation(pack_separation))
        if evidence_minimum is not None:
            results.append(self.validate_evidence_minimum(evidence_minimum))
        if guardian_pass is not None:
            results.append(self.validate_guardian_pass(guardian_pass))
        if release_gate is not None:
            results.append(self.validate_release_gate(release_gate))

        return ValidationReport(
            all_passed=all(r.passed for r in results),
            results=results,
            blocked_reasons=[r.blocked_reason for r in results if r.blocked_reason],
        )


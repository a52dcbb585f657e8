"""
/validations Router - Cross-cutting Validation Rules.

- POST /validations: Run the supplied validation contexts
- GET /validations/rules: Rule catalog
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.core_api.deps import Services, get_services
from firmos_policies.validation import (
    VALIDATION_RULES,
    EvidenceMinimumContext,
    GuardianPassContext,
    PackSeparationContext,
    ReleaseGateContext,
    ValidationReport,
    ValidationRule,
)

router = APIRouter()


class ValidationRequest(BaseModel):
    """Only the supplied contexts are evaluated."""

    pack_separation: PackSeparationContext | None = None
    evidence_minimum: EvidenceMinimumContext | None = None
    guardian_pass: GuardianPassContext | None = None
    release_gate: ReleaseGateContext | None = None


@router.post("", response_model=ValidationReport)
def run_validations(
    body: ValidationRequest, services: Services = Depends(get_services)
) -> ValidationReport:
    return services.validations.run_all(
        pack_separation=body.pack_separation,
        evidence_minimum=body.evidence_minimum,
        guardian_pass=body.guardian_pass,
        release_gate=body.release_gate,
    )


@router.get("/rules", response_model=list[ValidationRule])
def list_rules() -> list[ValidationRule]:
    return list(VALIDATION_RULES.values())

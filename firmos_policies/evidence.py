"""Evidence Taxonomy.

Seven evidence categories that define acceptable evidence across the
firm. The Guardian uses this taxonomy to validate evidence sufficiency.
"""

import math
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict

from firmos_policies.exceptions import PolicyInputError


class EvidenceType(str, Enum):
    """Evidence taxonomy categories."""

    CLIENT_INSTRUCTION = "CLIENT_INSTRUCTION"
    IDENTITY_AUTHORITY = "IDENTITY_AUTHORITY"
    FINANCIAL_RECORDS = "FINANCIAL_RECORDS"
    SOURCE_DOCUMENTS = "SOURCE_DOCUMENTS"
    REGISTRY_EXTRACTS = "REGISTRY_EXTRACTS"
    LEGAL_SOURCES = "LEGAL_SOURCES"
    WORKPAPER_TRAIL = "WORKPAPER_TRAIL"


class EvidenceDefinition(BaseModel):
    """Catalog entry for one evidence category."""

    model_config = ConfigDict(frozen=True)

    id: EvidenceType
    name: str
    description: str
    examples: tuple[str, ...]


class EvidenceCoverage(BaseModel):
    """Result of comparing linked evidence against a required minimum."""

    model_config = ConfigDict(frozen=True)

    satisfied: bool
    missing: list[EvidenceType]


class EvidenceQualityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    coverage: float
    missing: list[EvidenceType]


EVIDENCE_TAXONOMY: dict[EvidenceType, EvidenceDefinition] = {
    EvidenceType.CLIENT_INSTRUCTION: EvidenceDefinition(
        id=EvidenceType.CLIENT_INSTRUCTION,
        name="Client Instruction",
        description="Authorization and instructions from the client",
        examples=("email/letter", "signed engagement letter", "call notes approved by client"),
    ),
    EvidenceType.IDENTITY_AUTHORITY: EvidenceDefinition(
        id=EvidenceType.IDENTITY_AUTHORITY,
        name="Identity & Authority",
        description="Evidence of identity and authority to act",
        examples=("IDs/passports", "board resolutions", "powers of attorney", "signatory lists"),
    ),
    EvidenceType.FINANCIAL_RECORDS: EvidenceDefinition(
        id=EvidenceType.FINANCIAL_RECORDS,
        name="Financial Records",
        description="Core accounting records",
        examples=("trial balance", "general ledger", "bank statements", "reconciliation schedules"),
    ),
    EvidenceType.SOURCE_DOCUMENTS: EvidenceDefinition(
        id=EvidenceType.SOURCE_DOCUMENTS,
        name="Source Documents",
        description="Original transaction evidence",
        examples=(
            "invoices",
            "contracts",
            "delivery notes",
            "payroll summaries",
            "lease agreements",
        ),
    ),
    EvidenceType.REGISTRY_EXTRACTS: EvidenceDefinition(
        id=EvidenceType.REGISTRY_EXTRACTS,
        name="Registry Extracts",
        description="Official registry and filing evidence",
        examples=("MBR extracts/receipts", "corporate registers", "official filings outcomes"),
    ),
    EvidenceType.LEGAL_SOURCES: EvidenceDefinition(
        id=EvidenceType.LEGAL_SOURCES,
        name="Legal Sources",
        description="Authoritative legal and regulatory references",
        examples=(
            "applicable laws/regulations",
            "official guidance",
            "standard references from library",
        ),
    ),
    EvidenceType.WORKPAPER_TRAIL: EvidenceDefinition(
        id=EvidenceType.WORKPAPER_TRAIL,
        name="Workpaper Trail",
        description="Working papers and audit trail",
        examples=(
            "calculation sheets",
            "sampling logs",
            "testing results",
            "review notes + closure",
        ),
    ),
}

EVIDENCE_TYPES: tuple[EvidenceType, ...] = tuple(EVIDENCE_TAXONOMY)


def parse_evidence_types(values: Iterable[EvidenceType | str]) -> list[EvidenceType]:
    """
    Convert raw category ids to EvidenceType.

    Raises:
        PolicyInputError: If any value is not a taxonomy category
    """
    parsed: list[EvidenceType] = []
    unknown: list[dict] = []
    for i, value in enumerate(values):
        try:
            parsed.append(EvidenceType(value))
        except ValueError:
            unknown.append({"loc": (i,), "msg": f"Unknown evidence type: {value}", "type": "enum"})
    if unknown:
        raise PolicyInputError("EvidenceType", unknown)
    return parsed


def get_evidence_definition(evidence_type: EvidenceType | str) -> EvidenceDefinition:
    return EVIDENCE_TAXONOMY[parse_evidence_types([evidence_type])[0]]


def evidence_satisfies_minimum(
    linked: Iterable[EvidenceType | str],
    required: Iterable[EvidenceType | str],
) -> EvidenceCoverage:
    """Set-coverage check: every required category must be linked."""
    linked_set = set(parse_evidence_types(linked))
    missing = [t for t in parse_evidence_types(required) if t not in linked_set]
    return EvidenceCoverage(satisfied=not missing, missing=missing)


def calculate_evidence_quality_score(
    linked: Iterable[EvidenceType | str],
    required: Iterable[EvidenceType | str],
) -> EvidenceQualityScore:
    """
    Score = (covered required categories / required categories) * 100,
    rounded half up.

    Nothing required counts as full coverage.
    """
    linked_set = set(parse_evidence_types(linked))
    required_list = parse_evidence_types(required)

    missing = [t for t in required_list if t not in linked_set]
    covered = len(required_list) - len(missing)
    coverage = covered / len(required_list) if required_list else 1.0

    score = math.floor(coverage * 100 + 0.5)
    return EvidenceQualityScore(score=score, coverage=coverage, missing=missing)

"""
Governance Catalog.

Static lookup tables used by the decision engine:
- pack -> jurisdiction
- resource -> jurisdiction (MT, RW or GLOBAL)
- template -> pack
- jurisdiction domain membership for agents
- per-agent evidence minimum
- gated tools and who may authorize / block them
- per-domain tool allow-lists
- tool groups and the groups each agent may use

Loaded once at process start (YAML) and treated as immutable for the
process lifetime. Components receive the catalog by injection.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

JurisdictionCode = Literal["MT", "RW"]
ResourceScope = Literal["MT", "RW", "GLOBAL"]

GLOBAL_DOMAIN = "global"

_BASE_TOOLS = (
    "create_engagement",
    "create_workstream",
    "create_tasks_from_program",
    "generate_document_from_template",
    "version_diff_document",
    "ingest_evidence",
    "link_evidence",
    "run_guardian_checks",
    "request_autonomy_decision",
    "log_event",
)


class Catalog(BaseModel):
    """Immutable governance lookup tables."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    agents: tuple[str, ...] = Field(default_factory=tuple)
    policy_governor: str = "marco"
    quality_guardian: str = "diane"

    pack_jurisdictions: dict[str, JurisdictionCode] = Field(default_factory=dict)
    resource_jurisdictions: dict[str, ResourceScope] = Field(default_factory=dict)
    template_packs: dict[str, str] = Field(default_factory=dict)

    domain_agents: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    domain_jurisdictions: dict[str, JurisdictionCode] = Field(default_factory=dict)
    domain_tools: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    agent_evidence_minimum: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    gated_tool_authorizers: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    gated_tool_blockers: tuple[str, ...] = Field(default_factory=tuple)

    tool_groups: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    agent_tool_groups: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_domains(self) -> "Catalog":
        missing = [d for d in self.domain_agents if d not in self.domain_jurisdictions]
        if missing:
            raise ValueError(f"Domains without a jurisdiction: {', '.join(missing)}")
        if GLOBAL_DOMAIN in self.domain_agents:
            raise ValueError("The global domain is implicit and cannot list members")
        unknown = sorted(
            {g for groups in self.agent_tool_groups.values() for g in groups} - set(self.tool_groups)
        )
        if unknown:
            raise ValueError(f"Unknown tool groups: {', '.join(unknown)}")
        return self

    # ------------------------------------------------------------------------
    # LOOKUPS
    # ------------------------------------------------------------------------

    @staticmethod
    def normalize_agent_id(agent_id: str) -> str:
        """Accept both `marco` and `agent_marco`."""
        return agent_id.removeprefix("agent_")

    def pack_jurisdiction(self, pack_id: str) -> str | None:
        return self.pack_jurisdictions.get(pack_id)

    def agent_domain(self, agent_id: str) -> str:
        """Domain an agent belongs to; agents not listed anywhere are global."""
        agent = self.normalize_agent_id(agent_id)
        for domain, members in self.domain_agents.items():
            if agent in members:
                return domain
        return GLOBAL_DOMAIN

    def evidence_minimum(self, agent_id: str) -> tuple[str, ...]:
        return self.agent_evidence_minimum.get(self.normalize_agent_id(agent_id), ())

    def tools_for_domain(self, domain: str) -> tuple[str, ...]:
        return self.domain_tools.get(domain, ())

    def tool_group(self, tool_name: str) -> str | None:
        """Group a tool belongs to; first match in declaration order."""
        return next((g for g, tools in self.tool_groups.items() if tool_name in tools), None)

    def tool_groups_for_agent(self, agent_id: str) -> tuple[str, ...]:
        return self.agent_tool_groups.get(self.normalize_agent_id(agent_id), ())


DEFAULT_CATALOG = Catalog(
    agents=(
        "aline",  # Firm Orchestrator
        "marco",  # Autonomy & Policy Governor
        "diane",  # Quality, Risk & Evidence Guardian
        "patrick",
        "sofia",
        "james",
        "fatima",
        "matthew",  # Malta Tax
        "claire",  # Malta CSP/MBR
        "emmanuel",  # Rwanda Tax
        "chantal",  # Rwanda Private Notary
    ),
    pack_jurisdictions={
        "mt_tax": "MT",
        "mt_csp": "MT",
        "rw_tax": "RW",
        "rw_private_notary": "RW",
    },
    resource_jurisdictions={
        "MBR_ANNUAL_RETURNS": "MT",
        "MFSA_CSP_RULEBOOK": "MT",
        "MALTA_CSP_ACT_CAP529": "MT",
        "MFSA_CSP_FAQS": "MT",
        "FIAU_IMPL_PROCS": "MT",
        "RW_LAW_NOTARY_RWANDALII": "RW",
        "RW_LAW_NOTARY_MINIJUST_PDF": "RW",
        "RW_NOTARY_AMEND_2023_PDF": "RW",
        "IFRS_STANDARDS": "GLOBAL",
        "ISA_STANDARDS": "GLOBAL",
    },
    template_packs={
        "MT_VAT_RETURN": "mt_tax",
        "MT_CSP_ANNUAL_RETURN": "mt_csp",
        "RW_VAT_DECLARATION": "rw_tax",
        "RW_NOTARIAL_DEED": "rw_private_notary",
    },
    domain_agents={
        "malta": ("matthew", "claire"),
        "rwanda": ("emmanuel", "chantal"),
    },
    domain_jurisdictions={"malta": "MT", "rwanda": "RW"},
    domain_tools={
        "malta": _BASE_TOOLS,
        "rwanda": _BASE_TOOLS,
        GLOBAL_DOMAIN: _BASE_TOOLS + ("release_action",),
    },
    agent_evidence_minimum={
        "aline": ("CLIENT_INSTRUCTION", "WORKPAPER_TRAIL"),
        "marco": ("LEGAL_SOURCES", "WORKPAPER_TRAIL"),
        "diane": ("WORKPAPER_TRAIL", "LEGAL_SOURCES", "FINANCIAL_RECORDS"),
        "patrick": ("FINANCIAL_RECORDS", "SOURCE_DOCUMENTS", "WORKPAPER_TRAIL"),
        "sofia": ("FINANCIAL_RECORDS", "SOURCE_DOCUMENTS", "WORKPAPER_TRAIL"),
        "james": ("CLIENT_INSTRUCTION", "FINANCIAL_RECORDS", "WORKPAPER_TRAIL"),
        "fatima": ("SOURCE_DOCUMENTS", "WORKPAPER_TRAIL", "LEGAL_SOURCES"),
        "matthew": ("FINANCIAL_RECORDS", "SOURCE_DOCUMENTS", "LEGAL_SOURCES", "WORKPAPER_TRAIL"),
        "claire": (
            "CLIENT_INSTRUCTION",
            "IDENTITY_AUTHORITY",
            "REGISTRY_EXTRACTS",
            "WORKPAPER_TRAIL",
            "LEGAL_SOURCES",
        ),
        "emmanuel": ("FINANCIAL_RECORDS", "SOURCE_DOCUMENTS", "LEGAL_SOURCES", "WORKPAPER_TRAIL"),
        "chantal": ("CLIENT_INSTRUCTION", "IDENTITY_AUTHORITY", "LEGAL_SOURCES", "WORKPAPER_TRAIL"),
    },
    gated_tool_authorizers={"release_action": ("marco",)},
    gated_tool_blockers=("diane",),
    tool_groups={
        "CORE_CASE_MGMT": ("create_engagement", "create_workstream", "create_tasks_from_program", "log_event"),
        "DOC_FACTORY": ("generate_document_from_template", "version_diff_document", "assemble_pack"),
        "EVIDENCE": ("ingest_evidence", "classify_evidence", "link_evidence", "evidence_quality_score"),
        "QC_GATES": ("run_guardian_checks", "consistency_scan", "novelty_score", "request_autonomy_decision"),
        "RELEASE_GATED": ("request_release", "release_action"),
    },
    agent_tool_groups={
        "aline": ("CORE_CASE_MGMT", "EVIDENCE", "QC_GATES"),
        "marco": ("CORE_CASE_MGMT", "QC_GATES", "RELEASE_GATED"),
        "diane": ("EVIDENCE", "QC_GATES", "CORE_CASE_MGMT"),
        **{
            agent: ("CORE_CASE_MGMT", "EVIDENCE", "DOC_FACTORY", "QC_GATES")
            for agent in ("patrick", "sofia", "james", "fatima", "matthew", "claire", "emmanuel", "chantal")
        },
    },
)


def load_catalog(path: str | Path | None = None) -> Catalog:
    """
    Load the governance catalog.

    Args:
        path: YAML file path. None or empty string returns DEFAULT_CATALOG.

    Returns:
        Catalog: frozen catalog

    Raises:
        FileNotFoundError: If the path does not exist
        pydantic.ValidationError: If the YAML does not describe a valid catalog
    """
    if not path:
        return DEFAULT_CATALOG

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return Catalog.model_validate(data)

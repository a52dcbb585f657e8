"""
FastAPI Dependency Injection.

The governance components are built once per application and kept on
`app.state.services`. Routers pull them through `get_services`, so tests
can swap in a fresh container (isolated stores) per test.
"""

from dataclasses import dataclass

from fastapi import Request

from firmos_config.catalog import Catalog, load_catalog
from firmos_config.settings import Settings
from firmos_memory.audit import AuditSink, LoggingAuditSink
from firmos_memory.stores import InMemoryIncidentStore, InMemoryReleaseStore
from firmos_obs.logging import get_logger
from firmos_policies.autonomy import AutonomyEvaluator
from firmos_policies.guardian import GuardianEngine
from firmos_policies.incident_log import IncidentLog
from firmos_policies.permissions import ToolPermissionGate
from firmos_policies.pipeline import GovernancePipeline
from firmos_policies.release_workflow import GuardianQCAdapter, ReleaseWorkflowEngine
from firmos_policies.validation import ValidationRuleSet

logger = get_logger(__name__)

# Initialize settings
settings = Settings()


# ============================================================================
# SERVICE CONTAINER
# ============================================================================


@dataclass
class Services:
    """Everything the routers need, wired against one catalog."""

    settings: Settings
    catalog: Catalog
    audit_sink: AuditSink
    evaluator: AutonomyEvaluator
    guardian: GuardianEngine
    validations: ValidationRuleSet
    permissions: ToolPermissionGate
    incident_log: IncidentLog
    releases: ReleaseWorkflowEngine
    pipeline: GovernancePipeline


def build_services(
    settings: Settings,
    catalog: Catalog | None = None,
    audit_sink: AuditSink | None = None,
) -> Services:
    """
    Wire the governance components.

    Args:
        settings: Application settings
        catalog: Governance catalog (default: loaded from settings.CATALOG_PATH)
        audit_sink: Audit sink (default: structured log)

    Returns:
        Services: Fully wired container with empty in-memory stores
    """
    catalog = catalog or load_catalog(settings.CATALOG_PATH)
    audit_sink = audit_sink or LoggingAuditSink()

    guardian = GuardianEngine(catalog)
    permissions = ToolPermissionGate(catalog)
    incident_log = IncidentLog(InMemoryIncidentStore(), audit_sink)
    evaluator = AutonomyEvaluator()

    releases = ReleaseWorkflowEngine(
        store=InMemoryReleaseStore(),
        qc_runner=GuardianQCAdapter(guardian, permissions, catalog),
        incident_log=incident_log,
        catalog=catalog,
        audit_sink=audit_sink,
    )
    pipeline = GovernancePipeline(
        incident_log=incident_log,
        catalog=catalog,
        evaluator=evaluator,
        guardian=guardian,
        permissions=permissions,
        audit_sink=audit_sink,
        hash_mismatch_severity=settings.HASH_MISMATCH_SEVERITY,
    )

    logger.info(
        "services_built",
        catalog_path=settings.CATALOG_PATH or "<built-in>",
        packs=len(catalog.pack_jurisdictions),
        agents=len(catalog.agents),
    )

    return Services(
        settings=settings,
        catalog=catalog,
        audit_sink=audit_sink,
        evaluator=evaluator,
        guardian=guardian,
        validations=ValidationRuleSet(catalog),
        permissions=permissions,
        incident_log=incident_log,
        releases=releases,
        pipeline=pipeline,
    )


# ============================================================================
# DEPENDENCIES
# ============================================================================


def get_services(request: Request) -> Services:
    """Dependency: the application's service container."""
    return request.app.state.services


def get_settings() -> Settings:
    """
    Dependency: Application settings.

    Returns:
        Settings: Pydantic settings instance
    """
    return settings

"""Pytest fixtures.

Every test gets fresh stores and a fresh audit sink; nothing leaks
between tests through module state.
"""

import pytest
from fastapi.testclient import TestClient

from apps.core_api.deps import build_services
from apps.core_api.main import app
from firmos_config.catalog import DEFAULT_CATALOG
from firmos_config.settings import Settings
from firmos_memory.audit import InMemoryAuditSink
from firmos_memory.stores import InMemoryIncidentStore, InMemoryReleaseStore
from firmos_policies.guardian import GuardianEngine
from firmos_policies.incident_log import IncidentLog
from firmos_policies.permissions import ToolPermissionGate
from firmos_policies.release_workflow import GuardianQCAdapter, ReleaseWorkflowEngine


@pytest.fixture
def catalog():
    return DEFAULT_CATALOG


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def incident_log(audit_sink):
    """Incident log over an isolated in-memory store."""
    return IncidentLog(InMemoryIncidentStore(), audit_sink)


@pytest.fixture
def release_engine(incident_log, audit_sink, catalog):
    """Release workflow engine with the Guardian-backed QC adapter."""
    guardian = GuardianEngine(catalog)
    return ReleaseWorkflowEngine(
        store=InMemoryReleaseStore(),
        qc_runner=GuardianQCAdapter(guardian, ToolPermissionGate(catalog), catalog),
        incident_log=incident_log,
        catalog=catalog,
        audit_sink=audit_sink,
    )


@pytest.fixture
def services(audit_sink):
    """Fresh service container installed on the app."""
    container = build_services(Settings(), catalog=DEFAULT_CATALOG, audit_sink=audit_sink)
    app.state.services = container
    return container


@pytest.fixture
def client(services):
    """FastAPI test client bound to the fresh container."""
    return TestClient(app)


# ============================================================================
# SAMPLE INPUTS
# ============================================================================


@pytest.fixture
def routine_action():
    """Action that resolves to tier A."""
    return {
        "jurisdiction": "MT",
        "service": "TAX",
        "workflow_type": "vat_return",
        "external_impact": False,
        "novelty_score": 20,
        "dispute_or_regulatory_signal": False,
        "evidence_completeness_score": 80,
        "is_first_time_execution": False,
        "has_approved_template": True,
    }


@pytest.fixture
def clean_workstream():
    """Malta tax workstream that passes every Guardian check."""
    return {
        "workstream_id": "WS-MT-001",
        "pack_id": "mt_tax",
        "jurisdiction": "MT",
        "tasks": [
            {
                "id": "T1",
                "name": "Prepare VAT return",
                "status": "completed",
                "required_outputs": ["vat_return_draft"],
                "outputs_present": ["vat_return_draft"],
                "required_evidence": ["sales_ledger"],
                "evidence_linked": ["sales_ledger"],
            }
        ],
        "documents": [
            {
                "id": "D1",
                "name": "VAT Return Q1",
                "status": "approved",
                "hash": "abc123",
                "stored_hash": "abc123",
            }
        ],
    }


@pytest.fixture
def release_request():
    """Release request whose QC passes with the default catalog."""
    return {
        "release_id": "REL-001",
        "type": "template_publish",
        "pack_id": "mt_tax",
        "requester_agent": "matthew",
        "description": "Publish MT VAT return template",
        "artifact_refs": ["templates/mt_vat_return.docx"],
        "evidence_refs": ["EV-1"],
        "jurisdiction": "MT",
    }

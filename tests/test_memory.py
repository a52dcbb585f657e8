"""Store and Audit Sink Tests."""

from datetime import datetime, timezone

from firmos_memory.audit import AuditRecord, AuditSink, InMemoryAuditSink, LoggingAuditSink
from firmos_memory.stores import (
    IncidentStore,
    InMemoryIncidentStore,
    InMemoryReleaseStore,
    ReleaseStore,
)
from firmos_policies.incident_log import Incident, IncidentSeverity, IncidentType
from firmos_policies.release_workflow import (
    ReleaseDecision,
    ReleaseRequest,
    ReleaseStatus,
    ReleaseWorkflow,
)


def _incident(**overrides):
    return Incident(
        type=IncidentType.POLICY_VIOLATION,
        severity=IncidentSeverity.MEDIUM,
        description="violation",
        agent_id="diane",
        **overrides,
    )


def _workflow(release_id="REL-1"):
    now = datetime.now(timezone.utc)
    request = ReleaseRequest(
        release_id=release_id,
        type="pack_release",
        pack_id="rw_tax",
        requester_agent="emmanuel",
        description="RW tax pack v2",
    )
    return ReleaseWorkflow(
        request=request,
        decisions=[ReleaseDecision(release_id=release_id, status=ReleaseStatus.PENDING, decided_by="marco")],
        created_at=now,
        updated_at=now,
    )


def test_in_memory_stores_satisfy_protocols():
    assert isinstance(InMemoryIncidentStore(), IncidentStore)
    assert isinstance(InMemoryReleaseStore(), ReleaseStore)
    assert isinstance(InMemoryAuditSink(), AuditSink)
    assert isinstance(LoggingAuditSink(), AuditSink)


def test_incident_store_resolve_replaces_record():
    store = InMemoryIncidentStore()
    incident = _incident()
    store.append(incident)

    resolved = store.resolve(incident.id, "fixed", datetime.now(timezone.utc))

    assert resolved.id == incident.id
    assert store.get(incident.id).resolution == "fixed"
    assert incident.resolution is None
    assert len(store.all()) == 1


def test_incident_store_resolve_unknown():
    assert InMemoryIncidentStore().resolve("missing", "n/a", datetime.now(timezone.utc)) is None


def test_release_store_isolates_saved_copies():
    store = InMemoryReleaseStore()
    workflow = _workflow()
    store.save(workflow)

    workflow.decisions.append(
        ReleaseDecision(release_id="REL-1", status=ReleaseStatus.DENIED, decided_by="marco")
    )
    loaded = store.get("REL-1")
    loaded.decisions.clear()

    assert store.get("REL-1").current_status == ReleaseStatus.PENDING


def test_release_store_lock_is_per_release():
    store = InMemoryReleaseStore()
    lock = store.lock("REL-1", create=True)
    assert store.lock("REL-1") is lock
    assert store.lock("REL-2", create=True) is not lock


def test_release_store_lock_exists_for_saved_releases():
    store = InMemoryReleaseStore()
    store.save(_workflow("REL-1"))
    assert store.lock("REL-1") is not None


def test_release_store_lock_unknown_release():
    store = InMemoryReleaseStore()
    for i in range(100):
        assert store.lock(f"missing-{i}") is None
    assert store._locks == {}


def test_release_store_all():
    store = InMemoryReleaseStore()
    store.save(_workflow("REL-1"))
    store.save(_workflow("REL-2"))
    assert sorted(w.request.release_id for w in store.all()) == ["REL-1", "REL-2"]


def test_audit_sink_query():
    sink = InMemoryAuditSink()
    sink.record(AuditRecord(action="incident_logged", actor="diane", resource_type="incident", resource_id="I-1"))
    sink.record(AuditRecord(action="release_authorized", actor="marco", resource_type="release", resource_id="R-1"))

    assert len(sink.records) == 2
    assert [r.resource_id for r in sink.query(actor="marco")] == ["R-1"]
    assert sink.query(resource_type="incident", action="release_authorized") == []


def test_logging_sink_accepts_records():
    LoggingAuditSink().record(
        AuditRecord(action="incident_logged", actor="diane", resource_type="incident", resource_id="I-1")
    )

"""Incident Log Tests."""

import copy
import threading

import pytest

from firmos_memory.stores import InMemoryIncidentStore
from firmos_policies.exceptions import PolicyInputError
from firmos_policies.guardian import run_guardian_checks
from firmos_policies.incident_log import IncidentLog, IncidentSeverity, IncidentType


@pytest.mark.parametrize(
    "incident_type, severity",
    [
        (IncidentType.PACK_LEAKAGE, IncidentSeverity.CRITICAL),
        (IncidentType.GATE_BYPASS_ATTEMPT, IncidentSeverity.HIGH),
        (IncidentType.RELEASE_BYPASS_ATTEMPT, IncidentSeverity.HIGH),
        (IncidentType.UNAUTHORIZED_TOOL_ACCESS, IncidentSeverity.HIGH),
        (IncidentType.EVIDENCE_MISSING_PATTERN, IncidentSeverity.MEDIUM),
        (IncidentType.REPEATED_CONTRADICTION, IncidentSeverity.MEDIUM),
        (IncidentType.POLICY_VIOLATION, IncidentSeverity.MEDIUM),
    ],
)
def test_default_severity_by_type(incident_log, incident_type, severity):
    incident = incident_log.log(incident_type, "something happened", "diane")
    assert incident.severity == severity


def test_severity_override(incident_log):
    incident = incident_log.log("POLICY_VIOLATION", "hash mismatch", "diane", severity_override="CRITICAL")
    assert incident.severity == IncidentSeverity.CRITICAL
    assert incident_log.has_blocking_incidents() is True


def test_empty_description_is_rejected_and_not_stored(incident_log):
    with pytest.raises(PolicyInputError) as exc_info:
        incident_log.log(IncidentType.POLICY_VIOLATION, "", "diane")

    assert exc_info.value.model == "Incident"
    assert incident_log.list() == []


def test_unknown_type_is_rejected(incident_log):
    with pytest.raises(PolicyInputError):
        incident_log.log("ALIEN_INVASION", "unexpected", "diane")
    assert incident_log.counts().total == 0


def test_unresolved_critical_blocks_until_resolved(incident_log):
    """One unresolved CRITICAL incident trips the release circuit breaker."""
    assert incident_log.has_blocking_incidents() is False

    incident = incident_log.log_pack_leakage("matthew", "rw_tax", "MT", workstream_id="WS-1")
    assert incident.type == IncidentType.PACK_LEAKAGE
    assert incident_log.has_blocking_incidents() is True

    resolved = incident_log.resolve(incident.id, "Access revoked, pack reference removed")
    assert resolved.resolved_at is not None
    assert resolved.resolution == "Access revoked, pack reference removed"
    assert incident_log.has_blocking_incidents() is False


def test_high_incidents_do_not_block(incident_log):
    incident_log.log_unauthorized_tool_access("claire", "release_action", "not in domain")
    assert incident_log.has_blocking_incidents() is False


def test_resolve_unknown_returns_none(incident_log):
    assert incident_log.resolve("does-not-exist", "n/a") is None


def test_incidents_are_append_only(incident_log):
    first = incident_log.log(IncidentType.PACK_LEAKAGE, "leak", "matthew")
    incident_log.log(IncidentType.POLICY_VIOLATION, "violation", "diane")
    incident_log.resolve(first.id, "fixed")

    incidents = incident_log.list()
    assert [i.description for i in incidents] == ["leak", "violation"]
    assert incidents[0].id == first.id
    assert incidents[0].created_at == first.created_at


def test_gate_bypass_types(incident_log):
    guardian = incident_log.log_gate_bypass_attempt("sofia", "GUARDIAN", "skip checks")
    release = incident_log.log_gate_bypass_attempt("sofia", "RELEASE", "self-authorize")

    assert guardian.type == IncidentType.GATE_BYPASS_ATTEMPT
    assert release.type == IncidentType.RELEASE_BYPASS_ATTEMPT


def test_queries_and_counts(incident_log):
    leak = incident_log.log(IncidentType.PACK_LEAKAGE, "leak", "matthew", workstream_id="WS-1")
    incident_log.log(IncidentType.PACK_LEAKAGE, "leak again", "emmanuel", workstream_id="WS-2")
    incident_log.log(IncidentType.REPEATED_CONTRADICTION, "dates disagree", "diane", workstream_id="WS-1")
    incident_log.resolve(leak.id, "fixed")

    assert len(incident_log.critical()) == 2
    assert len(incident_log.unresolved()) == 2
    assert len(incident_log.list(workstream_id="WS-1")) == 2
    assert len(incident_log.list(agent_id="emmanuel", resolved=False)) == 1
    assert len(incident_log.list(type="REPEATED_CONTRADICTION")) == 1

    counts = incident_log.counts()
    assert counts.total == 3
    assert counts.by_type == {"PACK_LEAKAGE": 2, "REPEATED_CONTRADICTION": 1}
    assert counts.by_severity == {"CRITICAL": 2, "MEDIUM": 1}


def test_logging_and_resolving_emit_audit_records(incident_log, audit_sink):
    incident = incident_log.log(IncidentType.PACK_LEAKAGE, "leak", "matthew")
    incident_log.resolve(incident.id, "fixed", actor="operator")

    records = audit_sink.query(resource_id=incident.id)
    assert [r.action for r in records] == ["incident_logged", "incident_resolved"]
    assert records[1].actor == "operator"
    assert records[1].previous_state["resolved_at"] is None
    assert records[1].new_state["resolution"] == "fixed"


def test_guardian_failures_become_incidents(incident_log, clean_workstream):
    ctx = copy.deepcopy(clean_workstream)
    ctx["jurisdiction"] = "RW"
    ctx["documents"][0]["stored_hash"] = "tampered"
    report = run_guardian_checks(ctx)

    incidents = incident_log.log_guardian_failures(report, "diane", pack_id="mt_tax")

    assert [i.type for i in incidents] == [IncidentType.PACK_LEAKAGE, IncidentType.POLICY_VIOLATION]
    assert incidents[0].severity == IncidentSeverity.CRITICAL
    assert incidents[1].severity == IncidentSeverity.HIGH
    assert all(i.workstream_id == "WS-MT-001" for i in incidents)


def test_clean_report_logs_nothing(incident_log, clean_workstream):
    assert incident_log.log_guardian_failures(run_guardian_checks(clean_workstream), "diane") == []


def test_concurrent_appends_are_all_kept():
    log = IncidentLog(InMemoryIncidentStore())

    def worker(n):
        for i in range(50):
            log.log(IncidentType.POLICY_VIOLATION, f"violation {n}-{i}", f"agent_{n}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    incidents = log.list()
    assert len(incidents) == 400
    assert len({i.id for i in incidents}) == 400

"""Governance Pipeline Tests."""

import copy

import pytest

from firmos_policies.autonomy import AutonomyTier
from firmos_policies.exceptions import PolicyInputError
from firmos_policies.incident_log import IncidentSeverity, IncidentType
from firmos_policies.pipeline import GovernancePipeline


@pytest.fixture
def pipeline(incident_log, audit_sink, catalog):
    return GovernancePipeline(incident_log, catalog=catalog, audit_sink=audit_sink)


def test_routine_action_proceeds_without_guardian(pipeline, routine_action, clean_workstream):
    review = pipeline.review_action(
        "matthew", "generate_document_from_template", routine_action, workstream=clean_workstream
    )

    assert review.proceed is True
    assert review.permitted is True
    assert review.decision.tier == AutonomyTier.AUTO
    assert review.guardian_report is None
    assert review.incidents == []


def test_auto_check_runs_guardian(pipeline, routine_action, clean_workstream):
    action = {**routine_action, "novelty_score": 60}
    review = pipeline.review_action("matthew", "link_evidence", action, workstream=clean_workstream)

    assert review.decision.tier == AutonomyTier.AUTO_CHECK
    assert review.guardian_report is not None
    assert review.guardian_report.passed is True
    assert review.proceed is True


def test_escalated_action_does_not_proceed(pipeline, routine_action):
    review = pipeline.review_action("matthew", "link_evidence", {**routine_action, "external_impact": True})

    assert review.permitted is True
    assert review.decision.requires_human is True
    assert review.proceed is False
    assert "External impact requires escalation" in review.reasons


def test_pack_leakage_is_logged(pipeline, routine_action, incident_log):
    review = pipeline.review_action("emmanuel", "link_evidence", routine_action, pack_id="mt_tax")

    assert review.permitted is False
    assert review.proceed is False
    assert [i.type for i in review.incidents] == [IncidentType.PACK_LEAKAGE]
    assert review.incidents[0].details["target_jurisdiction"] == "RW"
    assert incident_log.has_blocking_incidents() is True


def test_tool_outside_domain_is_unauthorized(pipeline, routine_action, incident_log):
    review = pipeline.review_action(
        "claire", "release_action", routine_action, approvals={"marco_approved": True, "diane_pass": True}
    )

    assert review.permitted is False
    assert [i.type for i in review.incidents] == [IncidentType.UNAUTHORIZED_TOOL_ACCESS]


def test_gated_tool_without_signoff_is_a_bypass_attempt(pipeline, routine_action):
    review = pipeline.review_action("marco", "release_action", routine_action, approvals={"marco_approved": True})

    assert review.permitted is False
    assert review.permission.requires_approval.type == "guardian_pass"
    assert [i.type for i in review.incidents] == [IncidentType.RELEASE_BYPASS_ATTEMPT]


def test_gated_tool_with_signoffs_is_permitted(pipeline, routine_action):
    review = pipeline.review_action(
        "marco", "release_action", routine_action, approvals={"marco_approved": True, "diane_pass": True}
    )
    assert review.permitted is True
    assert review.proceed is True


def test_guardian_failures_are_logged_as_incidents(pipeline, routine_action, clean_workstream):
    ws = copy.deepcopy(clean_workstream)
    ws["documents"][0]["stored_hash"] = "tampered"
    action = {**routine_action, "novelty_score": 60}

    review = pipeline.review_action("matthew", "link_evidence", action, workstream=ws)

    assert review.proceed is False
    assert review.guardian_report.passed is False
    assert [i.type for i in review.incidents] == [IncidentType.POLICY_VIOLATION]
    assert review.incidents[0].severity == IncidentSeverity.HIGH


def test_hash_mismatch_severity_is_configurable(incident_log, routine_action, clean_workstream):
    pipeline = GovernancePipeline(incident_log, hash_mismatch_severity="CRITICAL")
    ws = copy.deepcopy(clean_workstream)
    ws["documents"][0]["stored_hash"] = "tampered"

    review = pipeline.review_action("matthew", "link_evidence", {**routine_action, "novelty_score": 60}, workstream=ws)

    assert review.incidents[0].severity == IncidentSeverity.CRITICAL


def test_malformed_action_raises_before_logging(pipeline, routine_action, incident_log):
    with pytest.raises(PolicyInputError):
        pipeline.review_action("emmanuel", "link_evidence", {**routine_action, "novelty_score": 500}, pack_id="mt_tax")
    assert incident_log.list() == []


def test_review_emits_audit_record(pipeline, routine_action, clean_workstream, audit_sink):
    pipeline.review_action("agent_matthew", "link_evidence", routine_action, workstream=clean_workstream)

    records = audit_sink.query(action="action_reviewed")
    assert len(records) == 1
    assert records[0].actor == "matthew"
    assert records[0].resource_id == "WS-MT-001"
    assert records[0].details["tier"] == "A"


def test_orchestrator_cannot_call_release_tool_even_with_signoffs(pipeline, routine_action, incident_log):
    review = pipeline.review_action(
        "aline", "release_action", routine_action, approvals={"marco_approved": True, "diane_pass": True}
    )

    assert review.permitted is False
    assert review.proceed is False
    assert [i.type for i in review.incidents] == [IncidentType.UNAUTHORIZED_TOOL_ACCESS]
    assert "RELEASE_GATED" in review.reasons[0]
    assert incident_log.list(type=IncidentType.UNAUTHORIZED_TOOL_ACCESS, agent_id="aline")

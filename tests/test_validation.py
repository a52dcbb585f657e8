"""Validation Rule Tests."""

import pytest

from firmos_policies.exceptions import PolicyInputError
from firmos_policies.validation import VALIDATION_RULES, ValidationRuleId, ValidationRuleSet


@pytest.fixture
def rules():
    return ValidationRuleSet()


def test_rule_catalog_is_complete():
    assert set(VALIDATION_RULES) == set(ValidationRuleId)
    assert all(rule.fail_hard for rule in VALIDATION_RULES.values())


# ============================================================================
# PACK SEPARATION
# ============================================================================


def test_pack_separation_passes_for_own_and_global_resources(rules):
    result = rules.validate_pack_separation(
        {
            "engagement_jurisdiction": "MT",
            "referenced_resource_ids": ["MBR_ANNUAL_RETURNS", "IFRS_STANDARDS", "UNLISTED_DOC"],
            "referenced_template_ids": ["MT_VAT_RETURN"],
        }
    )
    assert result.passed is True
    assert result.blocked_reason is None


def test_pack_separation_flags_foreign_resource(rules):
    result = rules.validate_pack_separation(
        {"engagement_jurisdiction": "MT", "referenced_resource_ids": ["RW_LAW_NOTARY_RWANDALII"]}
    )

    assert result.passed is False
    assert result.rule_id == ValidationRuleId.PACK_SEPARATION
    assert result.blocked_reason.startswith("FATAL")
    assert "RW_LAW_NOTARY_RWANDALII" in result.message


def test_pack_separation_flags_foreign_template(rules):
    result = rules.validate_pack_separation(
        {"engagement_jurisdiction": "RW", "referenced_template_ids": ["MT_CSP_ANNUAL_RETURN"]}
    )

    assert result.passed is False
    assert "mt_csp" in result.message


# ============================================================================
# EVIDENCE MINIMUM
# ============================================================================


def test_evidence_minimum_set_difference(rules):
    result = rules.validate_evidence_minimum(
        {
            "required_types": ["FINANCIAL_RECORDS", "WORKPAPER_TRAIL"],
            "linked_types": ["FINANCIAL_RECORDS", "LEGAL_SOURCES"],
        }
    )

    assert result.passed is False
    assert result.message == "Missing required evidence types: WORKPAPER_TRAIL"


def test_evidence_minimum_rejects_unknown_type(rules):
    with pytest.raises(PolicyInputError):
        rules.validate_evidence_minimum({"required_types": ["HEARSAY"], "linked_types": []})


# ============================================================================
# GUARDIAN PASS
# ============================================================================


@pytest.mark.parametrize(
    "result, client_facing, expected",
    [
        ("PASS", True, True),
        ("FAIL", True, False),
        ("PENDING", True, False),
        ("FAIL", False, True),
        ("PENDING", False, True),
    ],
)
def test_guardian_pass_required(rules, result, client_facing, expected):
    outcome = rules.validate_guardian_pass(
        {"guardian_check_result": result, "is_client_facing": client_facing}
    )
    assert outcome.passed is expected


# ============================================================================
# RELEASE GATE
# ============================================================================


def test_release_gate_requires_all_three(rules):
    result = rules.validate_release_gate(
        {
            "governor_authorization": True,
            "guardian_pass": True,
            "policy_allows_release": True,
            "release_type": "filing",
        }
    )
    assert result.passed is True


def test_release_gate_names_every_missing_condition(rules):
    result = rules.validate_release_gate(
        {
            "governor_authorization": False,
            "guardian_pass": True,
            "policy_allows_release": False,
            "release_type": "filing",
        }
    )

    assert result.passed is False
    assert result.blocked_reason == "External filing blocked: marco, policy not satisfied"
    assert result.message == "Release blocked: missing marco, policy"


def test_release_gate_names_the_guardian(rules):
    result = rules.validate_release_gate(
        {
            "governor_authorization": True,
            "guardian_pass": False,
            "policy_allows_release": True,
            "release_type": "publication",
        }
    )

    assert result.blocked_reason == "External publication blocked: diane not satisfied"


# ============================================================================
# RUN ALL
# ============================================================================


def test_run_all_only_evaluates_supplied_contexts(rules):
    report = rules.run_all(guardian_pass={"guardian_check_result": "PASS", "is_client_facing": True})

    assert report.all_passed is True
    assert [r.rule_id for r in report.results] == [ValidationRuleId.GUARDIAN_PASS_REQUIRED]


def test_run_all_with_nothing_is_vacuously_true(rules):
    report = rules.run_all()
    assert report.all_passed is True
    assert report.results == []


def test_run_all_collects_blocked_reasons(rules):
    report = rules.run_all(
        pack_separation={"engagement_jurisdiction": "RW", "referenced_resource_ids": ["MFSA_CSP_RULEBOOK"]},
        guardian_pass={"guardian_check_result": "PENDING", "is_client_facing": True},
        evidence_minimum={"required_types": [], "linked_types": []},
    )

    assert report.all_passed is False
    assert len(report.results) == 3
    assert len(report.blocked_reasons) == 2

"""Tool Permission Gate Tests."""

import pytest

from firmos_config.catalog import Catalog
from firmos_policies.permissions import ToolPermissionGate


@pytest.fixture
def gate():
    return ToolPermissionGate()


def test_non_gated_tool_is_allowed(gate):
    result = gate.check_tool_permission("matthew", "link_evidence")
    assert result.allowed is True
    assert result.requires_approval is None


def test_gated_tool_needs_governor_first(gate):
    result = gate.check_tool_permission("aline", "release_action", {"diane_pass": True})

    assert result.allowed is False
    assert result.requires_approval.from_agent == "marco"
    assert result.requires_approval.type == "authorize"


def test_gated_tool_then_needs_guardian(gate):
    result = gate.check_tool_permission("aline", "release_action", {"marco_approved": True})

    assert result.allowed is False
    assert result.requires_approval.from_agent == "diane"
    assert result.requires_approval.type == "guardian_pass"


def test_gated_tool_with_both_signoffs_is_allowed(gate):
    result = gate.check_tool_permission(
        "aline", "release_action", {"marco_approved": True, "diane_pass": True}
    )
    assert result.allowed is True


def test_authorizers_and_blockers(gate):
    assert gate.is_gated("release_action")
    assert gate.can_authorize_gated_tool("marco", "release_action")
    assert gate.can_authorize_gated_tool("agent_marco", "release_action")
    assert not gate.can_authorize_gated_tool("diane", "release_action")
    assert gate.can_block_gated_tool("diane")
    assert not gate.can_block_gated_tool("matthew")


@pytest.mark.parametrize(
    "agent_id, domain",
    [("matthew", "malta"), ("agent_claire", "malta"), ("emmanuel", "rwanda"), ("marco", "global")],
)
def test_agent_domains(gate, agent_id, domain):
    assert gate.get_agent_domain(agent_id) == domain


@pytest.mark.parametrize(
    "agent_id, pack_id, allowed",
    [
        ("matthew", "mt_tax", True),
        ("matthew", "rw_tax", False),
        ("chantal", "rw_private_notary", True),
        ("chantal", "mt_csp", False),
        ("aline", "rw_tax", True),
        ("matthew", "unknown_pack", False),
    ],
)
def test_pack_access(gate, agent_id, pack_id, allowed):
    assert gate.can_agent_use_pack(agent_id, pack_id) is allowed


def test_allowed_packs(gate):
    assert gate.allowed_packs("emmanuel") == ["rw_private_notary", "rw_tax"]
    assert gate.allowed_packs("diane") == ["mt_csp", "mt_tax", "rw_private_notary", "rw_tax"]


def test_domain_tool_allow_lists(gate):
    assert gate.is_tool_allowed_in_domain("matthew", "ingest_evidence")
    assert not gate.is_tool_allowed_in_domain("matthew", "release_action")
    assert gate.is_tool_allowed_in_domain("marco", "release_action")


@pytest.mark.parametrize(
    "agent_id, tool_name, allowed",
    [
        ("marco", "release_action", True),
        ("agent_marco", "request_release", True),
        ("aline", "release_action", False),
        ("diane", "release_action", False),
        ("matthew", "generate_document_from_template", True),
        ("aline", "generate_document_from_template", False),
        ("marco", "link_evidence", False),
        ("unknown_agent", "log_event", False),
        ("matthew", "not_a_tool", False),
    ],
)
def test_agent_tool_groups(gate, agent_id, tool_name, allowed):
    assert gate.can_agent_access_tool(agent_id, tool_name) is allowed


def test_release_gated_tools(gate):
    assert gate.is_release_gated_tool("release_action")
    assert gate.is_release_gated_tool("request_release")
    assert not gate.is_release_gated_tool("link_evidence")


def test_allowed_tools_combine_domain_and_groups(gate):
    assert "release_action" in gate.allowed_tools("marco")
    assert "release_action" not in gate.allowed_tools("aline")
    assert "generate_document_from_template" in gate.allowed_tools("claire")


def test_catalog_without_groups_allows_every_tool():
    gate = ToolPermissionGate(Catalog())
    assert gate.can_agent_access_tool("anyone", "release_action") is True

"""Configuration Tests."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from firmos_config.catalog import DEFAULT_CATALOG, GLOBAL_DOMAIN, Catalog, load_catalog
from firmos_config.settings import Settings

CATALOG_YAML = Path(__file__).resolve().parent.parent / "catalogs" / "firmos_catalog.yaml"


def test_settings_load_defaults():
    """Test settings load with defaults."""
    settings = Settings()
    assert settings.API_PORT == 8000
    assert settings.HASH_MISMATCH_SEVERITY == "HIGH"
    assert settings.CATALOG_PATH == ""


def test_settings_reject_unknown_severity(monkeypatch):
    monkeypatch.setenv("HASH_MISMATCH_SEVERITY", "CATASTROPHIC")
    with pytest.raises(ValidationError):
        Settings()


def test_empty_path_returns_builtin_catalog():
    assert load_catalog("") is DEFAULT_CATALOG
    assert load_catalog(None) is DEFAULT_CATALOG


def test_bundled_yaml_matches_builtin_catalog():
    """The shipped YAML is the source of truth for deployments."""
    assert load_catalog(CATALOG_YAML) == DEFAULT_CATALOG


def test_catalog_loads_from_yaml(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "pack_jurisdictions:\n"
        "  mt_tax: MT\n"
        "domain_agents:\n"
        "  malta: [matthew]\n"
        "domain_jurisdictions:\n"
        "  malta: MT\n"
    )

    catalog = load_catalog(path)

    assert catalog.pack_jurisdiction("mt_tax") == "MT"
    assert catalog.agent_domain("agent_matthew") == "malta"
    assert catalog.agent_domain("marco") == GLOBAL_DOMAIN


def test_catalog_rejects_domain_without_jurisdiction():
    with pytest.raises(ValidationError):
        Catalog(domain_agents={"malta": ("matthew",)})


def test_catalog_rejects_unknown_jurisdiction():
    with pytest.raises(ValidationError):
        Catalog(pack_jurisdictions={"uk_tax": "UK"})


def test_catalog_is_frozen():
    with pytest.raises(ValidationError):
        DEFAULT_CATALOG.policy_governor = "someone_else"


def test_cors_origins_parsed(monkeypatch):
    monkeypatch.setenv("API_CORS_ORIGINS", "https://a.example, https://b.example")
    assert Settings().cors_origins == ["https://a.example", "https://b.example"]

    monkeypatch.setenv("API_CORS_ORIGINS", "")
    assert Settings().cors_origins == ["*"]


def test_catalog_rejects_unknown_tool_group():
    with pytest.raises(ValidationError):
        Catalog(tool_groups={"EVIDENCE": ("link_evidence",)}, agent_tool_groups={"matthew": ("DOC_FACTORY",)})


def test_tool_group_lookup():
    assert DEFAULT_CATALOG.tool_group("release_action") == "RELEASE_GATED"
    assert DEFAULT_CATALOG.tool_group("unknown") is None
    assert DEFAULT_CATALOG.tool_groups_for_agent("agent_marco") == ("CORE_CASE_MGMT", "QC_GATES", "RELEASE_GATED")

"""
FirmOS Configuration Package.

Provides Pydantic Settings loaded from environment variables and the
static governance catalog (packs, agents, evidence minimums).
"""

from firmos_config.catalog import Catalog, DEFAULT_CATALOG, load_catalog
from firmos_config.settings import Settings

__all__ = ["Catalog", "DEFAULT_CATALOG", "Settings", "load_catalog"]

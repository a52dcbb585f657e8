"""
Application Settings (Pydantic Settings).

Loads configuration from environment variables (.env file or system env).

The governance catalog itself (packs, agents, evidence minimums) lives in
YAML and is loaded once at startup from CATALOG_PATH; when unset the
built-in catalog is used.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # ========================================================================
    # API SERVER
    # ========================================================================
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_CORS_ORIGINS: str = Field(default="http://localhost:5173")
    API_CORS_ALLOW_CREDENTIALS: bool = Field(default=True)

    # ========================================================================
    # LOGGING
    # ========================================================================
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FORMAT: str = Field(default="json", pattern="^(json|text)$")

    # ========================================================================
    # OPENTELEMETRY
    # ========================================================================
    OTEL_EXPORTER_OTLP_ENDPOINT: str = Field(default="http://localhost:4317")
    OTEL_SERVICE_NAME: str = Field(default="firmos-governance")
    OTEL_TRACES_ENABLED: bool = Field(default=False)

    # ========================================================================
    # DEPLOYMENT
    # ========================================================================
    ENVIRONMENT: str = Field(
        default="development", pattern="^(development|staging|production)$"
    )

    # ========================================================================
    # GOVERNANCE CATALOG
    # ========================================================================
    CATALOG_PATH: str = Field(
        default="",
        description="Path to a YAML governance catalog (empty = built-in catalog)",
    )

    # ========================================================================
    # INCIDENT POLICY
    # ========================================================================
    HASH_MISMATCH_SEVERITY: str = Field(
        default="HIGH",
        description="Severity recorded when a document hash mismatch is detected",
        pattern="^(CRITICAL|HIGH|MEDIUM|LOW)$",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Comma-separated API_CORS_ORIGINS as a list; empty means any origin."""
        origins = [o.strip() for o in self.API_CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

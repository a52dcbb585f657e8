"""
FirmOS Observability Package.

Provides:
- Metrics (Prometheus)
- Structured logging (structlog)
- Distributed tracing (OpenTelemetry)
"""

__all__ = ["metrics", "logging", "tracing"]

"""
FirmOS Governance API.

Main API server providing:
- /autonomy, /guardian, /validations, /permissions: pure evaluators
- /incidents, /releases: stateful governance
- /actions/review: end-to-end review pipeline
- /healthz, /readyz: Health checks
- /metrics: Prometheus metrics
"""

__all__ = ["app"]

"""
Prometheus Metrics Registration.

Counters for governance decisions. Only the stateful layers (incident
log, release workflow, governance pipeline) record metrics; the pure
evaluators stay side-effect free.
"""

from prometheus_client import Counter

# ============================================================================
# COUNTERS
# ============================================================================

autonomy_tier_total = Counter(
    "firmos_autonomy_tier_total", "Autonomy tier distribution", ["tier"]  # A, B, C
)

guardian_reports_total = Counter(
    "firmos_guardian_reports_total", "Guardian reports produced", ["passed"]
)

release_transitions_total = Counter(
    "firmos_release_transitions_total",
    "Release workflow transitions",
    ["status", "outcome"],  # applied, refused
)

incidents_total = Counter(
    "firmos_incidents_total", "Incidents logged", ["type", "severity"]
)

permission_denials_total = Counter(
    "firmos_permission_denials_total", "Tool permission denials", ["tool_name"]
)

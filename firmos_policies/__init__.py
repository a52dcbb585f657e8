"""
FirmOS Governance Policies.

Decision engine deciding whether an agent action may run autonomously
and whether a workstream may be released:
- Autonomy tiers (A / B / C)
- Guardian quality checks
- Cross-cutting validation rules
- Tool permissions and pack separation
- Incident log (circuit breaker for releases)
- Release workflow (dual control)
"""

from firmos_policies.autonomy import (
    ActionContext,
    AutonomyDecision,
    AutonomyEvaluator,
    AutonomyTier,
    evaluate_autonomy,
)
from firmos_policies.exceptions import FirmOSError, PolicyInputError, ReleaseConflictError
from firmos_policies.guardian import GuardianEngine, GuardianReport, WorkstreamContext
from firmos_policies.incident_log import Incident, IncidentLog, IncidentSeverity, IncidentType
from firmos_policies.permissions import ToolPermissionGate
from firmos_policies.pipeline import ActionReview, GovernancePipeline
from firmos_policies.release_workflow import (
    GuardianQCAdapter,
    ReleaseRequest,
    ReleaseStatus,
    ReleaseWorkflow,
    ReleaseWorkflowEngine,
)
from firmos_policies.validation import ValidationRuleSet

__all__ = [
    "ActionContext",
    "AutonomyDecision",
    "AutonomyEvaluator",
    "AutonomyTier",
    "evaluate_autonomy",
    "FirmOSError",
    "PolicyInputError",
    "ReleaseConflictError",
    "GuardianEngine",
    "GuardianReport",
    "WorkstreamContext",
    "Incident",
    "IncidentLog",
    "IncidentSeverity",
    "IncidentType",
    "ToolPermissionGate",
    "ActionReview",
    "GovernancePipeline",
    "GuardianQCAdapter",
    "ReleaseRequest",
    "ReleaseStatus",
    "ReleaseWorkflow",
    "ReleaseWorkflowEngine",
    "ValidationRuleSet",
]

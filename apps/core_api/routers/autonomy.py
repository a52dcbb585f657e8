"""
/autonomy Router - Autonomy Tier Evaluation.

- POST /autonomy/evaluate: Tier (A / B / C) for a proposed action
- GET /autonomy/rules: The active rule list in priority order
"""

from fastapi import APIRouter, Depends

from apps.core_api.deps import Services, get_services
from firmos_obs.metrics import autonomy_tier_total
from firmos_policies.autonomy import ActionContext, AutonomyDecision

router = APIRouter()


@router.post("/evaluate", response_model=AutonomyDecision)
def evaluate(ctx: ActionContext, services: Services = Depends(get_services)) -> AutonomyDecision:
    """
    Evaluate the autonomy tier for an action.

    Escalation rules always win over auto rules; no match escalates.
    """
    decision = services.evaluator.evaluate(ctx)
    autonomy_tier_total.labels(tier=decision.tier.value).inc()
    return decision


@router.get("/rules")
def rules(services: Services = Depends(get_services)) -> list[dict]:
    return [
        {
            "id": rule.id,
            "description": rule.description,
            "tier": rule.result.value,
            "priority": rule.priority,
        }
        for rule in sorted(services.evaluator.rules, key=lambda r: r.priority)
    ]

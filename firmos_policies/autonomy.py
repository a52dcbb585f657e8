"""Autonomy Tiers & Policy Evaluator.

Maps a proposed action to an autonomy tier:
- A (AUTO): agent acts alone
- B (AUTO_CHECK): agent acts, Guardian checks before anything leaves
- C (ESCALATE): a human decides

Rules are data: (id, description, condition, result, priority). Every
matching rule is reported; the lowest priority number wins. Escalation
rules carry priorities 1-5 and the auto rules 9-11, so any escalation
signal overrides an auto match.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from firmos_policies.types import Jurisdiction, ServiceCategory, validate_input


class AutonomyTier(str, Enum):
    """Autonomy tiers for agent actions."""

    AUTO = "A"
    AUTO_CHECK = "B"
    ESCALATE = "C"


class ActionContext(BaseModel):
    """Structured description of a proposed action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    jurisdiction: Jurisdiction
    service: ServiceCategory
    workflow_type: str
    document_type: str | None = None
    external_impact: bool = Field(..., description="Does the action leave the firm?")
    novelty_score: int = Field(..., ge=0, le=100, description="0 = routine, 100 = never seen")
    dispute_or_regulatory_signal: bool
    evidence_completeness_score: int = Field(..., ge=0, le=100)
    is_first_time_execution: bool
    has_approved_template: bool


class AutonomyDecision(BaseModel):
    """Tier decision with the rules that produced it."""

    model_config = ConfigDict(frozen=True)

    tier: AutonomyTier
    reasoning: str
    rules_applied: list[str]
    requires_human: bool


@dataclass(frozen=True)
class PolicyRule:
    id: str
    description: str
    condition: Callable[[ActionContext], bool]
    result: AutonomyTier
    priority: int  # Lower = higher precedence


DEFAULT_ESCALATE_RULE_ID = "DEFAULT_ESCALATE"

DEFAULT_RULES: tuple[PolicyRule, ...] = (
    # TIER C - Escalate
    PolicyRule(
        id="C_EXTERNAL",
        description="External impact requires escalation",
        condition=lambda ctx: ctx.external_impact,
        result=AutonomyTier.ESCALATE,
        priority=1,
    ),
    PolicyRule(
        id="C_DISPUTE",
        description="Dispute or regulatory signals require escalation",
        condition=lambda ctx: ctx.dispute_or_regulatory_signal,
        result=AutonomyTier.ESCALATE,
        priority=2,
    ),
    PolicyRule(
        id="C_HIGH_NOVELTY",
        description="High novelty actions require escalation",
        condition=lambda ctx: ctx.novelty_score > 70,
        result=AutonomyTier.ESCALATE,
        priority=3,
    ),
    PolicyRule(
        id="C_FIRST_TIME",
        description="First-time workflow execution requires escalation",
        condition=lambda ctx: ctx.is_first_time_execution,
        result=AutonomyTier.ESCALATE,
        priority=4,
    ),
    PolicyRule(
        id="C_INCOMPLETE_EVIDENCE",
        description="Low evidence completeness requires escalation",
        condition=lambda ctx: ctx.evidence_completeness_score < 50,
        result=AutonomyTier.ESCALATE,
        priority=5,
    ),
    # TIER A - Full auto (stricter than the B rules)
    PolicyRule(
        id="A_ROUTINE",
        description="Routine internal operations",
        condition=lambda ctx: (
            not ctx.external_impact
            and not ctx.dispute_or_regulatory_signal
            and ctx.novelty_score <= 30
            and ctx.evidence_completeness_score >= 70
            and ctx.has_approved_template
        ),
        result=AutonomyTier.AUTO,
        priority=9,
    ),
    # TIER B - Auto with check
    PolicyRule(
        id="B_TEMPLATE_WITH_REVIEW",
        description="Approved template with medium novelty",
        condition=lambda ctx: ctx.has_approved_template and 30 < ctx.novelty_score <= 70,
        result=AutonomyTier.AUTO_CHECK,
        priority=10,
    ),
    PolicyRule(
        id="B_STANDARD_WORKFLOW",
        description="Standard workflow with adequate evidence",
        condition=lambda ctx: (
            not ctx.external_impact
            and not ctx.dispute_or_regulatory_signal
            and ctx.evidence_completeness_score >= 50
            and ctx.novelty_score <= 50
        ),
        result=AutonomyTier.AUTO_CHECK,
        priority=11,
    ),
)


class AutonomyEvaluator:
    """First-match-by-priority evaluator over an ordered rule list."""

    def __init__(self, rules: Iterable[PolicyRule] = DEFAULT_RULES):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[PolicyRule, ...]:
        return self._rules

    def evaluate(self, ctx: ActionContext | dict) -> AutonomyDecision:
        """
        Evaluate the autonomy tier for an action.

        Args:
            ctx: ActionContext or a mapping with the same fields

        Returns:
            AutonomyDecision: winning tier, its reasoning, all matching rule ids

        Raises:
            PolicyInputError: If ctx fails schema validation (e.g. score out of range)
        """
        ctx = validate_input(ActionContext, ctx)

        # sorted() is stable: equal priorities keep declaration order
        matching = sorted(
            (rule for rule in self._rules if rule.condition(ctx)),
            key=lambda rule: rule.priority,
        )

        if not matching:
            return AutonomyDecision(
                tier=AutonomyTier.ESCALATE,
                reasoning="No matching policy rules, defaulting to escalation",
                rules_applied=[DEFAULT_ESCALATE_RULE_ID],
                requires_human=True,
            )

        applied = matching[0]
        return AutonomyDecision(
            tier=applied.result,
            reasoning=applied.description,
            rules_applied=[rule.id for rule in matching],
            requires_human=applied.result == AutonomyTier.ESCALATE,
        )


_default_evaluator = AutonomyEvaluator()


def evaluate_autonomy(ctx: ActionContext | dict) -> AutonomyDecision:
    """Evaluate with the default rule set."""
    return _default_evaluator.evaluate(ctx)


def is_fully_autonomous(ctx: ActionContext | dict) -> bool:
    return evaluate_autonomy(ctx).tier == AutonomyTier.AUTO


def requires_human(ctx: ActionContext | dict) -> bool:
    return evaluate_autonomy(ctx).tier == AutonomyTier.ESCALATE

"""
/actions Router - Governance Review.

- POST /actions/review: Full review of a proposed agent action
  (domain + pack access, tool permission, autonomy tier, Guardian)
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from apps.core_api.deps import Services, get_services
from firmos_policies.autonomy import ActionContext
from firmos_policies.guardian import WorkstreamContext
from firmos_policies.permissions import ToolApprovalContext
from firmos_policies.pipeline import ActionReview

router = APIRouter()


class ActionReviewRequest(BaseModel):
    agent_id: str = Field(..., description="Acting agent (with or without agent_ prefix)")
    tool_name: str
    action: ActionContext
    workstream: WorkstreamContext | None = None
    pack_id: str | None = Field(None, description="Defaults to the workstream's pack")
    approvals: ToolApprovalContext | None = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "agent_id": "matthew",
                "tool_name": "generate_document_from_template",
                "action": {
                    "jurisdiction": "MT",
                    "service": "TAX",
                    "workflow_type": "vat_return",
                    "external_impact": False,
                    "novelty_score": 20,
                    "dispute_or_regulatory_signal": False,
                    "evidence_completeness_score": 80,
                    "is_first_time_execution": False,
                    "has_approved_template": True,
                },
                "pack_id": "mt_tax",
            }
        }
    }


@router.post("/review", response_model=ActionReview)
def review(body: ActionReviewRequest, services: Services = Depends(get_services)) -> ActionReview:
    return services.pipeline.review_action(
        body.agent_id,
        body.tool_name,
        body.action,
        workstream=body.workstream,
        pack_id=body.pack_id,
        approvals=body.approvals,
    )

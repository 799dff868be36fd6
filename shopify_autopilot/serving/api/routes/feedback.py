"""
AI Feedback API Endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from shopify_autopilot.autopilot.advice import recommend_configuration
from shopify_autopilot.config import get_settings
from shopify_autopilot.database.models import ActionKind, AutopilotMode, FeedbackVerdict, RiskLevel
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import get_repository

router = APIRouter()


class FeedbackIn(BaseModel):
    shop: str = Field(..., min_length=1)
    product_id: int
    action: ActionKind
    feedback: FeedbackVerdict
    reason: Optional[str] = None


class AdviceOut(BaseModel):
    total_feedback: int
    approved: int
    rejected: int
    recommended_mode: AutopilotMode
    recommended_risk: RiskLevel
    reason: str


@router.post("/add")
async def add_feedback(
    body: FeedbackIn,
    repository: AutopilotRepository = Depends(get_repository),
) -> dict:
    feedback = await repository.add_feedback(
        body.shop,
        body.product_id,
        body.action.value,
        body.feedback,
        body.reason,
    )
    return {"ok": True, "id": str(feedback.id)}


@router.get("/advice", response_model=AdviceOut)
async def get_advice(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
) -> AdviceOut:
    """Recommend a mode and risk level from the shop's approval rate."""
    approved, rejected = await repository.feedback_totals(shop)
    advice = recommend_configuration(
        approved,
        rejected,
        min_feedback=get_settings().autopilot.advice_min_feedback,
    )
    return AdviceOut(
        total_feedback=advice.total,
        approved=advice.approved,
        rejected=advice.rejected,
        recommended_mode=advice.recommended_mode,
        recommended_risk=advice.recommended_risk,
        reason=advice.reason,
    )

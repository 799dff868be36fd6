"""
AI Actions API Endpoints

Audit trail of autopilot decisions and the merchant's approve/reject flow.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from shopify_autopilot.database.models import ActionStatus
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import get_repository

router = APIRouter()


class ActionOut(BaseModel):
    """Logged autopilot action"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    shop_domain: str
    product_id: int
    action: str
    details: Dict[str, Any]
    reason: str
    status: ActionStatus
    created_at: Optional[datetime] = None


class ActionUpdate(BaseModel):
    id: UUID
    status: ActionStatus


class ActionUpdateResponse(BaseModel):
    ok: bool
    action: ActionOut
    feedback: str


@router.get("/list", response_model=List[ActionOut])
async def list_actions(
    shop: str = Query(..., min_length=1),
    status: Optional[ActionStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    repository: AutopilotRepository = Depends(get_repository),
) -> List[ActionOut]:
    actions = await repository.list_actions(shop, status=status, limit=limit)
    return [ActionOut.model_validate(a) for a in actions]


@router.post("/update", response_model=ActionUpdateResponse)
async def update_action(
    body: ActionUpdate,
    repository: AutopilotRepository = Depends(get_repository),
) -> ActionUpdateResponse:
    """
    Set an action's status. Each call records one feedback row: approved when
    the status is approved, rejected for anything else.
    """
    updated = await repository.update_action_status(body.id, body.status)
    if updated is None:
        raise HTTPException(status_code=404, detail="Action not found")

    action, feedback = updated
    return ActionUpdateResponse(
        ok=True,
        action=ActionOut.model_validate(action),
        feedback=feedback.feedback.value,
    )

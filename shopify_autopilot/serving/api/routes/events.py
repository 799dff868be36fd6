"""
Seasonal Events API Endpoints
"""

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import get_repository

router = APIRouter()


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    start_date: date
    end_date: date
    active: bool
    product_keywords: List[str]


@router.get("/next", response_model=List[EventOut])
async def next_events(
    repository: AutopilotRepository = Depends(get_repository),
) -> List[EventOut]:
    """Active events that end today or later, soonest first."""
    events = await repository.list_upcoming_events(date.today())
    return [EventOut.model_validate(e) for e in events]

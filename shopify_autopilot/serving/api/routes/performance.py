"""
Performance API Endpoints
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import get_repository

router = APIRouter()


class PerformanceOut(BaseModel):
    """Per-product performance snapshot"""
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    conversion_rate: Optional[float]
    profit_margin: Optional[float]
    sales_7d: Optional[int]
    sales_30d: Optional[int]
    revenue_30d: Optional[Decimal]
    updated_at: Optional[datetime] = None


@router.get("/list", response_model=List[PerformanceOut])
async def list_performance(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
) -> List[PerformanceOut]:
    rows = await repository.list_performance(shop)
    return [PerformanceOut.model_validate(r) for r in rows]

"""
Shopify API Endpoints

Merchant-initiated price update, applied on Shopify then mirrored locally.
"""

from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from shopify_autopilot.autopilot.engine import PriceUpdater
from shopify_autopilot.autopilot.exceptions import PriceUpdateError
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import get_price_updater, get_repository

logger = structlog.get_logger(__name__)
router = APIRouter()


class PriceUpdateIn(BaseModel):
    shop: str = Field(..., min_length=1)
    product_id: int
    new_price: Decimal = Field(..., gt=0, decimal_places=2)


@router.post("/update-price")
async def update_price(
    body: PriceUpdateIn,
    repository: AutopilotRepository = Depends(get_repository),
    price_updater: PriceUpdater = Depends(get_price_updater),
) -> dict:
    try:
        await price_updater.update_price(body.shop, body.product_id, body.new_price)
    except PriceUpdateError as e:
        logger.error("Price update failed", shop=body.shop, product_id=body.product_id, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))

    await repository.update_product_price(body.shop, body.product_id, body.new_price)
    return {"ok": True, "product_id": body.product_id, "new_price": str(body.new_price)}

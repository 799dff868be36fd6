"""
Products API Endpoints

Local catalog copy and the Shopify catalog sync.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.ingestion.catalog_sync import CatalogSyncService
from shopify_autopilot.serving.api.dependencies import get_credentials, get_repository
from shopify_autopilot.shopify.client import ShopifyAPIError
from shopify_autopilot.shopify.credentials import CredentialResolver, MissingCredentialsError

logger = structlog.get_logger(__name__)
router = APIRouter()


class ProductOut(BaseModel):
    """Product response"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    shopify_product_id: int
    variant_id: Optional[int]
    title: str
    status: Optional[str]
    price: Decimal
    inventory_quantity: int
    image_url: Optional[str]
    updated_at: Optional[datetime] = None


class SyncResponse(BaseModel):
    ok: bool
    fetched: int
    upserted: int
    dropped: int
    failed: List[int]


@router.get("/list", response_model=List[ProductOut])
async def list_products(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
) -> List[ProductOut]:
    products = await repository.list_products(shop)
    return [ProductOut.model_validate(p) for p in products]


@router.post("/sync", response_model=SyncResponse)
async def sync_products(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
    credentials: CredentialResolver = Depends(get_credentials),
) -> SyncResponse:
    """Pull the shop's products from Shopify into the local catalog."""
    service = CatalogSyncService(repository, credentials)
    try:
        result = await service.sync(shop)
    except MissingCredentialsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ShopifyAPIError as e:
        logger.error("Catalog sync failed", shop=shop, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))

    return SyncResponse(
        ok=True,
        fetched=result.fetched,
        upserted=result.upserted,
        dropped=result.dropped,
        failed=result.failed,
    )

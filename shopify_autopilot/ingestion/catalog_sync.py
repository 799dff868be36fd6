"""
Catalog Sync

Pulls the product list from Shopify and upserts it into the local products
table. Raw Shopify payloads are flattened to one row per product (first
variant) and cleaned with Polars before anything touches the database:

- whitespace trimmed from text columns
- rows without an id, a title or a positive price dropped
- negative inventory clamped to zero
- duplicate product ids collapsed, first occurrence wins
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import polars as pl
import structlog
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.config import get_settings
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.shopify.client import ShopifyClient
from shopify_autopilot.shopify.credentials import CredentialResolver

logger = structlog.get_logger(__name__)


PRODUCT_SCHEMA = {
    "shopify_product_id": pl.Int64,
    "variant_id": pl.Int64,
    "title": pl.Utf8,
    "status": pl.Utf8,
    "price": pl.Utf8,
    "inventory_quantity": pl.Int64,
    "image_url": pl.Utf8,
}


@dataclass
class SyncResult:
    """Outcome of one catalog sync"""
    shop: str
    fetched: int = 0
    upserted: int = 0
    dropped: int = 0
    failed: List[int] = field(default_factory=list)


def _flatten(product: Dict[str, Any]) -> Dict[str, Any]:
    variants = product.get("variants") or []
    variant = variants[0] if variants else {}
    image = product.get("image") or {}
    if not image and product.get("images"):
        image = product["images"][0]
    price = variant.get("price")
    return {
        "shopify_product_id": product.get("id"),
        "variant_id": variant.get("id"),
        "title": product.get("title"),
        "status": product.get("status"),
        "price": str(price) if price is not None else None,
        "inventory_quantity": variant.get("inventory_quantity"),
        "image_url": image.get("src"),
    }


def normalize_products(raw: List[Dict[str, Any]]) -> pl.DataFrame:
    """
    Flatten and clean raw Shopify products.

    Args:
        raw: Product objects as returned by the Admin REST API

    Returns:
        DataFrame with PRODUCT_SCHEMA columns, prices kept as strings
    """
    df = pl.DataFrame([_flatten(p) for p in raw], schema=PRODUCT_SCHEMA)

    df = df.with_columns(
        pl.col("title").str.strip_chars(),
        pl.col("status").str.strip_chars(),
        pl.col("price").str.strip_chars(),
        pl.col("inventory_quantity").fill_null(0).clip(lower_bound=0),
    )

    df = df.filter(
        pl.col("shopify_product_id").is_not_null()
        & pl.col("title").is_not_null()
        & (pl.col("title") != "")
        & (pl.col("price").cast(pl.Float64, strict=False) > 0)
    )

    return df.unique(subset=["shopify_product_id"], keep="first", maintain_order=True)


class CatalogSyncService:
    """
    Mirrors a shop's Shopify catalog into the products table.

    Example:
        service = CatalogSyncService(repository, DatabaseCredentialResolver(repository))
        result = await service.sync("demo.myshopify.com")
    """

    def __init__(
        self,
        repository: AutopilotRepository,
        credentials: CredentialResolver,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.repository = repository
        self.credentials = credentials
        self._transport = transport

    async def sync(self, shop: str, limit: Optional[int] = None) -> SyncResult:
        """
        Fetch and upsert one page of products.

        Raises:
            MissingCredentialsError: no token stored for the shop
            ShopifyAPIError: the product listing failed
        """
        limit = limit or get_settings().shopify.products_page_size
        token = await self.credentials.get_access_token(shop)

        async with ShopifyClient(shop, token, transport=self._transport) as client:
            raw = await client.list_products(limit=limit)

        rows = normalize_products(raw)
        result = SyncResult(shop=shop, fetched=len(raw), dropped=len(raw) - rows.height)

        for row in rows.iter_rows(named=True):
            try:
                await self.repository.upsert_product(shop, row)
                result.upserted += 1
            except SQLAlchemyError as e:
                result.failed.append(row["shopify_product_id"])
                logger.error(
                    "Failed to upsert product",
                    shop=shop,
                    product_id=row["shopify_product_id"],
                    error=str(e),
                )

        logger.info(
            "Catalog sync complete",
            shop=shop,
            fetched=result.fetched,
            upserted=result.upserted,
            dropped=result.dropped,
            failed=len(result.failed),
        )
        return result

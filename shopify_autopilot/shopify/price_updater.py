"""
Shopify Price Updater

Applies an autopilot price by updating the first variant of the product.
"""

from decimal import Decimal
from typing import Callable, Optional

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.autopilot.exceptions import PriceUpdateError
from shopify_autopilot.shopify.client import ShopifyAPIError, ShopifyClient
from shopify_autopilot.shopify.credentials import CredentialResolver, MissingCredentialsError

logger = structlog.get_logger(__name__)


class ShopifyPriceUpdater:
    """
    Price updater backed by the Shopify Admin API.

    Every failure is raised as PriceUpdateError: a missing token, a product
    without a usable variant, an HTTP error or an unreadable response body.
    """

    def __init__(
        self,
        credentials: CredentialResolver,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client_factory: Callable[..., ShopifyClient] = ShopifyClient,
    ):
        self.credentials = credentials
        self._transport = transport
        self._client_factory = client_factory

    async def update_price(self, shop: str, product_id: int, new_price: Decimal) -> None:
        try:
            token = await self.credentials.get_access_token(shop)
        except (MissingCredentialsError, SQLAlchemyError) as e:
            raise PriceUpdateError(f"Cannot resolve credentials for {shop}: {e}") from e

        async with self._client_factory(shop, token, transport=self._transport) as client:
            try:
                product = await client.get_product(product_id)
                variants = product.get("variants") or []
                if not variants:
                    raise PriceUpdateError(f"Product {product_id} has no variants")
                variant_id = variants[0].get("id") if isinstance(variants[0], dict) else None
                if variant_id is None:
                    raise PriceUpdateError(f"First variant of product {product_id} has no id")
                await client.update_variant_price(variant_id, new_price)
            except ShopifyAPIError as e:
                raise PriceUpdateError(f"Shopify update failed for product {product_id}: {e}") from e

        logger.info("Shopify price updated", shop=shop, product_id=product_id, new_price=str(new_price))

"""
Shopify Admin REST Client

Thin async wrapper around the Admin REST endpoints the backend needs:
listing products, reading one product and updating a variant price.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
import structlog

from shopify_autopilot.config import get_settings

logger = structlog.get_logger(__name__)


class ShopifyAPIError(Exception):
    """Non-2xx response or transport failure talking to Shopify"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ShopifyClient:
    """
    Admin REST client scoped to one shop and one access token.

    Example:
        async with ShopifyClient(shop, token) as client:
            products = await client.list_products()
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.shop = shop
        self.api_version = api_version or settings.shopify.api_version
        self._client = httpx.AsyncClient(
            base_url=f"https://{shop}/admin/api/{self.api_version}",
            headers={
                "X-Shopify-Access-Token": access_token,
                "Content-Type": "application/json",
            },
            timeout=timeout
            or httpx.Timeout(settings.shopify.request_timeout, connect=settings.shopify.connect_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Shopify request timed out", shop=self.shop, method=method, path=path)
            raise ShopifyAPIError(f"Timeout calling {method} {path}") from e
        except httpx.RequestError as e:
            logger.error("Shopify request failed", shop=self.shop, method=method, path=path, error=str(e))
            raise ShopifyAPIError(f"Request error calling {method} {path}: {e}") from e

        if response.is_error:
            logger.error(
                "Shopify API error",
                shop=self.shop,
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ShopifyAPIError(
                f"HTTP {response.status_code} from {method} {path}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Shopify returned a non-JSON body", shop=self.shop, method=method, path=path)
            raise ShopifyAPIError(
                f"Invalid JSON from {method} {path}: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise ShopifyAPIError(
                f"Unexpected payload from {method} {path}", status_code=response.status_code
            )
        return data

    async def list_products(self, limit: int = 50) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/products.json", params={"limit": limit})
        return data.get("products") or []

    async def get_product(self, product_id: int) -> Dict[str, Any]:
        data = await self._request("GET", f"/products/{product_id}.json")
        product = data.get("product")
        if not product or not isinstance(product, dict):
            raise ShopifyAPIError(f"Product {product_id} not returned", status_code=404)
        return product

    async def update_variant_price(self, variant_id: int, price: Decimal) -> Dict[str, Any]:
        payload = {"variant": {"id": variant_id, "price": f"{Decimal(price):.2f}"}}
        data = await self._request("PUT", f"/variants/{variant_id}.json", json=payload)
        return data.get("variant") or {}

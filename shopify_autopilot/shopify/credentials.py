"""
Shop Credentials

Access tokens are resolved per shop from the shops table on every use; the
process never keeps a live token in global state.
"""

from typing import Protocol

from shopify_autopilot.database.repository import AutopilotRepository


class MissingCredentialsError(Exception):
    """No access token stored for the shop"""

    def __init__(self, shop: str):
        self.shop = shop
        super().__init__(f"No access token for {shop}")


class CredentialResolver(Protocol):
    async def get_access_token(self, shop: str) -> str:
        ...


class DatabaseCredentialResolver:
    """Reads the shop's access token from persistent storage."""

    def __init__(self, repository: AutopilotRepository):
        self.repository = repository

    async def get_access_token(self, shop: str) -> str:
        token = await self.repository.get_access_token(shop)
        if not token:
            raise MissingCredentialsError(shop)
        return token

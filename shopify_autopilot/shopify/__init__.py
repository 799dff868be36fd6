"""
Shopify Integration Module
"""
from .client import ShopifyClient, ShopifyAPIError
from .credentials import CredentialResolver, DatabaseCredentialResolver, MissingCredentialsError
from .price_updater import ShopifyPriceUpdater

__all__ = [
    "ShopifyClient",
    "ShopifyAPIError",
    "CredentialResolver",
    "DatabaseCredentialResolver",
    "MissingCredentialsError",
    "ShopifyPriceUpdater",
]

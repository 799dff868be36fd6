"""
API Dependencies

Collaborators injected into route handlers. Tests swap them through
app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends
from redis.asyncio import Redis

from shopify_autopilot.autopilot.engine import PriceUpdater
from shopify_autopilot.config import get_settings
from shopify_autopilot.database.connection import get_session_factory
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.cache import get_redis
from shopify_autopilot.shopify.credentials import CredentialResolver, DatabaseCredentialResolver
from shopify_autopilot.shopify.price_updater import ShopifyPriceUpdater


def get_repository() -> AutopilotRepository:
    return AutopilotRepository(get_session_factory())


def get_credentials(
    repository: AutopilotRepository = Depends(get_repository),
) -> CredentialResolver:
    return DatabaseCredentialResolver(repository)


def get_price_updater(
    credentials: CredentialResolver = Depends(get_credentials),
) -> PriceUpdater:
    return ShopifyPriceUpdater(credentials)


def get_run_lock_redis() -> Optional[Redis]:
    """Redis client for run locks, None when locking is disabled or Redis is down"""
    if not get_settings().autopilot.run_lock_enabled:
        return None
    return get_redis()

"""
Per-Shop Run Lock

Overlapping runs for one shop (a manual trigger during a scheduled run) could
apply conflicting prices. A Redis lock keyed by shop domain serializes them;
the second run fails fast instead of waiting. When Redis cannot be reached
the run goes ahead unlocked.
"""

from typing import Optional

import structlog
from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import RedisError

from shopify_autopilot.autopilot.exceptions import AutopilotRunInProgress

logger = structlog.get_logger(__name__)


def lock_key(shop: str) -> str:
    return f"autopilot:run-lock:{shop}"


class ShopRunLock:
    """
    Async context manager holding the run lock for one shop.

    Example:
        async with ShopRunLock(redis, "demo.myshopify.com", timeout=900):
            await engine.run("demo.myshopify.com")
    """

    def __init__(self, redis: Redis, shop: str, timeout: int = 900):
        self.shop = shop
        self._lock: Lock = redis.lock(lock_key(shop), timeout=timeout, blocking=False)
        self._acquired = False

    async def __aenter__(self) -> "ShopRunLock":
        try:
            acquired = await self._lock.acquire(blocking=False)
        except RedisError as e:
            logger.warning("Run lock unavailable, running unlocked", shop=self.shop, error=str(e))
            return self

        if not acquired:
            logger.warning("Autopilot run already in progress", shop=self.shop)
            raise AutopilotRunInProgress(self.shop)
        self._acquired = True
        logger.debug("Run lock acquired", shop=self.shop)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        if not self._acquired:
            return None
        try:
            await self._lock.release()
        except RedisError as e:
            # LockError when it expired first; otherwise the key times out on its own
            logger.warning("Run lock release failed", shop=self.shop, error=str(e))
        self._acquired = False
        return None

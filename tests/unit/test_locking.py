"""
Unit Tests - Per-Shop Run Lock
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError

from shopify_autopilot.autopilot.exceptions import AutopilotRunInProgress
from shopify_autopilot.autopilot.locking import ShopRunLock, lock_key
from tests.conftest import SHOP


def make_redis(acquired=True, release_error=None, acquire_error=None):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=acquired, side_effect=acquire_error)
    lock.release = AsyncMock(side_effect=release_error)
    redis = MagicMock()
    redis.lock.return_value = lock
    return redis, lock


class TestShopRunLock:
    """Tests for ShopRunLock"""

    async def test_acquires_and_releases(self):
        redis, lock = make_redis()

        async with ShopRunLock(redis, SHOP, timeout=60):
            lock.release.assert_not_awaited()

        redis.lock.assert_called_once_with(lock_key(SHOP), timeout=60, blocking=False)
        lock.acquire.assert_awaited_once_with(blocking=False)
        lock.release.assert_awaited_once()

    async def test_held_lock_fails_fast(self):
        redis, lock = make_redis(acquired=False)

        with pytest.raises(AutopilotRunInProgress):
            async with ShopRunLock(redis, SHOP):
                pass

        lock.release.assert_not_awaited()

    async def test_releases_when_body_raises(self):
        redis, lock = make_redis()

        with pytest.raises(RuntimeError):
            async with ShopRunLock(redis, SHOP):
                raise RuntimeError("boom")

        lock.release.assert_awaited_once()

    async def test_expired_lock_release_is_tolerated(self):
        redis, _ = make_redis(release_error=LockError("Cannot release an unlocked lock"))

        async with ShopRunLock(redis, SHOP):
            pass

    async def test_unreachable_redis_runs_unlocked(self):
        """Connection loss while acquiring lets the run through without a lock"""
        redis, lock = make_redis(acquire_error=RedisConnectionError("Connection refused"))
        ran = False

        async with ShopRunLock(redis, SHOP):
            ran = True

        assert ran
        lock.release.assert_not_awaited()

    async def test_connection_loss_on_release_is_tolerated(self):
        redis, lock = make_redis(release_error=RedisConnectionError("Connection reset"))

        async with ShopRunLock(redis, SHOP):
            pass

        lock.release.assert_awaited_once()

    def test_key_is_per_shop(self):
        assert lock_key("a.myshopify.com") != lock_key("b.myshopify.com")

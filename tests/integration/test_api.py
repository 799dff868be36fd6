"""
Integration Tests - HTTP API
"""
import uuid
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shopify_autopilot.database.models import ActionKind, ActionStatus, AutopilotMode, RiskLevel
from shopify_autopilot.main import app
from shopify_autopilot.serving.api.dependencies import (
    get_credentials,
    get_price_updater,
    get_repository,
    get_run_lock_redis,
)
from shopify_autopilot.shopify.credentials import MissingCredentialsError
from tests.conftest import SHOP, FailingPriceUpdater


class NoCredentials:
    async def get_access_token(self, shop):
        raise MissingCredentialsError(shop)


@pytest.fixture
async def client(repository, price_updater):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_price_updater] = lambda: price_updater
    app.dependency_overrides[get_run_lock_redis] = lambda: None
    app.dependency_overrides[get_credentials] = lambda: NoCredentials()

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


class TestHealth:
    async def test_liveness(self, client):
        response = await client.get("/api/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}


class TestProducts:
    """Tests for /api/products"""

    async def test_shop_is_required(self, client):
        response = await client.get("/api/products/list")
        assert response.status_code == 422

    async def test_list(self, client, seed):
        await seed.product(1, "19.99", title="Tee")

        response = await client.get("/api/products/list", params={"shop": SHOP})

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["shopify_product_id"] == 1
        assert Decimal(body[0]["price"]) == Decimal("19.99")

    async def test_sync_without_credentials(self, client):
        response = await client.post("/api/products/sync", params={"shop": SHOP})
        assert response.status_code == 400


class TestAutopilot:
    """Tests for /api/autopilot"""

    async def test_run(self, client, seed):
        await seed.shop()
        await seed.product(1, "100.00", inventory=2)

        response = await client.post("/api/autopilot/run", params={"shop": SHOP})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["summary"]["analyzed"] == 1
        assert body["summary"]["price_suggestions"] == 1
        assert body["summary"]["mode"] == "manual"

    async def test_run_without_products(self, client, seed):
        await seed.shop()

        response = await client.post("/api/autopilot/run", params={"shop": SHOP})

        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert "no products" in body["error"]

    async def test_run_in_progress(self, client, seed):
        await seed.shop()
        await seed.product(1, "100.00")
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=False)
        redis = MagicMock()
        redis.lock.return_value = lock
        app.dependency_overrides[get_run_lock_redis] = lambda: redis

        response = await client.post("/api/autopilot/run", params={"shop": SHOP})

        assert response.status_code == 409

    async def test_run_proceeds_when_lock_backend_is_down(self, client, seed):
        await seed.shop()
        await seed.product(1, "100.00")
        lock = MagicMock()
        lock.acquire = AsyncMock(side_effect=RedisConnectionError("Connection refused"))
        redis = MagicMock()
        redis.lock.return_value = lock
        app.dependency_overrides[get_run_lock_redis] = lambda: redis

        response = await client.post("/api/autopilot/run", params={"shop": SHOP})

        assert response.status_code == 200
        assert response.json()["summary"]["analyzed"] == 1

    async def test_run_requires_shop(self, client):
        response = await client.post("/api/autopilot/run")
        assert response.status_code == 422

    async def test_runs_history(self, client, seed):
        await seed.shop()
        await seed.product(1, "100.00")
        await client.post("/api/autopilot/run", params={"shop": SHOP})

        response = await client.get("/api/autopilot/runs", params={"shop": SHOP})

        assert response.status_code == 200
        assert len(response.json()) == 1
        assert response.json()[0]["analyzed"] == 1

    async def test_config_defaults(self, client):
        response = await client.get("/api/autopilot/config", params={"shop": SHOP})
        assert response.json() == {"shop": SHOP, "mode": "manual", "risk_level": "normal"}

    async def test_config_update(self, client, repository):
        response = await client.post(
            "/api/autopilot/config",
            json={"shop": SHOP, "mode": "full", "risk_level": "aggressive"},
        )

        assert response.status_code == 200
        config = await repository.get_shop_config(SHOP)
        assert config.mode == AutopilotMode.FULL
        assert config.risk_level == RiskLevel.AGGRESSIVE

    async def test_config_partial_update(self, client, seed, repository):
        await seed.shop(mode=AutopilotMode.ASSIST, risk_level=RiskLevel.SAFE)

        await client.post("/api/autopilot/config", json={"shop": SHOP, "risk_level": "normal"})

        config = await repository.get_shop_config(SHOP)
        assert config.mode == AutopilotMode.ASSIST
        assert config.risk_level == RiskLevel.NORMAL

    async def test_config_rejects_unknown_mode(self, client):
        response = await client.post("/api/autopilot/config", json={"shop": SHOP, "mode": "yolo"})
        assert response.status_code == 422


class TestActions:
    """Tests for /api/ai-actions"""

    async def _add_action(self, repository):
        return await repository.add_action(
            shop=SHOP,
            product_id=1,
            action=ActionKind.PRICE_ADJUSTMENT.value,
            details={"kind": "price_adjustment"},
            reason="Price increase from 100.00 to 108.00.",
            status=ActionStatus.SUGGESTED,
        )

    async def test_list_filters_by_status(self, client, repository):
        await self._add_action(repository)

        suggested = await client.get("/api/ai-actions/list", params={"shop": SHOP, "status": "suggested"})
        completed = await client.get("/api/ai-actions/list", params={"shop": SHOP, "status": "completed"})

        assert len(suggested.json()) == 1
        assert completed.json() == []

    async def test_approve_records_feedback(self, client, repository):
        action = await self._add_action(repository)

        response = await client.post(
            "/api/ai-actions/update",
            json={"id": str(action.id), "status": "approved"},
        )

        assert response.status_code == 200
        assert response.json()["feedback"] == "approved"
        assert response.json()["action"]["status"] == "approved"
        feedback = await repository.list_feedback(SHOP, 1, ActionKind.PRICE_ADJUSTMENT.value)
        assert len(feedback) == 1

    async def test_any_other_status_counts_as_rejection(self, client, repository):
        action = await self._add_action(repository)

        response = await client.post(
            "/api/ai-actions/update",
            json={"id": str(action.id), "status": "completed"},
        )

        assert response.json()["feedback"] == "rejected"
        assert await repository.feedback_totals(SHOP) == (0, 1)

    async def test_unknown_action(self, client):
        response = await client.post(
            "/api/ai-actions/update",
            json={"id": str(uuid.uuid4()), "status": "approved"},
        )
        assert response.status_code == 404


class TestFeedback:
    """Tests for /api/ai-feedback"""

    async def test_add_and_advice(self, client):
        for verdict in ["approved"] * 8 + ["rejected"] * 2:
            response = await client.post(
                "/api/ai-feedback/add",
                json={
                    "shop": SHOP,
                    "product_id": 1,
                    "action": "price_adjustment",
                    "feedback": verdict,
                },
            )
            assert response.status_code == 200

        response = await client.get("/api/ai-feedback/advice", params={"shop": SHOP})

        body = response.json()
        assert body["total_feedback"] == 10
        assert body["recommended_mode"] == "full"
        assert body["recommended_risk"] == "aggressive"

    async def test_advice_without_feedback(self, client):
        response = await client.get("/api/ai-feedback/advice", params={"shop": SHOP})
        assert response.json()["recommended_mode"] == "assist"


class TestEventsAndPerformance:
    async def test_next_events(self, client, seed):
        await seed.event("Past Sale", ["old"], start=date.today() - timedelta(days=30), days=5)
        await seed.event("Winter Sale", ["winter"])

        response = await client.get("/api/events/next")

        assert [e["name"] for e in response.json()] == ["Winter Sale"]

    async def test_performance_list(self, client, seed):
        await seed.performance(1, 0.05, 0.3)

        response = await client.get("/api/performance/list", params={"shop": SHOP})

        assert response.json()[0]["conversion_rate"] == 0.05


class TestShopifyPriceUpdate:
    """Tests for /api/shopify/update-price"""

    async def test_updates_remote_and_local_price(self, client, seed, repository, price_updater):
        await seed.product(1, "100.00")

        response = await client.post(
            "/api/shopify/update-price",
            json={"shop": SHOP, "product_id": 1, "new_price": "89.99"},
        )

        assert response.status_code == 200
        assert price_updater.calls == [(SHOP, 1, Decimal("89.99"))]
        products = await repository.list_products(SHOP)
        assert products[0].price == Decimal("89.99")

    async def test_remote_failure(self, client, seed, repository):
        await seed.product(1, "100.00")
        app.dependency_overrides[get_price_updater] = lambda: FailingPriceUpdater()

        response = await client.post(
            "/api/shopify/update-price",
            json={"shop": SHOP, "product_id": 1, "new_price": "89.99"},
        )

        assert response.status_code == 502
        products = await repository.list_products(SHOP)
        assert products[0].price == Decimal("100.00")

    async def test_rejects_non_positive_price(self, client):
        response = await client.post(
            "/api/shopify/update-price",
            json={"shop": SHOP, "product_id": 1, "new_price": "0"},
        )
        assert response.status_code == 422

"""
Test Suite Configuration
"""
import asyncio
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from shopify_autopilot.autopilot.exceptions import PriceUpdateError
from shopify_autopilot.database.connection import build_session_factory, session_scope
from shopify_autopilot.database.models import (
    AIFeedback,
    AutopilotMode,
    Base,
    FeedbackVerdict,
    Product,
    ProductPerformance,
    RiskLevel,
    SeasonalEvent,
    Shop,
)
from shopify_autopilot.database.repository import AutopilotRepository

SHOP = "demo.myshopify.com"


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
def repository(session_factory) -> AutopilotRepository:
    return AutopilotRepository(session_factory)


# =============================================================================
# SEEDING
# =============================================================================

class Seeder:
    """Writes fixture rows straight through the session factory"""

    def __init__(self, session_factory):
        self._factory = session_factory

    async def shop(
        self,
        shop: str = SHOP,
        mode: AutopilotMode = AutopilotMode.MANUAL,
        risk_level: RiskLevel = RiskLevel.NORMAL,
        access_token: Optional[str] = "shpat_test",
    ) -> None:
        async with session_scope(self._factory) as db:
            db.add(Shop(
                shop_domain=shop,
                access_token=access_token,
                autopilot_mode=mode,
                risk_level=risk_level,
            ))

    async def product(
        self,
        product_id: int,
        price: str,
        title: str = "Plain Tee",
        inventory: int = 50,
        shop: str = SHOP,
        variant_id: Optional[int] = None,
    ) -> None:
        async with session_scope(self._factory) as db:
            db.add(Product(
                shop_domain=shop,
                shopify_product_id=product_id,
                variant_id=variant_id,
                title=title,
                status="active",
                price=Decimal(price),
                inventory_quantity=inventory,
            ))

    async def performance(
        self,
        product_id: int,
        conversion_rate: Optional[float],
        profit_margin: Optional[float],
        shop: str = SHOP,
    ) -> None:
        async with session_scope(self._factory) as db:
            db.add(ProductPerformance(
                shop_domain=shop,
                product_id=product_id,
                conversion_rate=conversion_rate,
                profit_margin=profit_margin,
            ))

    async def event(
        self,
        name: str,
        keywords: List[str],
        start: Optional[date] = None,
        days: int = 10,
        active: bool = True,
    ) -> None:
        start = start or date.today() - timedelta(days=1)
        async with session_scope(self._factory) as db:
            db.add(SeasonalEvent(
                name=name,
                start_date=start,
                end_date=start + timedelta(days=days),
                active=active,
                product_keywords=keywords,
            ))

    async def feedback(
        self,
        product_id: int,
        action: str,
        approved: int = 0,
        rejected: int = 0,
        shop: str = SHOP,
    ) -> None:
        async with session_scope(self._factory) as db:
            for verdict, count in (
                (FeedbackVerdict.APPROVED, approved),
                (FeedbackVerdict.REJECTED, rejected),
            ):
                for _ in range(count):
                    db.add(AIFeedback(
                        shop_domain=shop,
                        product_id=product_id,
                        action=action,
                        feedback=verdict,
                    ))


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


# =============================================================================
# PRICE UPDATERS
# =============================================================================

class RecordingPriceUpdater:
    """Accepts every update and remembers it"""

    def __init__(self):
        self.calls: List[Tuple[str, int, Decimal]] = []

    async def update_price(self, shop: str, product_id: int, new_price: Decimal) -> None:
        self.calls.append((shop, product_id, new_price))


class FailingPriceUpdater(RecordingPriceUpdater):
    async def update_price(self, shop: str, product_id: int, new_price: Decimal) -> None:
        await super().update_price(shop, product_id, new_price)
        raise PriceUpdateError("HTTP 422 from PUT /variants/1.json")


class HangingPriceUpdater(RecordingPriceUpdater):
    async def update_price(self, shop: str, product_id: int, new_price: Decimal) -> None:
        await super().update_price(shop, product_id, new_price)
        await asyncio.sleep(5)


@pytest.fixture
def price_updater() -> RecordingPriceUpdater:
    return RecordingPriceUpdater()

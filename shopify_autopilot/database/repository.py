"""
Autopilot Repository

Data access for the autopilot and the API. Every method runs in its own short
transaction so one failing read or write never poisons the session used by
the rest of a run.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopify_autopilot.database.connection import session_scope
from shopify_autopilot.database.models import (
    AIAction,
    AIFeedback,
    ActionStatus,
    AutopilotMode,
    AutopilotRun,
    FeedbackVerdict,
    Product,
    ProductPerformance,
    RiskLevel,
    SeasonalEvent,
    Shop,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ShopConfig:
    """Automation settings read once per autopilot run"""
    mode: AutopilotMode = AutopilotMode.MANUAL
    risk_level: RiskLevel = RiskLevel.NORMAL


class AutopilotRepository:
    """
    Row-level access to shops, catalog, events, feedback, actions and runs.

    Example:
        repo = AutopilotRepository(get_session_factory())
        products = await repo.list_products("demo.myshopify.com")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    # -------------------------------------------------------------------------
    # Shops
    # -------------------------------------------------------------------------

    async def get_shop_config(self, shop: str) -> ShopConfig:
        """Mode and risk level for a shop, defaults when the shop is unknown."""
        async with self._session() as db:
            row = await db.get(Shop, shop)
        if row is None:
            return ShopConfig()
        return ShopConfig(mode=row.autopilot_mode, risk_level=row.risk_level)

    async def update_shop_config(
        self,
        shop: str,
        mode: Optional[AutopilotMode] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> ShopConfig:
        """Write mode and/or risk level, creating the shop row if needed."""
        async with self._session() as db:
            row = await db.get(Shop, shop)
            if row is None:
                row = Shop(
                    shop_domain=shop,
                    autopilot_mode=AutopilotMode.MANUAL,
                    risk_level=RiskLevel.NORMAL,
                )
                db.add(row)
            if mode is not None:
                row.autopilot_mode = mode
            if risk_level is not None:
                row.risk_level = risk_level
            config = ShopConfig(mode=row.autopilot_mode, risk_level=row.risk_level)

        logger.info("Shop config updated", shop=shop, mode=config.mode.value, risk=config.risk_level.value)
        return config

    async def get_access_token(self, shop: str) -> Optional[str]:
        async with self._session() as db:
            row = await db.get(Shop, shop)
        return row.access_token if row else None

    async def list_shop_domains(self, include_manual: bool = False) -> List[str]:
        """Shops eligible for scheduled runs."""
        query = select(Shop.shop_domain).order_by(Shop.shop_domain)
        if not include_manual:
            query = query.where(Shop.autopilot_mode != AutopilotMode.MANUAL)
        async with self._session() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def list_products(self, shop: str) -> List[Product]:
        async with self._session() as db:
            result = await db.execute(
                select(Product)
                .where(Product.shop_domain == shop)
                .order_by(Product.created_at.desc(), Product.shopify_product_id)
            )
            return list(result.scalars().all())

    async def upsert_product(self, shop: str, row: Dict[str, Any]) -> Product:
        """
        Insert or update one product keyed by (shop, shopify_product_id).

        Args:
            shop: Shop domain
            row: Normalized product row from the catalog sync
        """
        async with self._session() as db:
            result = await db.execute(
                select(Product).where(
                    Product.shop_domain == shop,
                    Product.shopify_product_id == row["shopify_product_id"],
                )
            )
            product = result.scalar_one_or_none()
            if product is None:
                product = Product(shop_domain=shop, shopify_product_id=row["shopify_product_id"])
                db.add(product)

            product.variant_id = row.get("variant_id")
            product.title = row["title"]
            product.status = row.get("status")
            product.price = Decimal(str(row["price"]))
            product.inventory_quantity = int(row.get("inventory_quantity") or 0)
            product.image_url = row.get("image_url")
            return product

    async def update_product_price(self, shop: str, product_id: int, price: Decimal) -> bool:
        """Overwrite the local price copy after a successful remote apply."""
        async with self._session() as db:
            result = await db.execute(
                select(Product).where(
                    Product.shop_domain == shop,
                    Product.shopify_product_id == product_id,
                )
            )
            product = result.scalar_one_or_none()
            if product is None:
                return False
            product.price = price
            return True

    # -------------------------------------------------------------------------
    # Performance
    # -------------------------------------------------------------------------

    async def get_performance(self, shop: str, product_id: int) -> Optional[ProductPerformance]:
        async with self._session() as db:
            result = await db.execute(
                select(ProductPerformance).where(
                    ProductPerformance.shop_domain == shop,
                    ProductPerformance.product_id == product_id,
                )
            )
            return result.scalar_one_or_none()

    async def list_performance(self, shop: str) -> List[ProductPerformance]:
        async with self._session() as db:
            result = await db.execute(
                select(ProductPerformance)
                .where(ProductPerformance.shop_domain == shop)
                .order_by(ProductPerformance.product_id)
            )
            return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Seasonal events
    # -------------------------------------------------------------------------

    async def get_active_event(self) -> Optional[SeasonalEvent]:
        """First active event by start date. Overlapping events are not merged."""
        async with self._session() as db:
            result = await db.execute(
                select(SeasonalEvent)
                .where(SeasonalEvent.active.is_(True))
                .order_by(SeasonalEvent.start_date.asc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def list_upcoming_events(self, today: date) -> List[SeasonalEvent]:
        """Active events that have not ended yet, soonest first."""
        async with self._session() as db:
            result = await db.execute(
                select(SeasonalEvent)
                .where(
                    SeasonalEvent.active.is_(True),
                    SeasonalEvent.end_date >= today,
                )
                .order_by(SeasonalEvent.start_date.asc())
            )
            return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------

    async def list_feedback(self, shop: str, product_id: int, action: str) -> List[AIFeedback]:
        """Full feedback history for one (shop, product, action kind)."""
        async with self._session() as db:
            result = await db.execute(
                select(AIFeedback).where(
                    AIFeedback.shop_domain == shop,
                    AIFeedback.product_id == product_id,
                    AIFeedback.action == action,
                )
            )
            return list(result.scalars().all())

    async def add_feedback(
        self,
        shop: str,
        product_id: int,
        action: str,
        verdict: FeedbackVerdict,
        reason: Optional[str] = None,
    ) -> AIFeedback:
        async with self._session() as db:
            feedback = AIFeedback(
                shop_domain=shop,
                product_id=product_id,
                action=action,
                feedback=verdict,
                reason=reason,
            )
            db.add(feedback)
        return feedback

    async def feedback_totals(self, shop: str) -> Tuple[int, int]:
        """(approved, rejected) counts across all of a shop's feedback."""
        async with self._session() as db:
            result = await db.execute(
                select(AIFeedback.feedback, func.count(AIFeedback.id))
                .where(AIFeedback.shop_domain == shop)
                .group_by(AIFeedback.feedback)
            )
            counts = {verdict: count for verdict, count in result.all()}
        return (
            counts.get(FeedbackVerdict.APPROVED, 0),
            counts.get(FeedbackVerdict.REJECTED, 0),
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def add_action(
        self,
        shop: str,
        product_id: int,
        action: str,
        details: Dict[str, Any],
        reason: str,
        status: ActionStatus,
    ) -> AIAction:
        async with self._session() as db:
            row = AIAction(
                shop_domain=shop,
                product_id=product_id,
                action=action,
                details=details,
                reason=reason,
                status=status,
            )
            db.add(row)
        return row

    async def list_actions(
        self,
        shop: str,
        status: Optional[ActionStatus] = None,
        limit: int = 100,
    ) -> List[AIAction]:
        query = select(AIAction).where(AIAction.shop_domain == shop)
        if status is not None:
            query = query.where(AIAction.status == status)
        query = query.order_by(AIAction.created_at.desc()).limit(limit)
        async with self._session() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def update_action_status(
        self,
        action_id: uuid.UUID,
        status: ActionStatus,
    ) -> Optional[Tuple[AIAction, AIFeedback]]:
        """
        Flip an action's status and record the merchant's verdict.

        Exactly one feedback row is written per call: ``approved`` when the new
        status is approved, ``rejected`` otherwise.

        Returns:
            (action, feedback), or None when the action does not exist
        """
        async with self._session() as db:
            action = await db.get(AIAction, action_id)
            if action is None:
                return None

            action.status = status
            verdict = (
                FeedbackVerdict.APPROVED
                if status == ActionStatus.APPROVED
                else FeedbackVerdict.REJECTED
            )
            feedback = AIFeedback(
                shop_domain=action.shop_domain,
                product_id=action.product_id,
                action=action.action,
                feedback=verdict,
                reason=action.reason or "user feedback",
                action_id=action.id,
            )
            db.add(feedback)

        logger.info(
            "Feedback recorded",
            action_id=str(action_id),
            action=action.action,
            feedback=verdict.value,
        )
        return action, feedback

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    async def add_run(
        self,
        shop: str,
        mode: AutopilotMode,
        risk_level: RiskLevel,
        counters: Dict[str, int],
    ) -> AutopilotRun:
        async with self._session() as db:
            run = AutopilotRun(shop_domain=shop, mode=mode, risk_level=risk_level, **counters)
            db.add(run)
        return run

    async def list_runs(self, shop: str, limit: int = 20) -> List[AutopilotRun]:
        async with self._session() as db:
            result = await db.execute(
                select(AutopilotRun)
                .where(AutopilotRun.shop_domain == shop)
                .order_by(AutopilotRun.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

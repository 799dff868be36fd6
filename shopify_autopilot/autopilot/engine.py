"""
Autopilot Engine

One autopilot run walks a shop's catalog product by product:

    base price -> feedback gate -> risk scaling -> log suggestion
        -> (full mode) apply on Shopify -> log application
    ad boost thresholds -> feedback gate -> log suggestion

Loading the shop config or the catalog is fatal to the run. Everything that
happens for a single product (metric reads, feedback reads, the remote price
update, audit writes) is recovered locally so the loop always reaches the
last product.
"""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.autopilot.actions import (
    ActionLogger,
    AdBoostSkippedDetails,
    AdBoostSuggestedDetails,
    PriceAdjustmentDetails,
    PriceAppliedDetails,
    PriceSkippedDetails,
)
from shopify_autopilot.autopilot.exceptions import AutopilotRunError, PriceUpdateError
from shopify_autopilot.autopilot.feedback import FeedbackGate
from shopify_autopilot.autopilot.locking import ShopRunLock
from shopify_autopilot.autopilot.marketing import evaluate_ad_boost
from shopify_autopilot.autopilot.reasons import generate_ad_boost_reason, generate_reason
from shopify_autopilot.autopilot.rules import (
    PricingContext,
    evaluate_price_rules,
    scale_price_change,
)
from shopify_autopilot.config import get_settings
from shopify_autopilot.config.logging import run_context
from shopify_autopilot.database.models import (
    ActionKind,
    ActionStatus,
    AutopilotMode,
    Product,
    ProductPerformance,
    RiskLevel,
    SeasonalEvent,
)
from shopify_autopilot.database.repository import AutopilotRepository, ShopConfig

logger = structlog.get_logger(__name__)


class PriceUpdater(Protocol):
    """Pushes a new price to the commerce platform. Raises PriceUpdateError on failure."""

    async def update_price(self, shop: str, product_id: int, new_price: Decimal) -> None:
        ...


class RunSummary(BaseModel):
    """Aggregate counters of one autopilot run"""
    shop: str
    mode: AutopilotMode
    risk_level: RiskLevel
    analyzed: int = 0
    price_suggestions: int = 0
    applied: int = 0
    skipped_due_to_feedback: int = 0
    marketing_suggestions: int = 0

    def counters(self) -> Dict[str, int]:
        return {
            "analyzed": self.analyzed,
            "price_suggestions": self.price_suggestions,
            "applied": self.applied,
            "skipped_due_to_feedback": self.skipped_due_to_feedback,
            "marketing_suggestions": self.marketing_suggestions,
        }


class AutopilotEngine:
    """
    Pricing and marketing decision engine.

    Example:
        engine = AutopilotEngine(repository, ShopifyPriceUpdater(credentials))
        summary = await engine.run("demo.myshopify.com")
    """

    def __init__(
        self,
        repository: AutopilotRepository,
        price_updater: PriceUpdater,
        price_update_timeout: Optional[float] = None,
        persist_runs: Optional[bool] = None,
    ):
        settings = get_settings()
        self.repository = repository
        self.price_updater = price_updater
        self.gate = FeedbackGate(repository)
        self.action_logger = ActionLogger(repository)
        self.price_update_timeout = (
            price_update_timeout
            if price_update_timeout is not None
            else settings.autopilot.price_update_timeout_seconds
        )
        self.persist_runs = (
            persist_runs if persist_runs is not None else settings.autopilot.persist_runs
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self, shop: str) -> RunSummary:
        """
        Run the autopilot once over a shop's catalog.

        Raises:
            AutopilotRunError: config or catalog unreadable, or catalog empty
        """
        log = logger.bind(shop=shop)
        log.info("Running autopilot")

        config = await self._load_config(shop)
        event = await self._load_active_event(shop)
        products = await self._load_products(shop)

        log.info(
            "Autopilot configuration loaded",
            mode=config.mode.value,
            risk=config.risk_level.value,
            active_event=event.name if event else None,
            products=len(products),
        )

        summary = RunSummary(shop=shop, mode=config.mode, risk_level=config.risk_level)

        for product in products:
            summary.analyzed += 1
            performance = await self._load_performance(shop, product)
            await self._evaluate_price(shop, product, performance, event, config, summary)
            await self._evaluate_marketing(shop, product, performance, event, config, summary)

        log.info("Autopilot finished", **summary.counters())

        if self.persist_runs:
            await self._persist_run(summary)

        return summary

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def _load_config(self, shop: str) -> ShopConfig:
        try:
            return await self.repository.get_shop_config(shop)
        except SQLAlchemyError as e:
            raise AutopilotRunError(shop, f"shop configuration unreadable: {e}") from e

    async def _load_active_event(self, shop: str) -> Optional[SeasonalEvent]:
        try:
            return await self.repository.get_active_event()
        except SQLAlchemyError as e:
            logger.warning("Failed to load active event", shop=shop, error=str(e))
            return None

    async def _load_products(self, shop: str) -> List[Product]:
        try:
            products = await self.repository.list_products(shop)
        except SQLAlchemyError as e:
            raise AutopilotRunError(shop, f"products unreadable: {e}") from e
        if not products:
            raise AutopilotRunError(shop, "no products found")
        return products

    async def _load_performance(self, shop: str, product: Product) -> Optional[ProductPerformance]:
        try:
            return await self.repository.get_performance(shop, product.shopify_product_id)
        except SQLAlchemyError as e:
            logger.warning(
                "Failed to load performance, treating as neutral",
                shop=shop,
                product_id=product.shopify_product_id,
                error=str(e),
            )
            return None

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    async def _evaluate_price(
        self,
        shop: str,
        product: Product,
        performance: Optional[ProductPerformance],
        event: Optional[SeasonalEvent],
        config: ShopConfig,
        summary: RunSummary,
    ) -> None:
        product_id = product.shopify_product_id
        risk = config.risk_level
        evaluation = evaluate_price_rules(PricingContext.build(product, performance, event))
        if not evaluation.changed:
            return

        old_price = evaluation.current_price
        decision = await self.gate.check(shop, product_id, ActionKind.PRICE_ADJUSTMENT, risk)

        if decision.suppress:
            summary.skipped_due_to_feedback += 1
            logger.info(
                "Skipping price change, merchant disagreed before",
                shop=shop,
                product=product.title,
                approved=decision.approved,
                rejected=decision.rejected,
            )
            await self.action_logger.log(
                shop,
                product_id,
                PriceSkippedDetails(
                    old_price=old_price,
                    suggested_price=scale_price_change(old_price, evaluation.base_price, risk),
                    approved=decision.approved,
                    rejected=decision.rejected,
                    risk=risk,
                ),
                "Skipped due to repeated user rejection.",
                ActionStatus.SKIPPED,
            )
            return

        new_price = scale_price_change(old_price, evaluation.base_price, risk)
        if new_price == old_price:
            return

        reason = generate_reason(product, performance, new_price, old_price, event)
        summary.price_suggestions += 1
        logger.info(
            "Price change suggested",
            shop=shop,
            product=product.title,
            old_price=str(old_price),
            new_price=str(new_price),
            rules=evaluation.matched_rules,
            mode=config.mode.value,
        )
        await self.action_logger.log(
            shop,
            product_id,
            PriceAdjustmentDetails(
                old_price=old_price,
                base_price=evaluation.base_price,
                new_price=new_price,
                mode=config.mode,
                risk=risk,
                rules=evaluation.matched_rules,
            ),
            reason,
            ActionStatus.SUGGESTED,
        )

        if config.mode == AutopilotMode.FULL:
            await self._apply_price(shop, product, old_price, new_price, config, summary)

    async def _apply_price(
        self,
        shop: str,
        product: Product,
        old_price: Decimal,
        new_price: Decimal,
        config: ShopConfig,
        summary: RunSummary,
    ) -> None:
        product_id = product.shopify_product_id
        try:
            await asyncio.wait_for(
                self.price_updater.update_price(shop, product_id, new_price),
                timeout=self.price_update_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Shopify price update timed out",
                shop=shop,
                product_id=product_id,
                timeout=self.price_update_timeout,
            )
            return
        except PriceUpdateError as e:
            logger.error("Shopify price update failed", shop=shop, product_id=product_id, error=str(e))
            return

        summary.applied += 1
        logger.info("Price updated on Shopify", shop=shop, product=product.title, new_price=str(new_price))

        await self.action_logger.log(
            shop,
            product_id,
            PriceAppliedDetails(
                old_price=old_price,
                new_price=new_price,
                mode=config.mode,
                risk=config.risk_level,
            ),
            "Applied automatically due to Full AI mode.",
            ActionStatus.COMPLETED,
        )

        try:
            await self.repository.update_product_price(shop, product_id, new_price)
        except SQLAlchemyError as e:
            logger.error("Failed to update local price copy", shop=shop, product_id=product_id, error=str(e))

    # -------------------------------------------------------------------------
    # Marketing
    # -------------------------------------------------------------------------

    async def _evaluate_marketing(
        self,
        shop: str,
        product: Product,
        performance: Optional[ProductPerformance],
        event: Optional[SeasonalEvent],
        config: ShopConfig,
        summary: RunSummary,
    ) -> None:
        product_id = product.shopify_product_id
        risk = config.risk_level
        evaluation = evaluate_ad_boost(product, performance, event, risk)
        if not evaluation.qualifies:
            return

        decision = await self.gate.check(shop, product_id, ActionKind.AD_BOOST_SUGGESTED, risk)

        if decision.suppress:
            summary.skipped_due_to_feedback += 1
            logger.info(
                "Not suggesting ads, merchant repeatedly rejected ad boosts",
                shop=shop,
                product=product.title,
            )
            await self.action_logger.log(
                shop,
                product_id,
                AdBoostSkippedDetails(
                    conversion_rate=evaluation.conversion_rate,
                    profit_margin=evaluation.profit_margin,
                    risk=risk,
                    approved=decision.approved,
                    rejected=decision.rejected,
                ),
                "Skipped ad boost due to repeated user rejection.",
                ActionStatus.SKIPPED,
            )
            return

        matched_event = event if evaluation.seasonal_match else None
        reason = generate_ad_boost_reason(
            evaluation.conversion_rate,
            evaluation.profit_margin,
            event=matched_event,
            approved_before=decision.approved,
            risk_level=risk,
        )
        await self.action_logger.log(
            shop,
            product_id,
            AdBoostSuggestedDetails(
                conversion_rate=evaluation.conversion_rate,
                profit_margin=evaluation.profit_margin,
                risk=risk,
                event=matched_event.name if matched_event else None,
            ),
            reason,
            ActionStatus.SUGGESTED,
        )
        summary.marketing_suggestions += 1
        logger.info("Ad boost suggested", shop=shop, product=product.title)

    # -------------------------------------------------------------------------
    # Run record
    # -------------------------------------------------------------------------

    async def _persist_run(self, summary: RunSummary) -> None:
        try:
            await self.repository.add_run(
                summary.shop,
                summary.mode,
                summary.risk_level,
                summary.counters(),
            )
        except SQLAlchemyError as e:
            logger.error("Failed to store autopilot run", shop=summary.shop, error=str(e))


async def run_autopilot(
    shop: str,
    repository: AutopilotRepository,
    price_updater: PriceUpdater,
    redis: Optional[Redis] = None,
    trigger: str = "api",
) -> RunSummary:
    """
    Run the autopilot for one shop, holding the shop's run lock when a Redis
    client is given. Every log line of the run carries the shop, the trigger
    and a run id.

    Raises:
        AutopilotRunInProgress: another run holds the lock
        AutopilotRunError: the run could not start
    """
    engine = AutopilotEngine(repository, price_updater)
    with run_context(shop, trigger=trigger):
        if redis is None:
            return await engine.run(shop)

        settings = get_settings()
        async with ShopRunLock(redis, shop, timeout=settings.autopilot.run_lock_timeout_seconds):
            return await engine.run(shop)

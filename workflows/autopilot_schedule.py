"""
Prefect Workflow Orchestration - Scheduled Autopilot

Runs the autopilot for every shop that has automation switched on. Each shop
runs in its own task; a shop that fails is logged and the flow moves on to
the next one.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from prefect import flow, task, get_run_logger
from redis.exceptions import RedisError

from shopify_autopilot.autopilot.engine import run_autopilot
from shopify_autopilot.autopilot.exceptions import AutopilotRunInProgress
from shopify_autopilot.config import get_settings
from shopify_autopilot.config.logging import configure_logging
from shopify_autopilot.database.connection import close_database, get_session_factory, init_database
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.cache import close_redis, get_redis, init_redis
from shopify_autopilot.shopify.credentials import DatabaseCredentialResolver
from shopify_autopilot.shopify.price_updater import ShopifyPriceUpdater

settings = get_settings()
logger = structlog.get_logger(__name__)


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="run_shop_autopilot",
    description="Run the pricing and marketing autopilot for one shop",
)
async def run_shop_autopilot(shop: str) -> dict:
    """Run one shop and return its run counters"""
    run_logger = get_run_logger()

    repository = AutopilotRepository(get_session_factory())
    price_updater = ShopifyPriceUpdater(DatabaseCredentialResolver(repository))
    redis = get_redis() if settings.autopilot.run_lock_enabled else None

    summary = await run_autopilot(shop, repository, price_updater, redis=redis, trigger="schedule")

    run_logger.info(
        f"Autopilot for {shop}: {summary.analyzed} analyzed, "
        f"{summary.price_suggestions} price suggestions, {summary.applied} applied"
    )
    return summary.model_dump(mode="json")


# =============================================================================
# SWEEP
# =============================================================================

async def sweep_shops(
    shops: List[str],
    runner: Callable[[str], Awaitable[dict]],
) -> Dict[str, Dict[str, Any]]:
    """
    Run every shop in turn. A shop that fails for any reason is recorded under
    "failed" and the sweep moves on.
    """
    results: Dict[str, Dict[str, Any]] = {"succeeded": {}, "failed": {}}

    for shop in shops:
        try:
            results["succeeded"][shop] = await runner(shop)
        except AutopilotRunInProgress as e:
            logger.warning("Shop skipped, run in progress", shop=shop)
            results["failed"][shop] = str(e)
        except Exception as e:
            logger.error("Autopilot failed for shop", shop=shop, error=str(e), exc_info=True)
            results["failed"][shop] = str(e)

    return results


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="scheduled_autopilot",
    description="Autopilot sweep over all automated shops",
)
async def scheduled_autopilot(shops: Optional[List[str]] = None) -> dict:
    """
    Scheduled autopilot sweep.

    Args:
        shops: Shops to run; defaults to every shop not in manual mode
    """
    run_logger = get_run_logger()
    configure_logging()

    await init_database()
    try:
        await init_redis()
    except (RedisError, OSError) as e:
        run_logger.warning(f"Redis unavailable, runs will not be locked: {e}")

    try:
        if shops is None:
            shops = await AutopilotRepository(get_session_factory()).list_shop_domains()

        run_logger.info(f"Scheduled autopilot over {len(shops)} shops")

        results = await sweep_shops(shops, run_shop_autopilot)
    finally:
        await close_redis()
        await close_database()

    run_logger.info(
        f"Scheduled autopilot complete: {len(results['succeeded'])} succeeded, "
        f"{len(results['failed'])} failed"
    )
    return results


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(scheduled_autopilot())

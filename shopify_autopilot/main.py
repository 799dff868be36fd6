"""
FastAPI Application

Main entry point for the Shopify Autopilot API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from shopify_autopilot.config import get_settings
from shopify_autopilot.config.logging import configure_logging
from shopify_autopilot.database.connection import close_database, create_tables, init_database
from shopify_autopilot.serving.api.middleware import RequestLoggingMiddleware
from shopify_autopilot.serving.api.routes import (
    actions_router,
    autopilot_router,
    events_router,
    feedback_router,
    health_router,
    performance_router,
    products_router,
    shopify_router,
)
from shopify_autopilot.serving.cache import close_redis, init_redis

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Shopify Autopilot API", environment=settings.app_env)

    await init_database()
    if not settings.is_production:
        await create_tables()

    # run locks are skipped while Redis is down
    try:
        await init_redis()
    except (RedisError, OSError) as e:
        logger.warning("Redis init failed, autopilot runs will not be locked", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database()
    await close_redis()


app = FastAPI(
    title="Shopify Autopilot API",
    description="Pricing and marketing autopilot for Shopify merchants",
    version=settings.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health_router, prefix="/api", tags=["Health"])
app.include_router(products_router, prefix="/api/products", tags=["Products"])
app.include_router(performance_router, prefix="/api/performance", tags=["Performance"])
app.include_router(events_router, prefix="/api/events", tags=["Events"])
app.include_router(actions_router, prefix="/api/ai-actions", tags=["AI Actions"])
app.include_router(feedback_router, prefix="/api/ai-feedback", tags=["AI Feedback"])
app.include_router(autopilot_router, prefix="/api/autopilot", tags=["Autopilot"])
app.include_router(shopify_router, prefix="/api/shopify", tags=["Shopify"])


@app.get("/api/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Shopify Autopilot API",
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


def run() -> None:
    """Console entry point."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()

"""
API Routes Module
"""
from .health import router as health_router
from .products import router as products_router
from .performance import router as performance_router
from .events import router as events_router
from .actions import router as actions_router
from .feedback import router as feedback_router
from .autopilot import router as autopilot_router
from .shopify import router as shopify_router

__all__ = [
    "health_router",
    "products_router",
    "performance_router",
    "events_router",
    "actions_router",
    "feedback_router",
    "autopilot_router",
    "shopify_router",
]

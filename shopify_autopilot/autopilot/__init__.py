"""
Autopilot Module

Pricing and marketing decision engine.
"""
from .engine import AutopilotEngine, PriceUpdater, RunSummary, run_autopilot
from .exceptions import AutopilotError, AutopilotRunError, AutopilotRunInProgress, PriceUpdateError
from .rules import compute_base_price, scale_price_change
from .feedback import FeedbackGate, evaluate_feedback_gate

__all__ = [
    "AutopilotEngine",
    "PriceUpdater",
    "RunSummary",
    "run_autopilot",
    "AutopilotError",
    "AutopilotRunError",
    "AutopilotRunInProgress",
    "PriceUpdateError",
    "compute_base_price",
    "scale_price_change",
    "FeedbackGate",
    "evaluate_feedback_gate",
]

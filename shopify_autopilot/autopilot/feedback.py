"""
Feedback Gate

Reads the merchant's approval/rejection history for an action kind and
decides whether a new suggestion of that kind should be suppressed.
"""

from dataclasses import dataclass
from typing import Dict

import structlog
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.database.models import ActionKind, FeedbackVerdict, RiskLevel
from shopify_autopilot.database.repository import AutopilotRepository

logger = structlog.get_logger(__name__)


# Suppress when rejected > approved x multiplier
REJECTION_MULTIPLIER: Dict[RiskLevel, int] = {
    RiskLevel.SAFE: 2,
    RiskLevel.NORMAL: 2,
    RiskLevel.AGGRESSIVE: 5,
}


@dataclass(frozen=True)
class FeedbackTrend:
    """Historical approval/rejection counts"""
    approved: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.approved + self.rejected


@dataclass(frozen=True)
class GateDecision:
    """Result of the feedback gate"""
    suppress: bool
    approved: int
    rejected: int
    threshold: int


def evaluate_feedback_gate(trend: FeedbackTrend, risk_level: RiskLevel) -> GateDecision:
    """
    Apply the risk-dependent rejection threshold.

    The boundary (rejected == approved x multiplier) does not suppress, and an
    empty history never suppresses.
    """
    multiplier = REJECTION_MULTIPLIER[RiskLevel(risk_level)]
    threshold = trend.approved * multiplier
    return GateDecision(
        suppress=trend.rejected > threshold,
        approved=trend.approved,
        rejected=trend.rejected,
        threshold=threshold,
    )


class FeedbackGate:
    """
    Feedback trend reader plus gate policy.

    Example:
        gate = FeedbackGate(repository)
        decision = await gate.check(shop, product_id, ActionKind.PRICE_ADJUSTMENT, RiskLevel.NORMAL)
        if decision.suppress:
            ...
    """

    def __init__(self, repository: AutopilotRepository):
        self.repository = repository

    async def get_trend(self, shop: str, product_id: int, action: ActionKind) -> FeedbackTrend:
        """Count the full feedback history. Read failures count as no history."""
        try:
            rows = await self.repository.list_feedback(shop, product_id, ActionKind(action).value)
        except SQLAlchemyError as e:
            logger.warning(
                "Failed to fetch feedback trends",
                shop=shop,
                product_id=product_id,
                action=ActionKind(action).value,
                error=str(e),
            )
            return FeedbackTrend()

        approved = sum(1 for row in rows if row.feedback == FeedbackVerdict.APPROVED)
        rejected = sum(1 for row in rows if row.feedback == FeedbackVerdict.REJECTED)
        return FeedbackTrend(approved=approved, rejected=rejected)

    async def check(
        self,
        shop: str,
        product_id: int,
        action: ActionKind,
        risk_level: RiskLevel,
    ) -> GateDecision:
        trend = await self.get_trend(shop, product_id, action)
        return evaluate_feedback_gate(trend, risk_level)

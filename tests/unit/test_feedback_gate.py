"""
Unit Tests - Feedback Gate
"""
import pytest
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.autopilot.feedback import (
    FeedbackGate,
    FeedbackTrend,
    evaluate_feedback_gate,
)
from shopify_autopilot.database.models import ActionKind, RiskLevel
from tests.conftest import SHOP


class TestEvaluateFeedbackGate:
    """Tests for the suppression policy"""

    def test_empty_history_never_suppresses(self):
        for risk in RiskLevel:
            assert evaluate_feedback_gate(FeedbackTrend(0, 0), risk).suppress is False

    def test_any_rejection_without_approval_suppresses(self):
        assert evaluate_feedback_gate(FeedbackTrend(0, 1), RiskLevel.NORMAL).suppress is True

    @pytest.mark.parametrize("risk", [RiskLevel.SAFE, RiskLevel.NORMAL])
    def test_twice_approved_is_the_boundary(self, risk):
        """Exactly 2x approvals is tolerated, one more suppresses"""
        assert evaluate_feedback_gate(FeedbackTrend(1, 2), risk).suppress is False
        assert evaluate_feedback_gate(FeedbackTrend(1, 3), risk).suppress is True

    def test_aggressive_tolerates_five_to_one(self):
        assert evaluate_feedback_gate(FeedbackTrend(1, 5), RiskLevel.AGGRESSIVE).suppress is False
        assert evaluate_feedback_gate(FeedbackTrend(1, 6), RiskLevel.AGGRESSIVE).suppress is True

    def test_decision_reports_counts(self):
        decision = evaluate_feedback_gate(FeedbackTrend(2, 3), RiskLevel.NORMAL)
        assert (decision.approved, decision.rejected, decision.threshold) == (2, 3, 4)


class BrokenRepository:
    async def list_feedback(self, shop, product_id, action):
        raise SQLAlchemyError("connection reset")


class TestFeedbackGate:
    """Tests for the trend reader"""

    async def test_counts_only_matching_action(self, repository, seed):
        await seed.feedback(1, ActionKind.PRICE_ADJUSTMENT.value, approved=1, rejected=2)
        await seed.feedback(1, ActionKind.AD_BOOST_SUGGESTED.value, rejected=4)
        await seed.feedback(2, ActionKind.PRICE_ADJUSTMENT.value, rejected=3)

        trend = await FeedbackGate(repository).get_trend(SHOP, 1, ActionKind.PRICE_ADJUSTMENT)

        assert trend == FeedbackTrend(approved=1, rejected=2)
        assert trend.total == 3

    async def test_check_combines_trend_and_policy(self, repository, seed):
        await seed.feedback(1, ActionKind.PRICE_ADJUSTMENT.value, rejected=3)

        decision = await FeedbackGate(repository).check(
            SHOP, 1, ActionKind.PRICE_ADJUSTMENT, RiskLevel.NORMAL
        )

        assert decision.suppress is True
        assert decision.rejected == 3

    async def test_read_failure_is_neutral(self):
        gate = FeedbackGate(BrokenRepository())

        trend = await gate.get_trend(SHOP, 1, ActionKind.PRICE_ADJUSTMENT)
        decision = await gate.check(SHOP, 1, ActionKind.PRICE_ADJUSTMENT, RiskLevel.SAFE)

        assert trend == FeedbackTrend(0, 0)
        assert decision.suppress is False

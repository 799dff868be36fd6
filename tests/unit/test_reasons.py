"""
Unit Tests - Reason Generator
"""
from decimal import Decimal
from types import SimpleNamespace

from shopify_autopilot.autopilot.reasons import generate_ad_boost_reason, generate_reason
from shopify_autopilot.database.models import RiskLevel


def make_product(inventory=50, title="Plain Tee"):
    return SimpleNamespace(price=Decimal("100.00"), inventory_quantity=inventory, title=title)


class TestGenerateReason:
    """Tests for price change reasons"""

    def test_strong_performer_reason(self):
        performance = SimpleNamespace(conversion_rate=0.10, profit_margin=0.30)

        reason = generate_reason(make_product(), performance, Decimal("108.00"), Decimal("100.00"))

        assert reason == (
            "Price increase from 100.00 to 108.00. "
            "High conversion rate suggests strong demand. "
            "Good profit margin allows for small price adjustments."
        )

    def test_decrease_with_weak_conversion(self):
        performance = SimpleNamespace(conversion_rate=0.01, profit_margin=0.10)

        reason = generate_reason(make_product(), performance, Decimal("95.00"), Decimal("100.00"))

        assert reason == (
            "Price decrease from 100.00 to 95.00. "
            "Low conversion rate indicates price may be too high."
        )

    def test_missing_snapshot_only_mentions_inventory(self):
        reason = generate_reason(make_product(inventory=2), None, Decimal("110.00"), Decimal("100.00"))

        assert reason == (
            "Price increase from 100.00 to 110.00. "
            "Low inventory, increasing price slightly to protect margin."
        )

    def test_event_clause(self):
        event = SimpleNamespace(name="Black Friday", product_keywords=["hoodie"])

        reason = generate_reason(
            make_product(title="Black Hoodie"), None, Decimal("115.00"), Decimal("100.00"), event
        )

        assert reason.endswith("Relevant to Black Friday, boosting price for seasonal demand.")

    def test_no_trailing_whitespace(self):
        reason = generate_reason(make_product(), None, Decimal("101.00"), Decimal("100.00"))
        assert reason == "Price increase from 100.00 to 101.00."


class TestGenerateAdBoostReason:
    """Tests for ad boost reasons"""

    def test_basic(self):
        reason = generate_ad_boost_reason(0.06, 0.27)
        assert reason == (
            "Strong performance - recommend increasing ad budget "
            "for this product (conv=6%, margin=27%)."
        )

    def test_seasonal_and_high_confidence(self):
        event = SimpleNamespace(name="Summer Sale")

        reason = generate_ad_boost_reason(
            0.10, 0.40, event=event, approved_before=2, risk_level=RiskLevel.AGGRESSIVE
        )

        assert "Also relevant for Summer Sale" in reason
        assert reason.endswith("treating as high-confidence winner.")

    def test_high_confidence_requires_aggressive(self):
        reason = generate_ad_boost_reason(0.10, 0.40, approved_before=5, risk_level=RiskLevel.NORMAL)
        assert "high-confidence" not in reason

"""
Marketing Suggestions

Decides whether a product is a strong enough performer to suggest an ad
budget boost. Thresholds loosen as the shop's risk level rises; a product
matching the active seasonal event always qualifies.
"""

from dataclasses import dataclass
from typing import Any, Dict

from shopify_autopilot.autopilot.rules import matches_event
from shopify_autopilot.database.models import RiskLevel


@dataclass(frozen=True)
class AdBoostThresholds:
    """Strict lower bounds a product must exceed"""
    min_conversion_rate: float
    min_profit_margin: float


AD_BOOST_THRESHOLDS: Dict[RiskLevel, AdBoostThresholds] = {
    RiskLevel.SAFE: AdBoostThresholds(min_conversion_rate=0.08, min_profit_margin=0.30),
    RiskLevel.NORMAL: AdBoostThresholds(min_conversion_rate=0.05, min_profit_margin=0.25),
    RiskLevel.AGGRESSIVE: AdBoostThresholds(min_conversion_rate=0.03, min_profit_margin=0.20),
}


@dataclass(frozen=True)
class AdBoostEvaluation:
    qualifies: bool
    conversion_rate: float
    profit_margin: float
    seasonal_match: bool


def evaluate_ad_boost(product: Any, performance: Any, event: Any, risk_level: RiskLevel) -> AdBoostEvaluation:
    """
    Evaluate the ad boost thresholds for one product.

    A missing snapshot or metric reads as 0 for reporting and never passes the
    performance thresholds on its own.
    """
    conversion = getattr(performance, "conversion_rate", None)
    margin = getattr(performance, "profit_margin", None)
    thresholds = AD_BOOST_THRESHOLDS[RiskLevel(risk_level)]

    strong = (
        conversion is not None
        and margin is not None
        and conversion > thresholds.min_conversion_rate
        and margin > thresholds.min_profit_margin
    )
    seasonal = matches_event(product.title, event)

    return AdBoostEvaluation(
        qualifies=strong or seasonal,
        conversion_rate=conversion or 0.0,
        profit_margin=margin or 0.0,
        seasonal_match=seasonal,
    )

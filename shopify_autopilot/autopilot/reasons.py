"""
Reason Generator

Human-readable explanations attached to autopilot actions. Purely
descriptive: nothing downstream branches on these strings.
"""

from decimal import Decimal
from typing import Any, Optional

from shopify_autopilot.autopilot.rules import matches_event
from shopify_autopilot.database.models import RiskLevel


def _fmt(price: Decimal) -> str:
    return f"{Decimal(price):.2f}"


def generate_reason(
    product: Any,
    performance: Any,
    new_price: Decimal,
    old_price: Decimal,
    event: Any = None,
) -> str:
    """
    Explain a price change from the facts that drove it.

    Each clause is triggered independently; the result is the clauses joined
    in a fixed order.
    """
    change = "increase" if new_price > old_price else "decrease"
    reason = f"Price {change} from {_fmt(old_price)} to {_fmt(new_price)}. "

    conversion = getattr(performance, "conversion_rate", None)
    margin = getattr(performance, "profit_margin", None)

    if conversion is not None and conversion > 0.08:
        reason += "High conversion rate suggests strong demand. "
    if conversion is not None and conversion < 0.02:
        reason += "Low conversion rate indicates price may be too high. "
    if margin is not None and margin > 0.25:
        reason += "Good profit margin allows for small price adjustments. "
    if (product.inventory_quantity or 0) < 5:
        reason += "Low inventory, increasing price slightly to protect margin. "
    if matches_event(product.title, event):
        reason += f"Relevant to {event.name}, boosting price for seasonal demand. "

    return reason.strip()


def generate_ad_boost_reason(
    conversion_rate: float,
    profit_margin: float,
    event: Any = None,
    approved_before: int = 0,
    risk_level: Optional[RiskLevel] = None,
) -> str:
    """Explain an ad budget increase suggestion."""
    reason = "Strong performance - recommend increasing ad budget "
    reason += (
        f"for this product (conv={round(conversion_rate * 100)}%, "
        f"margin={round(profit_margin * 100)}%). "
    )

    if event is not None:
        reason += f"Also relevant for {event.name}, good candidate for seasonal campaigns. "

    if approved_before >= 2 and risk_level == RiskLevel.AGGRESSIVE:
        reason += "User has approved similar ad boosts before - treating as high-confidence winner."

    return reason.strip()

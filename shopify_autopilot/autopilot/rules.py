"""
Price Rules

Base price computation and risk scaling for the autopilot.

The base price comes from an ordered table of rules. Every matching rule
replaces the candidate with ``price x multiplier``; rules never stack, so the
last matching rule in table order wins. The seasonal rule sits last and
therefore overrides the performance and inventory rules.

Risk scaling then shrinks or stretches the delta between the base candidate
and the current price according to the shop's risk level.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shopify_autopilot.database.models import RiskLevel

CENTS = Decimal("0.01")


def round_price(value: Decimal) -> Decimal:
    """Round half-up to two fractional digits."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def matches_event(title: Optional[str], event: Any) -> bool:
    """Case-insensitive substring match of any event keyword against a title."""
    if event is None or not title:
        return False
    lowered = title.lower()
    return any(
        keyword and keyword.lower() in lowered
        for keyword in (event.product_keywords or [])
    )


@dataclass(frozen=True)
class PricingContext:
    """Facts a price rule can look at"""
    price: Decimal
    inventory_quantity: int
    title: str
    conversion_rate: Optional[float] = None
    profit_margin: Optional[float] = None
    event: Any = None

    @classmethod
    def build(cls, product: Any, performance: Any = None, event: Any = None) -> "PricingContext":
        """Build from a product row, an optional performance snapshot and the active event."""
        return cls(
            price=product.price if isinstance(product.price, Decimal) else Decimal(str(product.price)),
            inventory_quantity=product.inventory_quantity or 0,
            title=product.title or "",
            conversion_rate=getattr(performance, "conversion_rate", None),
            profit_margin=getattr(performance, "profit_margin", None),
            event=event,
        )


@dataclass(frozen=True)
class PriceRule:
    """A predicate and the multiplier applied to the current price when it holds"""
    name: str
    multiplier: Decimal
    applies: Callable[[PricingContext], bool]
    description: str = ""


def _strong_performer(ctx: PricingContext) -> bool:
    if ctx.profit_margin is None or ctx.conversion_rate is None:
        return False
    return ctx.profit_margin > 0.25 and ctx.conversion_rate > 0.08


def _weak_conversion(ctx: PricingContext) -> bool:
    if ctx.conversion_rate is None:
        return False
    return ctx.conversion_rate < 0.02


def _low_inventory(ctx: PricingContext) -> bool:
    return ctx.inventory_quantity < 5


def _seasonal_demand(ctx: PricingContext) -> bool:
    return matches_event(ctx.title, ctx.event)


# Evaluation order is precedence order: later matches overwrite earlier ones.
PRICE_RULES: Tuple[PriceRule, ...] = (
    PriceRule(
        name="strong_performer",
        multiplier=Decimal("1.08"),
        applies=_strong_performer,
        description="High margin and conversion",
    ),
    PriceRule(
        name="weak_conversion",
        multiplier=Decimal("0.95"),
        applies=_weak_conversion,
        description="Conversion below 2%",
    ),
    PriceRule(
        name="low_inventory",
        multiplier=Decimal("1.10"),
        applies=_low_inventory,
        description="Scarcity protects margin",
    ),
    PriceRule(
        name="seasonal_demand",
        multiplier=Decimal("1.15"),
        applies=_seasonal_demand,
        description="Title matches the active event",
    ),
)


@dataclass
class PriceEvaluation:
    """Outcome of running the rule table against one product"""
    current_price: Decimal
    base_price: Decimal
    matched_rules: List[str] = field(default_factory=list)

    @property
    def winning_rule(self) -> Optional[str]:
        return self.matched_rules[-1] if self.matched_rules else None

    @property
    def changed(self) -> bool:
        return self.base_price != self.current_price


def evaluate_price_rules(
    ctx: PricingContext,
    rules: Sequence[PriceRule] = PRICE_RULES,
) -> PriceEvaluation:
    """
    Run the rule table in order.

    Args:
        ctx: Pricing facts for one product
        rules: Ordered rule table (defaults to PRICE_RULES)

    Returns:
        PriceEvaluation with the base candidate and every rule that matched
    """
    candidate = ctx.price
    matched: List[str] = []

    for rule in rules:
        if rule.applies(ctx):
            candidate = ctx.price * rule.multiplier
            matched.append(rule.name)

    if not matched:
        # untouched, not even re-rounded
        return PriceEvaluation(current_price=ctx.price, base_price=ctx.price)

    return PriceEvaluation(
        current_price=ctx.price,
        base_price=round_price(candidate),
        matched_rules=matched,
    )


def compute_base_price(product: Any, performance: Any = None, event: Any = None) -> Decimal:
    """Base candidate price for a product, independent of risk level."""
    return evaluate_price_rules(PricingContext.build(product, performance, event)).base_price


# =============================================================================
# RISK SCALING
# =============================================================================

RISK_DELTA_SCALE: Dict[RiskLevel, Decimal] = {
    RiskLevel.SAFE: Decimal("0.5"),
    RiskLevel.NORMAL: Decimal("1.0"),
    RiskLevel.AGGRESSIVE: Decimal("1.5"),
}


def scale_price_change(old_price: Decimal, base_price: Decimal, risk_level: RiskLevel) -> Decimal:
    """
    Scale the delta between the base candidate and the current price.

    An unchanged base returns the old price as-is for every risk level. Scale
    factors are positive, so a decrease stays a decrease.
    """
    if base_price == old_price:
        return old_price

    delta = base_price - old_price
    scaled = delta * RISK_DELTA_SCALE[RiskLevel(risk_level)]
    return round_price(old_price + scaled)

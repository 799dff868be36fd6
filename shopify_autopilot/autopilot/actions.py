"""
Action Logging

Structured detail payloads for every action kind and the best-effort logger
that writes them to the audit trail.
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import structlog
from pydantic import BaseModel, Field, TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.database.models import (
    AIAction,
    ActionKind,
    ActionStatus,
    AutopilotMode,
    RiskLevel,
)
from shopify_autopilot.database.repository import AutopilotRepository

logger = structlog.get_logger(__name__)


# =============================================================================
# DETAIL PAYLOADS
# =============================================================================

class PriceAdjustmentDetails(BaseModel):
    """A suggested price change"""
    kind: Literal["price_adjustment"] = ActionKind.PRICE_ADJUSTMENT.value
    old_price: Decimal
    base_price: Decimal
    new_price: Decimal
    mode: AutopilotMode
    risk: RiskLevel
    rules: List[str] = Field(default_factory=list)


class PriceAppliedDetails(BaseModel):
    """A price change pushed to Shopify"""
    kind: Literal["price_applied"] = ActionKind.PRICE_APPLIED.value
    old_price: Decimal
    new_price: Decimal
    mode: AutopilotMode
    risk: RiskLevel


class PriceSkippedDetails(BaseModel):
    """A price change withheld because of past rejections"""
    kind: Literal["price_skipped_due_to_feedback"] = ActionKind.PRICE_SKIPPED_DUE_TO_FEEDBACK.value
    old_price: Decimal
    suggested_price: Decimal
    approved: int
    rejected: int
    risk: RiskLevel


class AdBoostSuggestedDetails(BaseModel):
    """A suggestion to raise ad spend on a product"""
    kind: Literal["ad_boost_suggested"] = ActionKind.AD_BOOST_SUGGESTED.value
    conversion_rate: float
    profit_margin: float
    risk: RiskLevel
    event: Optional[str] = None


class AdBoostSkippedDetails(BaseModel):
    """An ad boost withheld because of past rejections"""
    kind: Literal["ad_boost_skipped_due_to_feedback"] = ActionKind.AD_BOOST_SKIPPED_DUE_TO_FEEDBACK.value
    conversion_rate: float
    profit_margin: float
    risk: RiskLevel
    approved: int
    rejected: int


ActionDetails = Annotated[
    Union[
        PriceAdjustmentDetails,
        PriceAppliedDetails,
        PriceSkippedDetails,
        AdBoostSuggestedDetails,
        AdBoostSkippedDetails,
    ],
    Field(discriminator="kind"),
]

_details_adapter: TypeAdapter = TypeAdapter(ActionDetails)


def parse_action_details(raw: Dict[str, Any]) -> BaseModel:
    """Validate a stored payload back into the shape for its kind."""
    return _details_adapter.validate_python(raw)


# =============================================================================
# LOGGER
# =============================================================================

class ActionLogger:
    """
    Appends AI actions to the audit trail.

    Writes are best-effort: a failed insert is logged and the caller carries
    on with the next decision.
    """

    def __init__(self, repository: AutopilotRepository):
        self.repository = repository

    async def log(
        self,
        shop: str,
        product_id: int,
        details: BaseModel,
        reason: str = "",
        status: ActionStatus = ActionStatus.SUGGESTED,
    ) -> Optional[AIAction]:
        """
        Persist one action.

        Args:
            shop: Shop domain
            product_id: Shopify product id
            details: One of the detail payload models; its kind names the action
            reason: Human-readable explanation
            status: Initial status

        Returns:
            The stored row, or None when the write failed
        """
        action = details.kind
        try:
            row = await self.repository.add_action(
                shop=shop,
                product_id=product_id,
                action=action,
                details=details.model_dump(mode="json"),
                reason=reason,
                status=status,
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Failed to log AI action",
                shop=shop,
                product_id=product_id,
                action=action,
                error=str(e),
            )
            return None

        logger.info(
            "Logged AI action",
            shop=shop,
            product_id=product_id,
            action=action,
            status=ActionStatus(status).value,
        )
        return row

"""
Unit Tests - Action Payloads and Logger
"""
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from shopify_autopilot.autopilot.actions import (
    ActionLogger,
    AdBoostSuggestedDetails,
    PriceAdjustmentDetails,
    PriceSkippedDetails,
    parse_action_details,
)
from shopify_autopilot.database.models import ActionStatus, AutopilotMode, RiskLevel
from tests.conftest import SHOP


class TestActionDetails:
    """Tests for the tagged detail payloads"""

    def test_kind_is_fixed_per_payload(self):
        details = PriceAdjustmentDetails(
            old_price=Decimal("100.00"),
            base_price=Decimal("108.00"),
            new_price=Decimal("104.00"),
            mode=AutopilotMode.ASSIST,
            risk=RiskLevel.SAFE,
            rules=["strong_performer"],
        )
        assert details.kind == "price_adjustment"

    def test_stored_payload_parses_back_to_its_shape(self):
        stored = PriceSkippedDetails(
            old_price=Decimal("50.00"),
            suggested_price=Decimal("52.00"),
            approved=0,
            rejected=3,
            risk=RiskLevel.NORMAL,
        ).model_dump(mode="json")

        parsed = parse_action_details(stored)

        assert isinstance(parsed, PriceSkippedDetails)
        assert parsed.suggested_price == Decimal("52.00")
        assert parsed.rejected == 3

    def test_json_dump_keeps_enum_values(self):
        dumped = AdBoostSuggestedDetails(
            conversion_rate=0.06,
            profit_margin=0.3,
            risk=RiskLevel.AGGRESSIVE,
        ).model_dump(mode="json")

        assert dumped["kind"] == "ad_boost_suggested"
        assert dumped["risk"] == "aggressive"
        assert dumped["event"] is None

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            parse_action_details({"kind": "discount_code", "amount": 5})


class FailingRepository:
    async def add_action(self, **kwargs):
        raise SQLAlchemyError("disk full")


class TestActionLogger:
    """Tests for ActionLogger"""

    async def test_persists_row(self, repository):
        logger = ActionLogger(repository)
        details = PriceAdjustmentDetails(
            old_price=Decimal("100.00"),
            base_price=Decimal("108.00"),
            new_price=Decimal("108.00"),
            mode=AutopilotMode.MANUAL,
            risk=RiskLevel.NORMAL,
        )

        row = await logger.log(SHOP, 7, details, "Price increase.")

        assert row is not None
        stored = await repository.list_actions(SHOP)
        assert len(stored) == 1
        assert stored[0].action == "price_adjustment"
        assert stored[0].status == ActionStatus.SUGGESTED
        assert stored[0].details["new_price"] == "108.00"

    async def test_write_failure_returns_none(self):
        logger = ActionLogger(FailingRepository())
        details = AdBoostSuggestedDetails(conversion_rate=0.1, profit_margin=0.4, risk=RiskLevel.SAFE)

        assert await logger.log(SHOP, 1, details) is None

"""
Database Models

Relational schema for the Shopify autopilot:

Catalog:
- Shop: installed shops, their credentials and autopilot settings
- Product: products synced from Shopify
- ProductPerformance: per-product metrics snapshot
- SeasonalEvent: promotional windows with title keywords

Autopilot:
- AIAction: audit trail of every autopilot decision
- AIFeedback: merchant approvals/rejections of suggested actions
- AutopilotRun: per-run summary counters
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Type
import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AutopilotMode(str, Enum):
    """Shop-level automation posture"""
    MANUAL = "manual"  # suggest only
    ASSIST = "assist"  # suggest + queue for approval
    FULL = "full"  # auto-apply eligible suggestions


class RiskLevel(str, Enum):
    """Shop-level aggressiveness dial"""
    SAFE = "safe"
    NORMAL = "normal"
    AGGRESSIVE = "aggressive"


class ActionStatus(str, Enum):
    """AI action status"""
    SUGGESTED = "suggested"
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    APPROVED = "approved"
    REJECTED = "rejected"


class FeedbackVerdict(str, Enum):
    """Merchant verdict on a suggested action"""
    APPROVED = "approved"
    REJECTED = "rejected"


class ActionKind(str, Enum):
    """Kinds of autopilot decisions written to the audit trail"""
    PRICE_ADJUSTMENT = "price_adjustment"
    PRICE_APPLIED = "price_applied"
    PRICE_SKIPPED_DUE_TO_FEEDBACK = "price_skipped_due_to_feedback"
    AD_BOOST_SUGGESTED = "ad_boost_suggested"
    AD_BOOST_SKIPPED_DUE_TO_FEEDBACK = "ad_boost_skipped_due_to_feedback"


def _value_enum(enum_cls: Type[Enum]) -> SQLEnum:
    """Store enum values (not member names) as plain strings"""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


# =============================================================================
# CATALOG
# =============================================================================

class Shop(Base):
    """
    Shop Table

    One row per installed shop. The access token is the source of truth for
    per-shop Shopify credentials.
    """
    __tablename__ = "shops"

    shop_domain: Mapped[str] = mapped_column(String(255), primary_key=True)
    access_token: Mapped[Optional[str]] = mapped_column(String(255))

    autopilot_mode: Mapped[AutopilotMode] = mapped_column(
        _value_enum(AutopilotMode), default=AutopilotMode.MANUAL, nullable=False
    )
    risk_level: Mapped[RiskLevel] = mapped_column(
        _value_enum(RiskLevel), default=RiskLevel.NORMAL, nullable=False
    )

    # Audit
    installed_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class Product(Base):
    """
    Product Table

    Catalog items synced from Shopify. Price and inventory come from the
    first variant.
    """
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    shopify_product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    variant_id: Mapped[Optional[int]] = mapped_column(BigInteger)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(32))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    inventory_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(2000))

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("shop_domain", "shopify_product_id", name="uq_products_shop_product"),
        Index("ix_products_shop", "shop_domain"),
    )


class ProductPerformance(Base):
    """
    Product Performance Table

    Zero or one metrics snapshot per (shop, product), written by the metrics
    pipeline.
    """
    __tablename__ = "product_performance"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    conversion_rate: Mapped[Optional[float]] = mapped_column(Float)  # 0-1
    profit_margin: Mapped[Optional[float]] = mapped_column(Float)  # 0-1
    sales_7d: Mapped[int] = mapped_column(Integer, default=0)
    sales_30d: Mapped[int] = mapped_column(Integer, default=0)
    revenue_30d: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("shop_domain", "product_id", name="uq_performance_shop_product"),
    )


class SeasonalEvent(Base):
    """
    Seasonal Event Table

    Promotional window. Keywords are matched case-insensitively as substrings
    of product titles.
    """
    __tablename__ = "seasonal_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    product_keywords: Mapped[List[str]] = mapped_column(JSONType, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_seasonal_events_active_start", "active", "start_date"),
    )


# =============================================================================
# AUTOPILOT
# =============================================================================

class AIAction(Base):
    """
    AI Action Table

    Append-only audit record of an autopilot decision. Only the status is
    changed afterwards, by the merchant approval workflow.
    """
    __tablename__ = "ai_actions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[dict] = mapped_column(JSONType, default=dict)
    reason: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[ActionStatus] = mapped_column(
        _value_enum(ActionStatus), default=ActionStatus.SUGGESTED, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_ai_actions_shop", "shop_domain"),
        Index("ix_ai_actions_shop_product_action", "shop_domain", "product_id", "action"),
    )


class AIFeedback(Base):
    """
    AI Feedback Table

    One row per merchant decision on an AI action.
    """
    __tablename__ = "ai_feedback"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    feedback: Mapped[FeedbackVerdict] = mapped_column(
        _value_enum(FeedbackVerdict), nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(Text)
    action_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_ai_feedback_shop_product_action", "shop_domain", "product_id", "action"),
    )


class AutopilotRun(Base):
    """
    Autopilot Run Table

    Summary counters of one autopilot pass over a shop's catalog.
    """
    __tablename__ = "autopilot_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    mode: Mapped[AutopilotMode] = mapped_column(_value_enum(AutopilotMode), nullable=False)
    risk_level: Mapped[RiskLevel] = mapped_column(_value_enum(RiskLevel), nullable=False)

    analyzed: Mapped[int] = mapped_column(Integer, default=0)
    price_suggestions: Mapped[int] = mapped_column(Integer, default=0)
    applied: Mapped[int] = mapped_column(Integer, default=0)
    skipped_due_to_feedback: Mapped[int] = mapped_column(Integer, default=0)
    marketing_suggestions: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_autopilot_runs_shop_created", "shop_domain", "created_at"),
    )

# backend/app/models/tenant_subscription.py
# Subscription records owned by a Tenant: plan, limits, billing and trial.

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class SubscriptionPlan(str, enum.Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"
    CUSTOM = "custom"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING = "pending"


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    BIENNIAL = "biennial"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    INVOICE = "invoice"
    CHECK = "check"


class BillingStatus(str, enum.Enum):
    CURRENT = "current"
    OVERDUE = "overdue"
    FAILED = "failed"
    PENDING = "pending"
    SUSPENDED = "suspended"


_OWNED = dict(uselist=False, cascade="all, delete-orphan", lazy="selectin")


class TenantSubscription(OwnedMixin, Base):
    __tablename__ = "tenant_subscriptions"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    plan: Mapped[str] = mapped_column(String(20), nullable=False, default=SubscriptionPlan.STARTER.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SubscriptionStatus.TRIAL.value)
    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default=BillingCycle.MONTHLY.value)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    renewal_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    additional_user_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    discount: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    usage_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    overage_charges: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_renewal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)

    tenant = relationship("Tenant", back_populates="subscription")
    limits = relationship("SubscriptionLimits", back_populates="subscription", **_OWNED)
    billing = relationship("BillingInfo", back_populates="subscription", **_OWNED)
    trial = relationship("TrialInfo", back_populates="subscription", **_OWNED)


class SubscriptionLimits(OwnedMixin, Base):
    __tablename__ = "subscription_limits"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_subscriptions.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # -1 means unlimited
    max_users: Mapped[int] = mapped_column(Integer, nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    max_storage: Mapped[int] = mapped_column(Integer, nullable=False)
    max_api_calls: Mapped[int] = mapped_column(Integer, nullable=False)
    max_school_years: Mapped[int] = mapped_column(Integer, nullable=False)
    max_classes: Mapped[int] = mapped_column(Integer, nullable=False)

    subscription = relationship("TenantSubscription", back_populates="limits")
    features = relationship("FeatureLimits", back_populates="limits", **_OWNED)


class FeatureLimits(OwnedMixin, Base):
    __tablename__ = "feature_limits"

    subscription_limits_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("subscription_limits.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    custom_branding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    api_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sso_integration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    advanced_reports: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mobile_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_portal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    student_portal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    bulk_operations: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data_export: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    automated_backups: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority_support: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dedicated_account_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    limits = relationship("SubscriptionLimits", back_populates="features")


class BillingInfo(OwnedMixin, Base):
    __tablename__ = "billing_info"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_subscriptions.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    method: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentMethod.CREDIT_CARD.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BillingStatus.CURRENT.value)
    next_billing_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    outstanding_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    invoices: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    subscription = relationship("TenantSubscription", back_populates="billing")


class TrialInfo(OwnedMixin, Base):
    __tablename__ = "trial_info"

    subscription_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_subscriptions.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    is_trial_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    trial_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    trial_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    trial_days_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trial_plan: Mapped[str] = mapped_column(String(20), nullable=False, default=SubscriptionPlan.STARTER.value)
    converted_from_trial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    conversion_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    extensions_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_extensions: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    subscription = relationship("TenantSubscription", back_populates="trial")

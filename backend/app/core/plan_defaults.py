# ============================
# FILE: app/core/plan_defaults.py
# Canonical per-plan defaults for tenant provisioning
# ============================
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from app.core.dates import add_months
from app.models.tenant import TenantLifecycleStage, TenantStatus
from app.models.tenant_subscription import BillingCycle, SubscriptionPlan, SubscriptionStatus

UNLIMITED = -1


@dataclass(frozen=True)
class SubscriptionLimitDefaults:
    max_users: int
    max_students: int
    max_storage: int
    max_api_calls: int
    max_school_years: int
    max_classes: int


@dataclass(frozen=True)
class FeatureLimitDefaults:
    custom_branding: bool = False
    api_access: bool = False
    sso_integration: bool = False
    advanced_reports: bool = False
    mobile_app: bool = False
    parent_portal: bool = False
    student_portal: bool = False
    bulk_operations: bool = False
    data_export: bool = False
    automated_backups: bool = False
    priority_support: bool = False
    dedicated_account_manager: bool = False


@dataclass(frozen=True)
class TenantLimitDefaults:
    max_users: int
    max_students: int
    max_staff: int
    max_classes: int
    max_subjects: int
    storage_quota: int
    monthly_api_calls: int
    daily_email_limit: int
    concurrent_sessions: int


@dataclass(frozen=True)
class TenantFeatureDefaults:
    academic_management: bool = False
    fee_management: bool = False
    library_management: bool = False
    transport_management: bool = False
    inventory_management: bool = False
    hr_management: bool = False
    parent_portal: bool = False
    student_portal: bool = False
    mobile_app: bool = False
    reports_analytics: bool = False
    timetable_management: bool = False
    communication_tools: bool = False
    exam_management: bool = False
    discipline_tracking: bool = False
    health_records: bool = False
    custom_fields: bool = False
    api_access: bool = False
    sso_integration: bool = False
    custom_branding: bool = False
    advanced_security: bool = False


@dataclass(frozen=True)
class PlanDefaults:
    trial_days: int
    base_price: Decimal
    additional_user_price: Decimal
    subscription_limits: SubscriptionLimitDefaults
    feature_limits: FeatureLimitDefaults
    tenant_limits: TenantLimitDefaults
    tenant_features: TenantFeatureDefaults


def _all_features(cls):
    return cls(**{name: True for name in cls.__dataclass_fields__})


_STARTER = PlanDefaults(
    trial_days=14,
    base_price=Decimal("29.99"),
    additional_user_price=Decimal("2.99"),
    subscription_limits=SubscriptionLimitDefaults(10, 100, 5, 1000, 2, 10),
    feature_limits=FeatureLimitDefaults(parent_portal=True, student_portal=True),
    tenant_limits=TenantLimitDefaults(10, 100, 20, 10, 20, 5, 1000, 100, 50),
    tenant_features=TenantFeatureDefaults(
        academic_management=True,
        fee_management=True,
        parent_portal=True,
        student_portal=True,
        timetable_management=True,
        communication_tools=True,
        exam_management=True,
    ),
)

_PROFESSIONAL = PlanDefaults(
    trial_days=30,
    base_price=Decimal("99.99"),
    additional_user_price=Decimal("4.99"),
    subscription_limits=SubscriptionLimitDefaults(50, 500, 25, 10000, 5, 50),
    feature_limits=replace(
        _all_features(FeatureLimitDefaults),
        sso_integration=False,
        dedicated_account_manager=False,
    ),
    tenant_limits=TenantLimitDefaults(50, 500, 100, 50, 100, 25, 10000, 1000, 250),
    tenant_features=replace(
        _all_features(TenantFeatureDefaults),
        hr_management=False,
        sso_integration=False,
        advanced_security=False,
    ),
)

_ENTERPRISE = PlanDefaults(
    trial_days=45,
    base_price=Decimal("299.99"),
    additional_user_price=Decimal("7.99"),
    subscription_limits=SubscriptionLimitDefaults(200, 2000, 100, 100000, 10, 200),
    feature_limits=_all_features(FeatureLimitDefaults),
    tenant_limits=TenantLimitDefaults(200, 2000, 400, 200, 400, 100, 100000, 10000, 1000),
    tenant_features=_all_features(TenantFeatureDefaults),
)

_CUSTOM = PlanDefaults(
    trial_days=30,
    base_price=Decimal("0"),
    additional_user_price=Decimal("0"),
    subscription_limits=SubscriptionLimitDefaults(*([UNLIMITED] * 6)),
    feature_limits=_all_features(FeatureLimitDefaults),
    tenant_limits=TenantLimitDefaults(*([UNLIMITED] * 9)),
    tenant_features=_all_features(TenantFeatureDefaults),
)

PLAN_DEFAULTS: dict[str, PlanDefaults] = {
    SubscriptionPlan.STARTER.value: _STARTER,
    SubscriptionPlan.PROFESSIONAL.value: _PROFESSIONAL,
    SubscriptionPlan.ENTERPRISE.value: _ENTERPRISE,
    SubscriptionPlan.CUSTOM.value: _CUSTOM,
}

# subscription status -> (tenant status, lifecycle stage)
SUBSCRIPTION_STATUS_EFFECTS: dict[str, tuple[str, str]] = {
    SubscriptionStatus.ACTIVE.value: (TenantStatus.ACTIVE.value, TenantLifecycleStage.ACTIVE.value),
    SubscriptionStatus.TRIAL.value: (TenantStatus.ACTIVE.value, TenantLifecycleStage.TRIAL.value),
    SubscriptionStatus.SUSPENDED.value: (TenantStatus.SUSPENDED.value, TenantLifecycleStage.AT_RISK.value),
    SubscriptionStatus.CANCELLED.value: (TenantStatus.INACTIVE.value, TenantLifecycleStage.CHURNED.value),
    SubscriptionStatus.EXPIRED.value: (TenantStatus.SUSPENDED.value, TenantLifecycleStage.CHURNED.value),
    SubscriptionStatus.PENDING.value: (TenantStatus.INACTIVE.value, TenantLifecycleStage.PROSPECT.value),
}

_CYCLE_MONTHS: dict[str, int] = {
    BillingCycle.MONTHLY.value: 1,
    BillingCycle.QUARTERLY.value: 3,
    BillingCycle.ANNUAL.value: 12,
    BillingCycle.BIENNIAL.value: 24,
}


def normalize_plan(value: Any) -> str:
    v = getattr(value, "value", value)
    return (v or "").strip().lower() if isinstance(v, str) else ""


def get_plan_defaults(plan: Any) -> PlanDefaults:
    """
    Returns the defaults for the given plan.
    Defaults to starter if unknown.
    """
    p = normalize_plan(plan)
    return PLAN_DEFAULTS.get(p, _STARTER)


def calculate_renewal_date(start: datetime, billing_cycle: Any) -> datetime:
    """Start date plus one billing period; unknown cycles renew monthly."""
    cycle = getattr(billing_cycle, "value", billing_cycle)
    return add_months(start, _CYCLE_MONTHS.get(cycle, 1))


def merge_flags(defaults: Any, overrides: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Plan defaults overlaid with the caller's explicit values (None is ignored)."""
    merged = asdict(defaults)
    for key, value in (overrides or {}).items():
        if key in merged and value is not None:
            merged[key] = value
    return merged


def effects_of_subscription_status(status: Any) -> Optional[tuple[str, str]]:
    s = getattr(status, "value", status)
    return SUBSCRIPTION_STATUS_EFFECTS.get(s)

# tests/test_plan_defaults.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from app.core.dates import add_months
from app.core.plan_defaults import (
    UNLIMITED,
    FeatureLimitDefaults,
    calculate_renewal_date,
    effects_of_subscription_status,
    get_plan_defaults,
    merge_flags,
)


def test_unknown_plan_falls_back_to_starter():
    starter = get_plan_defaults("starter")
    assert get_plan_defaults("platinum") is starter
    assert get_plan_defaults(None) is starter
    assert starter.trial_days == 14
    assert starter.base_price == Decimal("29.99")


def test_plan_lookup_is_case_insensitive():
    pro = get_plan_defaults("  Professional ")
    assert pro.subscription_limits.max_users == 50
    assert pro.tenant_limits.concurrent_sessions == 250
    assert pro.feature_limits.sso_integration is False

    custom = get_plan_defaults("custom")
    assert custom.subscription_limits.max_users == UNLIMITED


def test_merge_flags_ignores_none_and_unknown_keys():
    merged = merge_flags(
        FeatureLimitDefaults(parent_portal=True),
        {"parent_portal": None, "api_access": True, "teleport": True},
    )
    assert merged["parent_portal"] is True
    assert merged["api_access"] is True
    assert "teleport" not in merged
    assert merge_flags(FeatureLimitDefaults(), None)["mobile_app"] is False


def test_renewal_dates_follow_billing_cycle():
    start = datetime(2030, 1, 31, 9, 30, tzinfo=timezone.utc)
    assert calculate_renewal_date(start, "monthly") == datetime(2030, 2, 28, 9, 30, tzinfo=timezone.utc)
    assert calculate_renewal_date(start, "quarterly") == datetime(2030, 4, 30, 9, 30, tzinfo=timezone.utc)
    assert calculate_renewal_date(start, "annual") == datetime(2031, 1, 31, 9, 30, tzinfo=timezone.utc)
    assert calculate_renewal_date(start, "biennial") == datetime(2032, 1, 31, 9, 30, tzinfo=timezone.utc)
    assert calculate_renewal_date(start, "weekly") == datetime(2030, 2, 28, 9, 30, tzinfo=timezone.utc)


def test_add_months_crosses_years_and_leap_days():
    assert add_months(datetime(2031, 11, 15), 3) == datetime(2032, 2, 15)
    assert add_months(datetime(2032, 2, 29), 12) == datetime(2033, 2, 28)


def test_subscription_status_effects():
    assert effects_of_subscription_status("cancelled") == ("inactive", "churned")
    assert effects_of_subscription_status("trial") == ("active", "trial")
    assert effects_of_subscription_status("expired") == ("suspended", "churned")
    assert effects_of_subscription_status("bogus") is None

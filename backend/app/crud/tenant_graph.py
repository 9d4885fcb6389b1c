# app/crud/tenant_graph.py
# Builds the owned records of a Tenant from plan defaults plus caller input.
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.core.plan_defaults import (
    PlanDefaults,
    calculate_renewal_date,
    get_plan_defaults,
    merge_flags,
)
from app.models.tenant import Tenant, TenantLifecycleStage, TenantStatus
from app.models.tenant_compliance import DEFAULT_RETENTION_POLICY, ComplianceInfo, SecuritySettings
from app.models.tenant_configuration import (
    ApiSettings,
    BackupFrequency,
    PasswordPolicy,
    SystemSettings,
    TenantConfiguration,
    TenantCustomizations,
    TenantFeatures,
    TenantLimits,
)
from app.models.tenant_profile import (
    AccreditationInfo,
    Address,
    ContactPerson,
    SchoolInfo,
    TenantContactInfo,
    TenantLocation,
)
from app.models.tenant_subscription import (
    BillingInfo,
    BillingStatus,
    FeatureLimits,
    PaymentMethod,
    SubscriptionLimits,
    SubscriptionStatus,
    TenantSubscription,
    TrialInfo,
)
from app.models.tenant_usage import TenantBranding, TenantUsage
from app.models.tenant_integrations import TenantIntegrations

NOT_PROVIDED = "Not provided"
MINIMAL_TRIAL_DAYS = 30
CUSTOM_FIELDS_PER_USER = 5

# compliance requirement -> ComplianceInfo flag
COMPLIANCE_FLAGS = {
    "gdpr": "gdpr_compliant",
    "coppa": "coppa_compliant",
    "ferpa": "ferpa_compliant",
    "hipaa": "hipaa_compliant",
}


# ---------------------------------------------------------
# Small builders
# ---------------------------------------------------------
def build_address(data: dict[str, Any]) -> Address:
    return Address(
        street1=data.get("street1"),
        street2=data.get("street2"),
        city=data["city"],
        state=data["state"],
        postal_code=data.get("postal_code"),
        country=data["country"],
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
    )


def build_contact(data: Optional[dict[str, Any]]) -> Optional[ContactPerson]:
    if not data:
        return None
    return ContactPerson(**data)


def apply_compliance(compliance: ComplianceInfo, requirements: list[str]) -> None:
    """Known frameworks set their flag; anything else is kept as a local regulation."""
    for flag in COMPLIANCE_FLAGS.values():
        setattr(compliance, flag, False)
    local: list[str] = []
    for req in requirements:
        flag = COMPLIANCE_FLAGS.get(req)
        if flag:
            setattr(compliance, flag, True)
        elif req not in local:
            local.append(req)
    compliance.local_regulations = local


def apply_subscription_limits(subscription: TenantSubscription, defaults: PlanDefaults) -> None:
    """(Re)derive subscription quota and feature limits for the plan."""
    limit_values = merge_flags(defaults.subscription_limits, None)
    feature_values = merge_flags(defaults.feature_limits, None)

    if subscription.limits is None:
        subscription.limits = SubscriptionLimits(**limit_values)
    else:
        for key, value in limit_values.items():
            setattr(subscription.limits, key, value)

    if subscription.limits.features is None:
        subscription.limits.features = FeatureLimits(**feature_values)
    else:
        for key, value in feature_values.items():
            setattr(subscription.limits.features, key, value)


def _customizations_for(features: dict[str, bool], max_users: int) -> TenantCustomizations:
    custom_fields = bool(features.get("custom_fields"))
    return TenantCustomizations(
        allow_custom_fields=custom_fields,
        custom_fields_limit=max_users * CUSTOM_FIELDS_PER_USER if custom_fields and max_users > 0 else 0,
        allow_workflow_customization=bool(features.get("advanced_security")),
        allow_report_customization=bool(features.get("reports_analytics")),
        allow_ui_customization=bool(features.get("custom_branding")),
        custom_modules=[],
    )


def _configuration(
    defaults: PlanDefaults,
    features_override: Optional[dict[str, Any]],
    limits_override: Optional[dict[str, Any]],
    backup_frequency: str,
) -> TenantConfiguration:
    features = merge_flags(defaults.tenant_features, features_override)
    limits = merge_flags(defaults.tenant_limits, limits_override)

    settings = SystemSettings(
        maintenance_mode=False,
        debug_mode=False,
        allow_registration=True,
        require_email_verification=True,
        session_timeout=480,
        backup_frequency=backup_frequency,
        data_retention_period=2555,
        password_policy=PasswordPolicy(
            min_length=8,
            require_uppercase=True,
            require_lowercase=True,
            require_numbers=True,
            require_special_chars=True,
            prohibit_common_passwords=True,
            password_expiry=90,
        ),
    )
    return TenantConfiguration(
        system_settings=settings,
        features=TenantFeatures(**features),
        limits=TenantLimits(**limits),
        customizations=_customizations_for(features, limits["max_users"]),
        api_settings=ApiSettings(
            enabled=bool(features.get("api_access")),
            version="1.0",
            rate_limit=1000,
            allowed_origins=[],
            webhook_endpoints=[],
            api_keys=[],
        ),
    )


def _subscription(
    defaults: PlanDefaults,
    plan: str,
    billing_cycle: str,
    trial_days: int,
    billing_status: str,
    renewal_days: Optional[int] = None,
) -> TenantSubscription:
    now = utcnow()
    trial_end = now + timedelta(days=trial_days)
    renewal = now + timedelta(days=renewal_days) if renewal_days else calculate_renewal_date(now, billing_cycle)

    subscription = TenantSubscription(
        plan=plan,
        status=SubscriptionStatus.TRIAL.value,
        billing_cycle=billing_cycle,
        start_date=now,
        end_date=None,
        renewal_date=renewal,
        base_price=defaults.base_price,
        additional_user_price=defaults.additional_user_price,
        total_price=defaults.base_price,
        currency="USD",
        usage_tracking=True,
        overage_charges=False,
        auto_renewal=True,
        grace_period_days=7,
        billing=BillingInfo(
            method=PaymentMethod.CREDIT_CARD.value,
            status=billing_status,
            next_billing_date=renewal,
            outstanding_balance=Decimal("0"),
            invoices=[],
        ),
        trial=TrialInfo(
            is_trial_active=True,
            trial_start_date=now,
            trial_end_date=trial_end,
            trial_days_remaining=trial_days,
            trial_plan=plan,
            converted_from_trial=False,
            extensions_used=0,
            max_extensions=2,
        ),
    )
    apply_subscription_limits(subscription, defaults)
    return subscription


def _security() -> SecuritySettings:
    return SecuritySettings(
        mfa_enabled=False,
        sso_enabled=False,
        session_timeout=480,
        role_based_access=True,
        custom_roles=False,
        ip_whitelisting=False,
        allowed_ips=[],
        encryption_at_rest=True,
        encryption_in_transit=True,
        audit_logging=True,
        real_time_monitoring=False,
        backup_encryption=True,
        disaster_recovery=False,
        recovery_point_objective=24,
        recovery_time_objective=4,
    )


def _usage() -> TenantUsage:
    return TenantUsage(
        current_users=0,
        current_students=0,
        current_staff=0,
        current_classes=0,
        storage_used=0,
        api_calls_this_month=0,
        emails_sent_today=0,
        active_sessions=0,
        last_activity=utcnow(),
        monthly_active_users=0,
        daily_active_users=0,
        average_session_duration=0,
        feature_usage_stats={},
        system_uptime=100,
        error_rate=0,
        user_retention_rate=100,
    )


def _add_all(db: AsyncSession, tenant: Tenant) -> None:
    """
    Register the root and every owned record explicitly. Children are
    attached through relationships, so one add per row keeps the unit of
    work obvious when reading the code.
    """
    db.add(tenant)
    ci = tenant.contact_info
    for row in (
        ci.address,
        ci.primary_contact,
        ci.billing_contact,
        ci.technical_contact,
        ci.emergency_contact,
        ci,
        tenant.location.address,
        tenant.location,
        tenant.school_info,
        *tenant.school_info.accreditation,
        tenant.subscription,
        tenant.subscription.limits,
        tenant.subscription.limits.features,
        tenant.subscription.billing,
        tenant.subscription.trial,
        tenant.configuration,
        tenant.configuration.system_settings,
        tenant.configuration.system_settings.password_policy,
        tenant.configuration.features,
        tenant.configuration.limits,
        tenant.configuration.customizations,
        tenant.configuration.api_settings,
        tenant.compliance,
        tenant.security,
        tenant.usage,
        tenant.branding,
        tenant.integrations,
    ):
        if row is not None:
            db.add(row)


# ---------------------------------------------------------
# Graph builders
# ---------------------------------------------------------
def build_tenant(db: AsyncSession, payload, actor_id=None) -> Tenant:
    """Full provisioning: caller supplies the profile, plan defaults fill the rest."""
    plan = payload.subscription_plan.value
    cycle = payload.billing_cycle.value
    defaults = get_plan_defaults(plan)

    contact = payload.contact_info
    location = payload.location
    school = payload.school_info

    compliance = ComplianceInfo(
        data_processing_agreement=True,
        data_retention_policy=DEFAULT_RETENTION_POLICY,
        right_to_erasure=True,
        data_portability=True,
    )
    apply_compliance(compliance, payload.compliance_requirements)

    branding = None
    if payload.branding is not None:
        branding = TenantBranding(**payload.branding.model_dump(exclude_none=True))

    tenant = Tenant(
        name=payload.name,
        slug=payload.slug,
        display_name=payload.display_name,
        description=payload.description,
        tags=list(payload.tags),
        tenant_metadata=dict(payload.metadata),
        created_by=actor_id,
        updated_by=actor_id,
        contact_info=TenantContactInfo(
            phone=contact.phone,
            email=str(contact.email).lower(),
            website=contact.website,
            address=build_address(contact.address.model_dump()),
            primary_contact=build_contact(contact.primary_contact.model_dump()),
            billing_contact=build_contact(contact.billing_contact and contact.billing_contact.model_dump()),
            technical_contact=build_contact(contact.technical_contact and contact.technical_contact.model_dump()),
            emergency_contact=build_contact(contact.emergency_contact and contact.emergency_contact.model_dump()),
        ),
        location=TenantLocation(
            timezone=location.timezone,
            locale=location.locale,
            currency=location.currency,
            region=location.region,
            country=location.country,
            address=build_address(location.address.model_dump()),
        ),
        school_info=SchoolInfo(
            type=school.type.value,
            category=school.category.value,
            levels=[lvl.value for lvl in school.levels],
            founded_year=school.founded_year,
            principal_name=school.principal_name,
            student_capacity=school.student_capacity,
            current_enrollment=school.current_enrollment,
            staff_count=school.staff_count,
            academic_calendar=school.academic_calendar.value,
            languages_offered=list(school.languages_offered),
            special_programs=list(school.special_programs),
            accreditation=[
                AccreditationInfo(
                    body=a.body,
                    status=a.status.value,
                    expiry_date=a.expiry_date,
                    certificate_number=a.certificate_number,
                )
                for a in school.accreditation
            ],
        ),
        subscription=_subscription(
            defaults,
            plan,
            cycle,
            trial_days=defaults.trial_days,
            billing_status=BillingStatus.CURRENT.value,
        ),
        configuration=_configuration(
            defaults,
            payload.features.model_dump() if payload.features else None,
            payload.limits.model_dump() if payload.limits else None,
            BackupFrequency.WEEKLY.value,
        ),
        compliance=compliance,
        security=_security(),
        usage=_usage(),
        branding=branding,
        integrations=TenantIntegrations(),
    )
    _add_all(db, tenant)
    return tenant


def build_minimal_tenant(db: AsyncSession, payload, slug: str, actor_id=None) -> Tenant:
    """Self-service provisioning from a handful of fields; starter defaults everywhere else."""
    defaults = get_plan_defaults("starter")
    now = utcnow()

    address = {
        "street1": payload.street or NOT_PROVIDED,
        "city": payload.city or NOT_PROVIDED,
        "state": payload.state or NOT_PROVIDED,
        "postal_code": payload.postal_code,
        "country": payload.country or NOT_PROVIDED,
    }

    compliance = ComplianceInfo(
        data_processing_agreement=True,
        data_retention_policy=DEFAULT_RETENTION_POLICY,
        right_to_erasure=True,
        data_portability=True,
    )
    apply_compliance(compliance, ["gdpr"])

    tenant = Tenant(
        name=payload.name,
        slug=slug,
        display_name=payload.name,
        status=TenantStatus.ACTIVE.value,
        lifecycle_stage=TenantLifecycleStage.ONBOARDING.value,
        tags=[],
        tenant_metadata={
            "createdMinimal": True,
            "code": payload.code.upper(),
            "createdDate": now.isoformat(),
        },
        created_by=actor_id,
        updated_by=actor_id,
        contact_info=TenantContactInfo(
            phone=payload.phone,
            email=str(payload.email).lower(),
            address=build_address(address),
            primary_contact=ContactPerson(
                name=payload.name,
                title="Administrator",
                email=str(payload.email).lower(),
                phone=payload.phone,
            ),
        ),
        location=TenantLocation(
            timezone="UTC",
            locale="en_US",
            currency="USD",
            region=payload.state or NOT_PROVIDED,
            country=payload.country or NOT_PROVIDED,
            address=build_address(address),
        ),
        school_info=SchoolInfo(
            type="private",
            category="elementary",
            levels=["elementary"],
            student_capacity=100,
            current_enrollment=0,
            staff_count=0,
            academic_calendar="semester",
            languages_offered=["English"],
            special_programs=[],
            accreditation=[],
        ),
        subscription=_subscription(
            defaults,
            "starter",
            "monthly",
            trial_days=MINIMAL_TRIAL_DAYS,
            billing_status=BillingStatus.PENDING.value,
            renewal_days=MINIMAL_TRIAL_DAYS,
        ),
        configuration=_configuration(defaults, None, None, BackupFrequency.NEVER.value),
        compliance=compliance,
        security=_security(),
        usage=_usage(),
        integrations=TenantIntegrations(),
    )
    _add_all(db, tenant)
    return tenant

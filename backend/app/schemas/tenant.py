# backend/app/schemas/tenant.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from app.models.tenant import TenantLifecycleStage, TenantStatus
from app.models.tenant_profile import (
    AcademicCalendarType,
    AccreditationStatus,
    EducationLevel,
    SchoolCategory,
    SchoolType,
)
from app.models.tenant_subscription import BillingCycle, SubscriptionPlan, SubscriptionStatus
from app.models.tenant_usage import Theme
from app.schemas.auth import UserResponse
from app.schemas.common import BaseQuery, CamelModel

SLUG_PATTERN = r"^[a-z0-9-]+$"

TENANT_SORT_FIELDS = Literal["name", "slug", "status", "lifecycleStage", "createdAt", "updatedAt"]


# =========================================================
# Input
# =========================================================
class AddressIn(CamelModel):
    street1: Optional[str] = Field(default=None, max_length=255)
    street2: Optional[str] = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class AddressPatch(CamelModel):
    street1: Optional[str] = Field(default=None, max_length=255)
    street2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class ContactPersonIn(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    title: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=20)
    department: Optional[str] = Field(default=None, max_length=100)


class ContactPersonPatch(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    department: Optional[str] = Field(default=None, max_length=100)


class ContactInfoIn(CamelModel):
    phone: str = Field(min_length=1, max_length=20)
    email: EmailStr
    website: Optional[str] = Field(default=None, max_length=255)
    address: AddressIn
    primary_contact: ContactPersonIn
    billing_contact: Optional[ContactPersonIn] = None
    technical_contact: Optional[ContactPersonIn] = None
    emergency_contact: Optional[ContactPersonIn] = None


class ContactInfoPatch(CamelModel):
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)
    address: Optional[AddressPatch] = None
    primary_contact: Optional[ContactPersonPatch] = None


class LocationIn(CamelModel):
    timezone: str = Field(default="UTC", min_length=1, max_length=64)
    locale: str = Field(default="en_US", min_length=1, max_length=20)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    region: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    address: AddressIn


class LocationPatch(CamelModel):
    timezone: Optional[str] = Field(default=None, min_length=1, max_length=64)
    locale: Optional[str] = Field(default=None, min_length=1, max_length=20)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    region: Optional[str] = Field(default=None, min_length=1, max_length=100)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    address: Optional[AddressPatch] = None


class AccreditationIn(CamelModel):
    body: str = Field(min_length=1, max_length=200)
    status: AccreditationStatus = AccreditationStatus.PENDING
    expiry_date: Optional[date] = None
    certificate_number: Optional[str] = Field(default=None, max_length=100)


class SchoolInfoIn(CamelModel):
    type: SchoolType
    category: SchoolCategory
    levels: list[EducationLevel] = Field(min_length=1)
    founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)
    principal_name: Optional[str] = Field(default=None, max_length=200)
    student_capacity: int = Field(gt=0)
    current_enrollment: int = Field(default=0, ge=0)
    staff_count: int = Field(default=0, ge=0)
    accreditation: list[AccreditationIn] = Field(default_factory=list)
    academic_calendar: AcademicCalendarType = AcademicCalendarType.SEMESTER
    languages_offered: list[str] = Field(min_length=1)
    special_programs: list[str] = Field(default_factory=list)


class SchoolInfoPatch(CamelModel):
    type: Optional[SchoolType] = None
    category: Optional[SchoolCategory] = None
    levels: Optional[list[EducationLevel]] = None
    founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)
    principal_name: Optional[str] = Field(default=None, max_length=200)
    student_capacity: Optional[int] = Field(default=None, gt=0)
    current_enrollment: Optional[int] = Field(default=None, ge=0)
    staff_count: Optional[int] = Field(default=None, ge=0)
    academic_calendar: Optional[AcademicCalendarType] = None
    languages_offered: Optional[list[str]] = None
    special_programs: Optional[list[str]] = None


class TenantFeaturesPatch(CamelModel):
    academic_management: Optional[bool] = None
    fee_management: Optional[bool] = None
    library_management: Optional[bool] = None
    transport_management: Optional[bool] = None
    inventory_management: Optional[bool] = None
    hr_management: Optional[bool] = None
    parent_portal: Optional[bool] = None
    student_portal: Optional[bool] = None
    mobile_app: Optional[bool] = None
    reports_analytics: Optional[bool] = None
    timetable_management: Optional[bool] = None
    communication_tools: Optional[bool] = None
    exam_management: Optional[bool] = None
    discipline_tracking: Optional[bool] = None
    health_records: Optional[bool] = None
    custom_fields: Optional[bool] = None
    api_access: Optional[bool] = None
    sso_integration: Optional[bool] = None
    custom_branding: Optional[bool] = None
    advanced_security: Optional[bool] = None


class TenantLimitsPatch(CamelModel):
    max_users: Optional[int] = Field(default=None, gt=0)
    max_students: Optional[int] = Field(default=None, gt=0)
    max_staff: Optional[int] = Field(default=None, gt=0)
    max_classes: Optional[int] = Field(default=None, gt=0)
    max_subjects: Optional[int] = Field(default=None, gt=0)
    storage_quota: Optional[int] = Field(default=None, gt=0)
    monthly_api_calls: Optional[int] = Field(default=None, gt=0)
    daily_email_limit: Optional[int] = Field(default=None, gt=0)
    concurrent_sessions: Optional[int] = Field(default=None, gt=0)


class BrandingPatch(CamelModel):
    logo_url: Optional[str] = Field(default=None, max_length=500)
    favicon_url: Optional[str] = Field(default=None, max_length=500)
    primary_color: Optional[str] = Field(default=None, max_length=20)
    secondary_color: Optional[str] = Field(default=None, max_length=20)
    accent_color: Optional[str] = Field(default=None, max_length=20)
    custom_css: Optional[str] = None
    theme: Optional[Theme] = None
    font_family: Optional[str] = Field(default=None, max_length=100)
    custom_domain: Optional[str] = Field(default=None, max_length=255)
    email_template: Optional[str] = None


def _normalize_requirements(values: Optional[list[str]]) -> Optional[list[str]]:
    if values is None:
        return None
    return [v.strip().lower() for v in values if v and v.strip()]


class TenantCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=100, pattern=SLUG_PATTERN)
    display_name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)

    contact_info: ContactInfoIn
    location: LocationIn
    school_info: SchoolInfoIn

    subscription_plan: SubscriptionPlan = SubscriptionPlan.STARTER
    billing_cycle: BillingCycle = BillingCycle.MONTHLY

    features: Optional[TenantFeaturesPatch] = None
    limits: Optional[TenantLimitsPatch] = None
    compliance_requirements: list[str] = Field(default_factory=list)
    branding: Optional[BrandingPatch] = None

    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("compliance_requirements")
    @classmethod
    def validate_requirements(cls, v: list[str]) -> list[str]:
        return _normalize_requirements(v)


class TenantUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[TenantStatus] = None
    lifecycle_stage: Optional[TenantLifecycleStage] = None

    contact_info: Optional[ContactInfoPatch] = None
    location: Optional[LocationPatch] = None
    school_info: Optional[SchoolInfoPatch] = None

    subscription_plan: Optional[SubscriptionPlan] = None
    billing_cycle: Optional[BillingCycle] = None

    features: Optional[TenantFeaturesPatch] = None
    limits: Optional[TenantLimitsPatch] = None
    compliance_requirements: Optional[list[str]] = None
    branding: Optional[BrandingPatch] = None

    tags: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("compliance_requirements")
    @classmethod
    def validate_requirements(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _normalize_requirements(v)


class TenantMinimalCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9-]+$")
    email: EmailStr
    phone: str = Field(min_length=1, max_length=20)
    street: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)


class SubscriptionUpdate(CamelModel):
    plan: SubscriptionPlan
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TenantQuery(BaseQuery):
    sort_by: TENANT_SORT_FIELDS = "createdAt"
    status: Optional[TenantStatus] = None
    lifecycle_stage: Optional[TenantLifecycleStage] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    school_type: Optional[SchoolType] = None
    region: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    is_active: Optional[bool] = None
    trial_ending_soon: Optional[int] = Field(default=None, ge=1)
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


# =========================================================
# Output
# =========================================================
class AddressOut(CamelModel):
    id: uuid.UUID
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: str
    state: str
    postal_code: Optional[str] = None
    country: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ContactPersonOut(CamelModel):
    id: uuid.UUID
    name: str
    title: str
    email: str
    phone: str
    department: Optional[str] = None


class ContactInfoOut(CamelModel):
    phone: str
    email: str
    website: Optional[str] = None
    address: AddressOut
    primary_contact: ContactPersonOut
    billing_contact: Optional[ContactPersonOut] = None
    technical_contact: Optional[ContactPersonOut] = None
    emergency_contact: Optional[ContactPersonOut] = None


class LocationOut(CamelModel):
    timezone: str
    locale: str
    currency: str
    region: str
    country: str
    address: AddressOut


class AccreditationOut(CamelModel):
    id: uuid.UUID
    body: str
    status: str
    expiry_date: Optional[date] = None
    certificate_number: Optional[str] = None


class SchoolInfoOut(CamelModel):
    type: str
    category: str
    levels: list[str]
    founded_year: Optional[int] = None
    principal_name: Optional[str] = None
    student_capacity: int
    current_enrollment: int
    staff_count: int
    academic_calendar: str
    languages_offered: list[str]
    special_programs: list[str]
    accreditation: list[AccreditationOut] = Field(default_factory=list)


class FeatureLimitsOut(CamelModel):
    custom_branding: bool
    api_access: bool
    sso_integration: bool
    advanced_reports: bool
    mobile_app: bool
    parent_portal: bool
    student_portal: bool
    bulk_operations: bool
    data_export: bool
    automated_backups: bool
    priority_support: bool
    dedicated_account_manager: bool


class SubscriptionLimitsOut(CamelModel):
    max_users: int
    max_students: int
    max_storage: int
    max_api_calls: int
    max_school_years: int
    max_classes: int
    features: Optional[FeatureLimitsOut] = None


class BillingOut(CamelModel):
    method: str
    status: str
    next_billing_date: datetime
    last_payment_date: Optional[datetime] = None
    last_payment_amount: Optional[Decimal] = None
    outstanding_balance: Decimal
    invoices: list[str]


class TrialOut(CamelModel):
    is_trial_active: bool
    trial_start_date: datetime
    trial_end_date: datetime
    trial_days_remaining: int
    trial_plan: str
    converted_from_trial: bool
    conversion_date: Optional[datetime] = None
    extensions_used: int
    max_extensions: int


class SubscriptionOut(CamelModel):
    plan: SubscriptionPlan
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    start_date: datetime
    end_date: Optional[datetime] = None
    renewal_date: datetime
    base_price: Decimal
    additional_user_price: Decimal
    total_price: Decimal
    currency: str
    discount: Optional[dict[str, Any]] = None
    usage_tracking: bool
    overage_charges: bool
    auto_renewal: bool
    grace_period_days: int
    limits: Optional[SubscriptionLimitsOut] = None
    billing: Optional[BillingOut] = None
    trial: Optional[TrialOut] = None


class PasswordPolicyOut(CamelModel):
    min_length: int
    require_uppercase: bool
    require_lowercase: bool
    require_numbers: bool
    require_special_chars: bool
    prohibit_common_passwords: bool
    password_expiry: int


class SystemSettingsOut(CamelModel):
    maintenance_mode: bool
    debug_mode: bool
    allow_registration: bool
    require_email_verification: bool
    session_timeout: int
    backup_frequency: str
    data_retention_period: int
    password_policy: Optional[PasswordPolicyOut] = None


class TenantFeaturesOut(CamelModel):
    academic_management: bool
    fee_management: bool
    library_management: bool
    transport_management: bool
    inventory_management: bool
    hr_management: bool
    parent_portal: bool
    student_portal: bool
    mobile_app: bool
    reports_analytics: bool
    timetable_management: bool
    communication_tools: bool
    exam_management: bool
    discipline_tracking: bool
    health_records: bool
    custom_fields: bool
    api_access: bool
    sso_integration: bool
    custom_branding: bool
    advanced_security: bool


class TenantLimitsOut(CamelModel):
    max_users: int
    max_students: int
    max_staff: int
    max_classes: int
    max_subjects: int
    storage_quota: int
    monthly_api_calls: int
    daily_email_limit: int
    concurrent_sessions: int


class CustomizationsOut(CamelModel):
    allow_custom_fields: bool
    custom_fields_limit: int
    allow_workflow_customization: bool
    allow_report_customization: bool
    allow_ui_customization: bool
    custom_modules: list[str]


class ApiSettingsOut(CamelModel):
    enabled: bool
    version: str
    rate_limit: int
    allowed_origins: list[str]
    webhook_endpoints: list[str]


class ConfigurationOut(CamelModel):
    system_settings: Optional[SystemSettingsOut] = None
    features: Optional[TenantFeaturesOut] = None
    limits: Optional[TenantLimitsOut] = None
    customizations: Optional[CustomizationsOut] = None
    api_settings: Optional[ApiSettingsOut] = None


class CertificationOut(CamelModel):
    id: uuid.UUID
    name: str
    issuer: str
    issued_date: date
    expiry_date: Optional[date] = None
    certificate_url: Optional[str] = None
    status: str


class ComplianceOut(CamelModel):
    gdpr_compliant: bool
    coppa_compliant: bool
    ferpa_compliant: bool
    hipaa_compliant: bool
    local_regulations: list[str]
    data_processing_agreement: bool
    privacy_policy_url: Optional[str] = None
    terms_of_service_url: Optional[str] = None
    data_retention_policy: str
    right_to_erasure: bool
    data_portability: bool
    last_audit_date: Optional[datetime] = None
    next_audit_date: Optional[datetime] = None
    certifications: list[CertificationOut] = Field(default_factory=list)


class SecurityIncidentOut(CamelModel):
    id: uuid.UUID
    type: str
    severity: str
    description: str
    reported_at: datetime
    resolved_at: Optional[datetime] = None
    status: str


class SecurityOut(CamelModel):
    mfa_enabled: bool
    sso_enabled: bool
    session_timeout: int
    role_based_access: bool
    custom_roles: bool
    ip_whitelisting: bool
    allowed_ips: list[str]
    encryption_at_rest: bool
    encryption_in_transit: bool
    audit_logging: bool
    real_time_monitoring: bool
    backup_encryption: bool
    disaster_recovery: bool
    recovery_point_objective: int
    recovery_time_objective: int
    last_security_audit: Optional[datetime] = None
    incidents: list[SecurityIncidentOut] = Field(default_factory=list)


class UsageOut(CamelModel):
    current_users: int
    current_students: int
    current_staff: int
    current_classes: int
    storage_used: float
    api_calls_this_month: int
    emails_sent_today: int
    active_sessions: int
    last_activity: Optional[datetime] = None
    monthly_active_users: int
    daily_active_users: int
    average_session_duration: float
    feature_usage_stats: dict[str, int]
    system_uptime: float
    error_rate: float
    user_retention_rate: float


class BrandingOut(CamelModel):
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    custom_css: Optional[str] = None
    theme: str
    font_family: Optional[str] = None
    custom_domain: Optional[str] = None
    email_template: Optional[str] = None


class IntegrationItemOut(CamelModel):
    id: uuid.UUID
    provider: Optional[str] = None
    enabled: bool


class IntegrationsOut(CamelModel):
    lms: list[IntegrationItemOut] = Field(default_factory=list)
    payment_gateways: list[IntegrationItemOut] = Field(default_factory=list)
    communication: list[IntegrationItemOut] = Field(default_factory=list)
    analytics: list[IntegrationItemOut] = Field(default_factory=list)
    sso: list[IntegrationItemOut] = Field(default_factory=list)
    custom: list[IntegrationItemOut] = Field(default_factory=list)


class TenantResponse(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    status: TenantStatus
    lifecycle_stage: TenantLifecycleStage
    tags: list[str]
    metadata: dict[str, Any] = Field(validation_alias="tenant_metadata")

    contact_info: Optional[ContactInfoOut] = None
    location: Optional[LocationOut] = None
    school_info: Optional[SchoolInfoOut] = None
    subscription: Optional[SubscriptionOut] = None
    configuration: Optional[ConfigurationOut] = None
    compliance: Optional[ComplianceOut] = None
    security: Optional[SecurityOut] = None
    usage: Optional[UsageOut] = None
    branding: Optional[BrandingOut] = None
    integrations: Optional[IntegrationsOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class AddressSummary(CamelModel):
    street: Optional[str] = None
    city: str
    state: str
    country: str
    postal_code: Optional[str] = None


class TenantSummary(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    status: TenantStatus
    email: Optional[str] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    address: Optional[AddressSummary] = None
    created_at: Optional[datetime] = None


class MinimalTenantResponse(CamelModel):
    tenant: TenantResponse
    user: UserResponse


class TenantStatistics(CamelModel):
    total: int
    by_status: dict[str, int]
    by_lifecycle_stage: dict[str, int]
    by_subscription_plan: dict[str, int]
    recently_created: int
    trial_expiring_soon: int
    subscription_expiring_soon: int

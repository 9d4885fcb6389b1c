"""initial schema: users, tenant aggregate, school years, access requests, waitlist

Revision ID: 1f3c9a0d2b7e
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy import text

# revision identifiers, used by Alembic.
revision = "1f3c9a0d2b7e"
down_revision = None
branch_labels = None
depends_on = None

SCHOOL_YEAR_DEFAULT_INDEX = "uq_school_years_tenant_default"
SCHOOL_YEAR_DEFAULT_WHERE = "is_default AND deleted_at IS NULL"
PENDING_REQUEST_INDEX = "uq_tenant_access_requests_pending_user_tenant"
PENDING_REQUEST_WHERE = "status = 'pending'"


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _audit() -> list:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
    ]


def _owned() -> list:
    return [sa.Column("id", sa.Uuid(), primary_key=True), *_timestamps()]


def _parent(name: str, table: str, *, one_to_one: bool = True) -> list:
    # 1:1 children carry a unique owner key; 1:n children an index (created by the caller).
    items = [sa.Column(name, sa.Uuid(), sa.ForeignKey(f"{table}.id", ondelete="CASCADE"), nullable=False)]
    if one_to_one:
        items.append(sa.UniqueConstraint(name))
    return items


def _flags(*names: str) -> list:
    return [sa.Column(n, sa.Boolean(), nullable=False) for n in names]


def _ints(*names: str) -> list:
    return [sa.Column(n, sa.Integer(), nullable=False) for n in names]


def _tz(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _create_core() -> None:
    op.create_table(
        "tenants",
        *_audit(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("lifecycle_stage", sa.String(20), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
    )
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)

    op.create_table(
        "users",
        *_audit(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("designation", sa.String(100), nullable=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        _tz("email_verified_at"),
        sa.Column("email_verification_code", sa.String(6), nullable=True),
        _tz("email_verification_code_expires"),
        sa.Column("password_reset_token", sa.String(6), nullable=True),
        _tz("password_reset_expires"),
        _tz("last_login_at"),
        sa.Column("last_login_ip", sa.String(64), nullable=True),
        sa.Column("login_attempts", sa.Integer(), nullable=False),
        _tz("locked_until"),
        sa.Column("is_first_login", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    op.create_table(
        "school_years",
        *_audit(),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("enrollment_start_date", sa.Date(), nullable=True),
        sa.Column("enrollment_end_date", sa.Date(), nullable=True),
        sa.Column("grade_submission_deadline", sa.Date(), nullable=True),
        sa.Column("graduation_date", sa.Date(), nullable=True),
        *_ints("student_count", "staff_count", "class_count", "term_count"),
        sa.Column("enrollment_status", sa.String(20), nullable=False),
        sa.Column("academic_calendar_status", sa.String(20), nullable=False),
        sa.Column("deleted_by", sa.Uuid(), nullable=True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_school_years_tenant_code"),
    )
    op.create_index("ix_school_years_tenant_id", "school_years", ["tenant_id"])
    op.create_index("ix_school_years_tenant_dates", "school_years", ["tenant_id", "start_date", "end_date"])
    op.create_index(
        SCHOOL_YEAR_DEFAULT_INDEX,
        "school_years",
        ["tenant_id"],
        unique=True,
        postgresql_where=text(SCHOOL_YEAR_DEFAULT_WHERE),
        sqlite_where=text(SCHOOL_YEAR_DEFAULT_WHERE),
    )

    op.create_table(
        "tenant_access_requests",
        *_audit(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requested_role", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _tz("reviewed_at"),
        sa.Column("metadata", sa.JSON(), nullable=False),
    )
    op.create_index("ix_tenant_access_requests_user_id", "tenant_access_requests", ["user_id"])
    op.create_index("ix_tenant_access_requests_tenant_status", "tenant_access_requests", ["tenant_id", "status"])
    op.create_index(
        PENDING_REQUEST_INDEX,
        "tenant_access_requests",
        ["user_id", "tenant_id"],
        unique=True,
        postgresql_where=text(PENDING_REQUEST_WHERE),
        sqlite_where=text(PENDING_REQUEST_WHERE),
    )

    op.create_table(
        "waitlist_subscribers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("organization", sa.String(200), nullable=True),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("locale", sa.String(20), nullable=True),
        sa.Column("source", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("referral_code", sa.String(100), nullable=True),
        sa.Column("utm_source", sa.String(100), nullable=True),
        sa.Column("utm_medium", sa.String(100), nullable=True),
        sa.Column("utm_campaign", sa.String(100), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _tz("notified_at"),
        _tz("unsubscribed_at"),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_waitlist_subscribers_email", "waitlist_subscribers", ["email"], unique=True)


def _create_profile() -> None:
    op.create_table(
        "tenant_addresses",
        *_owned(),
        sa.Column("street1", sa.String(255), nullable=True),
        sa.Column("street2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
    )
    op.create_table(
        "tenant_contact_persons",
        *_owned(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("department", sa.String(100), nullable=True),
    )

    def contact(name: str, nullable: bool) -> sa.Column:
        ondelete = "SET NULL" if nullable else "RESTRICT"
        return sa.Column(
            name, sa.Uuid(), sa.ForeignKey("tenant_contact_persons.id", ondelete=ondelete), nullable=nullable
        )

    op.create_table(
        "tenant_contact_info",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column(
            "address_id", sa.Uuid(), sa.ForeignKey("tenant_addresses.id", ondelete="RESTRICT"), nullable=False
        ),
        contact("primary_contact_id", nullable=False),
        contact("billing_contact_id", nullable=True),
        contact("technical_contact_id", nullable=True),
        contact("emergency_contact_id", nullable=True),
    )
    op.create_index("ix_tenant_contact_info_email", "tenant_contact_info", ["email"], unique=True)

    op.create_table(
        "tenant_locations",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("locale", sa.String(20), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column(
            "address_id", sa.Uuid(), sa.ForeignKey("tenant_addresses.id", ondelete="RESTRICT"), nullable=False
        ),
    )
    op.create_table(
        "tenant_school_info",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("levels", sa.JSON(), nullable=False),
        sa.Column("founded_year", sa.Integer(), nullable=True),
        sa.Column("principal_name", sa.String(200), nullable=True),
        *_ints("student_capacity", "current_enrollment", "staff_count"),
        sa.Column("academic_calendar", sa.String(20), nullable=False),
        sa.Column("languages_offered", sa.JSON(), nullable=False),
        sa.Column("special_programs", sa.JSON(), nullable=False),
    )
    op.create_table(
        "tenant_accreditations",
        *_owned(),
        *_parent("school_info_id", "tenant_school_info", one_to_one=False),
        sa.Column("body", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("certificate_number", sa.String(100), nullable=True),
    )
    op.create_index("ix_tenant_accreditations_school_info_id", "tenant_accreditations", ["school_info_id"])


def _create_subscription() -> None:
    op.create_table(
        "tenant_subscriptions",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        sa.Column("plan", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("billing_cycle", sa.String(20), nullable=False),
        _tz("start_date", nullable=False),
        _tz("end_date"),
        _tz("renewal_date", nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("additional_user_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("discount", sa.JSON(), nullable=True),
        *_flags("usage_tracking", "overage_charges", "auto_renewal"),
        sa.Column("grace_period_days", sa.Integer(), nullable=False),
    )
    op.create_table(
        "subscription_limits",
        *_owned(),
        *_parent("subscription_id", "tenant_subscriptions"),
        *_ints("max_users", "max_students", "max_storage", "max_api_calls", "max_school_years", "max_classes"),
    )
    op.create_table(
        "feature_limits",
        *_owned(),
        *_parent("subscription_limits_id", "subscription_limits"),
        *_flags(
            "custom_branding",
            "api_access",
            "sso_integration",
            "advanced_reports",
            "mobile_app",
            "parent_portal",
            "student_portal",
            "bulk_operations",
            "data_export",
            "automated_backups",
            "priority_support",
            "dedicated_account_manager",
        ),
    )
    op.create_table(
        "billing_info",
        *_owned(),
        *_parent("subscription_id", "tenant_subscriptions"),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        _tz("next_billing_date", nullable=False),
        _tz("last_payment_date"),
        sa.Column("last_payment_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("outstanding_balance", sa.Numeric(10, 2), nullable=False),
        sa.Column("invoices", sa.JSON(), nullable=False),
    )
    op.create_table(
        "trial_info",
        *_owned(),
        *_parent("subscription_id", "tenant_subscriptions"),
        sa.Column("is_trial_active", sa.Boolean(), nullable=False),
        _tz("trial_start_date", nullable=False),
        _tz("trial_end_date", nullable=False),
        sa.Column("trial_days_remaining", sa.Integer(), nullable=False),
        sa.Column("trial_plan", sa.String(20), nullable=False),
        sa.Column("converted_from_trial", sa.Boolean(), nullable=False),
        _tz("conversion_date"),
        *_ints("extensions_used", "max_extensions"),
    )


def _create_configuration() -> None:
    op.create_table(
        "tenant_configurations",
        *_owned(),
        *_parent("tenant_id", "tenants"),
    )
    op.create_table(
        "tenant_system_settings",
        *_owned(),
        *_parent("configuration_id", "tenant_configurations"),
        *_flags("maintenance_mode", "debug_mode", "allow_registration", "require_email_verification"),
        sa.Column("session_timeout", sa.Integer(), nullable=False),
        sa.Column("backup_frequency", sa.String(20), nullable=False),
        sa.Column("data_retention_period", sa.Integer(), nullable=False),
    )
    op.create_table(
        "tenant_password_policies",
        *_owned(),
        *_parent("system_settings_id", "tenant_system_settings"),
        sa.Column("min_length", sa.Integer(), nullable=False),
        *_flags(
            "require_uppercase",
            "require_lowercase",
            "require_numbers",
            "require_special_chars",
            "prohibit_common_passwords",
        ),
        sa.Column("password_expiry", sa.Integer(), nullable=False),
    )
    op.create_table(
        "tenant_features",
        *_owned(),
        *_parent("configuration_id", "tenant_configurations"),
        *_flags(
            "academic_management",
            "fee_management",
            "library_management",
            "transport_management",
            "inventory_management",
            "hr_management",
            "parent_portal",
            "student_portal",
            "mobile_app",
            "reports_analytics",
            "timetable_management",
            "communication_tools",
            "exam_management",
            "discipline_tracking",
            "health_records",
            "custom_fields",
            "api_access",
            "sso_integration",
            "custom_branding",
            "advanced_security",
        ),
    )
    op.create_table(
        "tenant_limits",
        *_owned(),
        *_parent("configuration_id", "tenant_configurations"),
        *_ints(
            "max_users",
            "max_students",
            "max_staff",
            "max_classes",
            "max_subjects",
            "storage_quota",
            "monthly_api_calls",
            "daily_email_limit",
            "concurrent_sessions",
        ),
    )
    op.create_table(
        "tenant_customizations",
        *_owned(),
        *_parent("configuration_id", "tenant_configurations"),
        sa.Column("allow_custom_fields", sa.Boolean(), nullable=False),
        sa.Column("custom_fields_limit", sa.Integer(), nullable=False),
        *_flags("allow_workflow_customization", "allow_report_customization", "allow_ui_customization"),
        sa.Column("custom_modules", sa.JSON(), nullable=False),
    )
    op.create_table(
        "tenant_api_settings",
        *_owned(),
        *_parent("configuration_id", "tenant_configurations"),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("version", sa.String(10), nullable=False),
        sa.Column("rate_limit", sa.Integer(), nullable=False),
        sa.Column("allowed_origins", sa.JSON(), nullable=False),
        sa.Column("webhook_endpoints", sa.JSON(), nullable=False),
        sa.Column("api_keys", sa.JSON(), nullable=False),
    )


def _create_compliance() -> None:
    op.create_table(
        "tenant_compliance",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        *_flags("gdpr_compliant", "coppa_compliant", "ferpa_compliant", "hipaa_compliant"),
        sa.Column("local_regulations", sa.JSON(), nullable=False),
        sa.Column("data_processing_agreement", sa.Boolean(), nullable=False),
        sa.Column("privacy_policy_url", sa.String(500), nullable=True),
        sa.Column("terms_of_service_url", sa.String(500), nullable=True),
        sa.Column("data_retention_policy", sa.Text(), nullable=False),
        *_flags("right_to_erasure", "data_portability"),
        _tz("last_audit_date"),
        _tz("next_audit_date"),
    )
    op.create_table(
        "tenant_compliance_certifications",
        *_owned(),
        *_parent("compliance_id", "tenant_compliance", one_to_one=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("issuer", sa.String(200), nullable=False),
        sa.Column("issued_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("certificate_url", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
    )
    op.create_index(
        "ix_tenant_compliance_certifications_compliance_id",
        "tenant_compliance_certifications",
        ["compliance_id"],
    )
    op.create_table(
        "tenant_security_settings",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        *_flags("mfa_enabled", "sso_enabled"),
        sa.Column("session_timeout", sa.Integer(), nullable=False),
        *_flags("role_based_access", "custom_roles", "ip_whitelisting"),
        sa.Column("allowed_ips", sa.JSON(), nullable=False),
        *_flags(
            "encryption_at_rest",
            "encryption_in_transit",
            "audit_logging",
            "real_time_monitoring",
            "backup_encryption",
            "disaster_recovery",
        ),
        *_ints("recovery_point_objective", "recovery_time_objective"),
        _tz("last_security_audit"),
    )
    op.create_table(
        "tenant_security_incidents",
        *_owned(),
        *_parent("security_id", "tenant_security_settings", one_to_one=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _tz("reported_at", nullable=False),
        _tz("resolved_at"),
        sa.Column("status", sa.String(20), nullable=False),
    )
    op.create_index(
        "ix_tenant_security_incidents_security_id", "tenant_security_incidents", ["security_id"]
    )


def _create_usage_and_integrations() -> None:
    op.create_table(
        "tenant_usage",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        *_ints("current_users", "current_students", "current_staff", "current_classes"),
        sa.Column("storage_used", sa.Float(), nullable=False),
        *_ints("api_calls_this_month", "emails_sent_today", "active_sessions"),
        _tz("last_activity"),
        *_ints("monthly_active_users", "daily_active_users"),
        sa.Column("average_session_duration", sa.Float(), nullable=False),
        sa.Column("feature_usage_stats", sa.JSON(), nullable=False),
        sa.Column("system_uptime", sa.Float(), nullable=False),
        sa.Column("error_rate", sa.Float(), nullable=False),
        sa.Column("user_retention_rate", sa.Float(), nullable=False),
    )
    op.create_table(
        "tenant_branding",
        *_owned(),
        *_parent("tenant_id", "tenants"),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("favicon_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(20), nullable=True),
        sa.Column("secondary_color", sa.String(20), nullable=True),
        sa.Column("accent_color", sa.String(20), nullable=True),
        sa.Column("custom_css", sa.Text(), nullable=True),
        sa.Column("theme", sa.String(10), nullable=False),
        sa.Column("font_family", sa.String(100), nullable=True),
        sa.Column("custom_domain", sa.String(255), nullable=True),
        sa.Column("email_template", sa.Text(), nullable=True),
    )
    op.create_table(
        "tenant_integrations",
        *_owned(),
        *_parent("tenant_id", "tenants"),
    )

    children = {
        "tenant_lms_integrations": [
            sa.Column("provider", sa.String(30), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("api_key", sa.String(500), nullable=True),
            _tz("last_sync"),
            sa.Column("sync_status", sa.String(20), nullable=False),
            sa.Column("settings", sa.JSON(), nullable=False),
        ],
        "tenant_payment_gateways": [
            sa.Column("provider", sa.String(30), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("merchant_id", sa.String(200), nullable=True),
            sa.Column("webhook_url", sa.String(500), nullable=True),
            sa.Column("supported_currencies", sa.JSON(), nullable=False),
            sa.Column("test_mode", sa.Boolean(), nullable=False),
        ],
        "tenant_communication_integrations": [
            sa.Column("type", sa.String(30), nullable=False),
            sa.Column("provider", sa.String(100), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("settings", sa.JSON(), nullable=False),
        ],
        "tenant_analytics_integrations": [
            sa.Column("provider", sa.String(30), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("tracking_id", sa.String(200), nullable=True),
        ],
        "tenant_sso_integrations": [
            sa.Column("provider", sa.String(30), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("client_id", sa.String(255), nullable=True),
            sa.Column("domain", sa.String(255), nullable=True),
            sa.Column("settings", sa.JSON(), nullable=False),
        ],
        "tenant_custom_integrations": [
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("type", sa.String(100), nullable=False),
            sa.Column("endpoint", sa.String(500), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("settings", sa.JSON(), nullable=False),
        ],
    }
    for table, columns in children.items():
        op.create_table(
            table,
            *_owned(),
            *_parent("integrations_id", "tenant_integrations", one_to_one=False),
            *columns,
        )
        op.create_index(f"ix_{table}_integrations_id", table, ["integrations_id"])


INTEGRATION_CHILDREN = (
    "tenant_lms_integrations",
    "tenant_payment_gateways",
    "tenant_communication_integrations",
    "tenant_analytics_integrations",
    "tenant_sso_integrations",
    "tenant_custom_integrations",
)


def upgrade() -> None:
    _create_core()
    _create_profile()
    _create_subscription()
    _create_configuration()
    _create_compliance()
    _create_usage_and_integrations()


def downgrade() -> None:
    for table in INTEGRATION_CHILDREN:
        op.drop_index(f"ix_{table}_integrations_id", table_name=table)
        op.drop_table(table)
    op.drop_table("tenant_integrations")
    op.drop_table("tenant_branding")
    op.drop_table("tenant_usage")

    op.drop_index("ix_tenant_security_incidents_security_id", table_name="tenant_security_incidents")
    op.drop_table("tenant_security_incidents")
    op.drop_table("tenant_security_settings")
    op.drop_index(
        "ix_tenant_compliance_certifications_compliance_id", table_name="tenant_compliance_certifications"
    )
    op.drop_table("tenant_compliance_certifications")
    op.drop_table("tenant_compliance")

    for table in (
        "tenant_api_settings",
        "tenant_customizations",
        "tenant_limits",
        "tenant_features",
        "tenant_password_policies",
        "tenant_system_settings",
        "tenant_configurations",
    ):
        op.drop_table(table)

    for table in ("trial_info", "billing_info", "feature_limits", "subscription_limits", "tenant_subscriptions"):
        op.drop_table(table)

    op.drop_index("ix_tenant_accreditations_school_info_id", table_name="tenant_accreditations")
    op.drop_table("tenant_accreditations")
    op.drop_table("tenant_school_info")
    op.drop_table("tenant_locations")
    op.drop_index("ix_tenant_contact_info_email", table_name="tenant_contact_info")
    op.drop_table("tenant_contact_info")
    op.drop_table("tenant_contact_persons")
    op.drop_table("tenant_addresses")

    op.drop_index("ix_waitlist_subscribers_email", table_name="waitlist_subscribers")
    op.drop_table("waitlist_subscribers")

    op.drop_index(PENDING_REQUEST_INDEX, table_name="tenant_access_requests")
    op.drop_index("ix_tenant_access_requests_tenant_status", table_name="tenant_access_requests")
    op.drop_index("ix_tenant_access_requests_user_id", table_name="tenant_access_requests")
    op.drop_table("tenant_access_requests")

    op.drop_index(SCHOOL_YEAR_DEFAULT_INDEX, table_name="school_years")
    op.drop_index("ix_school_years_tenant_dates", table_name="school_years")
    op.drop_index("ix_school_years_tenant_id", table_name="school_years")
    op.drop_table("school_years")

    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_tenants_slug", table_name="tenants")
    op.drop_table("tenants")

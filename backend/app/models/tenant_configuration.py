# backend/app/models/tenant_configuration.py
# Configuration records owned by a Tenant.

import enum
import uuid

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class BackupFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    NEVER = "never"


_OWNED = dict(uselist=False, cascade="all, delete-orphan", lazy="selectin")


class TenantConfiguration(OwnedMixin, Base):
    __tablename__ = "tenant_configurations"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    tenant = relationship("Tenant", back_populates="configuration")
    system_settings = relationship("SystemSettings", back_populates="configuration", **_OWNED)
    features = relationship("TenantFeatures", back_populates="configuration", **_OWNED)
    limits = relationship("TenantLimits", back_populates="configuration", **_OWNED)
    customizations = relationship("TenantCustomizations", back_populates="configuration", **_OWNED)
    api_settings = relationship("ApiSettings", back_populates="configuration", **_OWNED)


class SystemSettings(OwnedMixin, Base):
    __tablename__ = "tenant_system_settings"

    configuration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_configurations.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    maintenance_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    debug_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_registration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_email_verification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    session_timeout: Mapped[int] = mapped_column(Integer, nullable=False, default=480)  # minutes
    backup_frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BackupFrequency.WEEKLY.value
    )
    data_retention_period: Mapped[int] = mapped_column(Integer, nullable=False, default=2555)  # days

    configuration = relationship("TenantConfiguration", back_populates="system_settings")
    password_policy = relationship("PasswordPolicy", back_populates="system_settings", **_OWNED)


class PasswordPolicy(OwnedMixin, Base):
    __tablename__ = "tenant_password_policies"

    system_settings_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_system_settings.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    min_length: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    require_uppercase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_lowercase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_numbers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_special_chars: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    prohibit_common_passwords: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    password_expiry: Mapped[int] = mapped_column(Integer, nullable=False, default=90)  # days, 0 = never

    system_settings = relationship("SystemSettings", back_populates="password_policy")


class TenantFeatures(OwnedMixin, Base):
    __tablename__ = "tenant_features"

    configuration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_configurations.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    academic_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    fee_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    library_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    transport_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    inventory_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hr_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_portal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    student_portal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    mobile_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reports_analytics: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timetable_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    communication_tools: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    exam_management: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    discipline_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    health_records: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_fields: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    api_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sso_integration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_branding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    advanced_security: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    configuration = relationship("TenantConfiguration", back_populates="features")


class TenantLimits(OwnedMixin, Base):
    __tablename__ = "tenant_limits"

    configuration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_configurations.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # -1 means unlimited
    max_users: Mapped[int] = mapped_column(Integer, nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    max_staff: Mapped[int] = mapped_column(Integer, nullable=False)
    max_classes: Mapped[int] = mapped_column(Integer, nullable=False)
    max_subjects: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_quota: Mapped[int] = mapped_column(Integer, nullable=False)  # GB
    monthly_api_calls: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_email_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    concurrent_sessions: Mapped[int] = mapped_column(Integer, nullable=False)

    configuration = relationship("TenantConfiguration", back_populates="limits")


class TenantCustomizations(OwnedMixin, Base):
    __tablename__ = "tenant_customizations"

    configuration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_configurations.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    allow_custom_fields: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_fields_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_workflow_customization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_report_customization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_ui_customization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_modules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    configuration = relationship("TenantConfiguration", back_populates="customizations")


class ApiSettings(OwnedMixin, Base):
    __tablename__ = "tenant_api_settings"

    configuration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_configurations.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[str] = mapped_column(String(10), nullable=False, default="1.0")
    rate_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    allowed_origins: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    webhook_endpoints: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    api_keys: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    configuration = relationship("TenantConfiguration", back_populates="api_settings")

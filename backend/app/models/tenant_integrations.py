# backend/app/models/tenant_integrations.py
# Third-party integration records owned by a Tenant. All lists start empty.

import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class LmsProvider(str, enum.Enum):
    GOOGLE_CLASSROOM = "google_classroom"
    CANVAS = "canvas"
    MOODLE = "moodle"
    BLACKBOARD = "blackboard"
    OTHER = "other"


class SyncStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"
    NEVER = "never"


class PaymentProvider(str, enum.Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    SQUARE = "square"
    RAZORPAY = "razorpay"
    OTHER = "other"


class CommunicationType(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH_NOTIFICATION = "push_notification"
    VOICE = "voice"


class AnalyticsProvider(str, enum.Enum):
    GOOGLE_ANALYTICS = "google_analytics"
    MIXPANEL = "mixpanel"
    SEGMENT = "segment"
    OTHER = "other"


class SsoProvider(str, enum.Enum):
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    OKTA = "okta"
    SAML = "saml"
    OTHER = "other"


def _owned_list(target: str):
    return relationship(target, back_populates="integrations", cascade="all, delete-orphan", lazy="selectin")


def _integrations_fk():
    return mapped_column(
        Uuid, ForeignKey("tenant_integrations.id", ondelete="CASCADE"), index=True, nullable=False
    )


class TenantIntegrations(OwnedMixin, Base):
    __tablename__ = "tenant_integrations"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    tenant = relationship("Tenant", back_populates="integrations")
    lms = _owned_list("LmsIntegration")
    payment_gateways = _owned_list("PaymentGatewayIntegration")
    communication = _owned_list("CommunicationIntegration")
    analytics = _owned_list("AnalyticsIntegration")
    sso = _owned_list("SsoIntegration")
    custom = _owned_list("CustomIntegration")


class LmsIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_lms_integrations"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    api_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    last_sync: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sync_status: Mapped[str] = mapped_column(String(20), nullable=False, default=SyncStatus.NEVER.value)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    integrations = relationship("TenantIntegrations", back_populates="lms")


class PaymentGatewayIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_payment_gateways"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    merchant_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    webhook_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    supported_currencies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    test_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    integrations = relationship("TenantIntegrations", back_populates="payment_gateways")


class CommunicationIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_communication_integrations"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    provider: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    integrations = relationship("TenantIntegrations", back_populates="communication")


class AnalyticsIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_analytics_integrations"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tracking_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    integrations = relationship("TenantIntegrations", back_populates="analytics")


class SsoIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_sso_integrations"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    client_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    integrations = relationship("TenantIntegrations", back_populates="sso")


class CustomIntegration(OwnedMixin, Base):
    __tablename__ = "tenant_custom_integrations"

    integrations_id: Mapped[uuid.UUID] = _integrations_fk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(500), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    integrations = relationship("TenantIntegrations", back_populates="custom")

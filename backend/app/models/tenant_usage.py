# backend/app/models/tenant_usage.py
# Usage counters and branding owned by a Tenant.

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class TenantUsage(OwnedMixin, Base):
    __tablename__ = "tenant_usage"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    current_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_students: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_staff: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_classes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_used: Mapped[float] = mapped_column(Float, nullable=False, default=0)  # GB
    api_calls_this_month: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    emails_sent_today: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    monthly_active_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_active_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_session_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0)  # minutes
    feature_usage_stats: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    system_uptime: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    error_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    user_retention_rate: Mapped[float] = mapped_column(Float, nullable=False, default=100)

    tenant = relationship("Tenant", back_populates="usage")


class TenantBranding(OwnedMixin, Base):
    __tablename__ = "tenant_branding"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    favicon_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    primary_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    secondary_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    accent_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    custom_css: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    theme: Mapped[str] = mapped_column(String(10), nullable=False, default=Theme.LIGHT.value)
    font_family: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email_template: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tenant = relationship("Tenant", back_populates="branding")

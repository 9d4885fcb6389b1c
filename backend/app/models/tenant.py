# backend/app/models/tenant.py

import enum
from typing import Any, Optional

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import AuditMixin, Base


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"
    MIGRATING = "migrating"
    MAINTENANCE = "maintenance"


class TenantLifecycleStage(str, enum.Enum):
    PROSPECT = "prospect"
    TRIAL = "trial"
    ONBOARDING = "onboarding"
    ACTIVE = "active"
    AT_RISK = "at_risk"
    CHURNED = "churned"
    REACTIVATED = "reactivated"


# Every owned 1:1 record is loaded with the root and removed with it.
_OWNED = dict(uselist=False, cascade="all, delete-orphan", lazy="selectin")


class Tenant(AuditMixin, Base):
    """
    Aggregate root for a school account.

    Owned records are built together by app.crud.tenant_graph inside one
    transaction; nothing relies on implicit cascade-on-save.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # keep as strings; values come from the enums above
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TenantStatus.INACTIVE.value)
    lifecycle_stage: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TenantLifecycleStage.ONBOARDING.value
    )

    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tenant_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    contact_info = relationship("TenantContactInfo", back_populates="tenant", **_OWNED)
    location = relationship("TenantLocation", back_populates="tenant", **_OWNED)
    school_info = relationship("SchoolInfo", back_populates="tenant", **_OWNED)
    subscription = relationship("TenantSubscription", back_populates="tenant", **_OWNED)
    configuration = relationship("TenantConfiguration", back_populates="tenant", **_OWNED)
    compliance = relationship("ComplianceInfo", back_populates="tenant", **_OWNED)
    security = relationship("SecuritySettings", back_populates="tenant", **_OWNED)
    usage = relationship("TenantUsage", back_populates="tenant", **_OWNED)
    branding = relationship("TenantBranding", back_populates="tenant", **_OWNED)
    integrations = relationship("TenantIntegrations", back_populates="tenant", **_OWNED)

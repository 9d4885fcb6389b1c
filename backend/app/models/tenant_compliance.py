# backend/app/models/tenant_compliance.py
# Compliance and security records owned by a Tenant.

import enum
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class CertificationStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    PENDING = "pending"
    REVOKED = "revoked"


class IncidentType(str, enum.Enum):
    BREACH = "breach"
    ATTEMPT = "attempt"
    VULNERABILITY = "vulnerability"
    POLICY_VIOLATION = "policy_violation"


class IncidentSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentStatus(str, enum.Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


DEFAULT_RETENTION_POLICY = "7 years as per educational requirements"


class ComplianceInfo(OwnedMixin, Base):
    __tablename__ = "tenant_compliance"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    gdpr_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    coppa_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ferpa_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hipaa_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    local_regulations: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    data_processing_agreement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    privacy_policy_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    terms_of_service_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    data_retention_policy: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_RETENTION_POLICY
    )
    right_to_erasure: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data_portability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_audit_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_audit_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="compliance")
    certifications = relationship(
        "ComplianceCertification",
        back_populates="compliance",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ComplianceCertification(OwnedMixin, Base):
    __tablename__ = "tenant_compliance_certifications"

    compliance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_compliance.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    issuer: Mapped[str] = mapped_column(String(200), nullable=False)
    issued_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    certificate_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CertificationStatus.VALID.value)

    compliance = relationship("ComplianceInfo", back_populates="certifications")


class SecuritySettings(OwnedMixin, Base):
    __tablename__ = "tenant_security_settings"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    mfa_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sso_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    session_timeout: Mapped[int] = mapped_column(Integer, nullable=False, default=480)
    role_based_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_roles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ip_whitelisting: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allowed_ips: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    encryption_at_rest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    encryption_in_transit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    audit_logging: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    real_time_monitoring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    backup_encryption: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    disaster_recovery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recovery_point_objective: Mapped[int] = mapped_column(Integer, nullable=False, default=24)  # hours
    recovery_time_objective: Mapped[int] = mapped_column(Integer, nullable=False, default=4)  # hours
    last_security_audit: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="security")
    incidents = relationship(
        "SecurityIncident",
        back_populates="security",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SecurityIncident(OwnedMixin, Base):
    __tablename__ = "tenant_security_incidents"

    security_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_security_settings.id", ondelete="CASCADE"), index=True, nullable=False
    )

    type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=IncidentSeverity.LOW.value)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=IncidentStatus.OPEN.value)

    security = relationship("SecuritySettings", back_populates="incidents")

# backend/app/models/tenant_access_request.py
import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.roles import UserRole
from app.db.base import AuditMixin, Base


class AccessRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


PENDING_INDEX_NAME = "uq_tenant_access_requests_pending_user_tenant"
PENDING_INDEX_WHERE = "status = 'pending'"


class TenantAccessRequest(AuditMixin, Base):
    __tablename__ = "tenant_access_requests"
    __table_args__ = (
        Index("ix_tenant_access_requests_tenant_status", "tenant_id", "status"),
        # One open request per (user, tenant).
        Index(
            PENDING_INDEX_NAME,
            "user_id",
            "tenant_id",
            unique=True,
            postgresql_where=text(PENDING_INDEX_WHERE),
            sqlite_where=text(PENDING_INDEX_WHERE),
        ),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )

    requested_role: Mapped[str] = mapped_column(String(30), nullable=False, default=UserRole.STAFF.value)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccessRequestStatus.PENDING.value
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    request_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    user = relationship("User", foreign_keys=[user_id], lazy="selectin")
    reviewer = relationship("User", foreign_keys=[reviewed_by], lazy="selectin")

    @property
    def is_pending(self) -> bool:
        return self.status == AccessRequestStatus.PENDING.value

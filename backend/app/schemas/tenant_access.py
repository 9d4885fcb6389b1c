# backend/app/schemas/tenant_access.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from app.core.roles import UserRole
from app.models.tenant_access_request import AccessRequestStatus
from app.schemas.common import BaseQuery, CamelModel


def _no_super_admin(role: Optional[UserRole]) -> Optional[UserRole]:
    if role == UserRole.SUPER_ADMIN:
        raise ValueError("super_admin cannot be requested")
    return role


class AccessRequestCreate(CamelModel):
    tenant_id: uuid.UUID
    requested_role: UserRole = UserRole.STAFF
    message: Optional[str] = Field(default=None, max_length=1000)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("requested_role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        return _no_super_admin(v)


class AccessRequestUpdate(CamelModel):
    requested_role: Optional[UserRole] = None
    message: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("requested_role")
    @classmethod
    def validate_role(cls, v: Optional[UserRole]) -> Optional[UserRole]:
        return _no_super_admin(v)


class AccessRequestReview(CamelModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)


class AccessRequestQuery(BaseQuery):
    sort_by: Literal["createdAt", "updatedAt", "status", "reviewedAt"] = "createdAt"
    status: Optional[AccessRequestStatus] = None
    tenant_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None


class RequestUserOut(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str


class AccessRequestResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    requested_role: UserRole
    status: AccessRequestStatus
    message: Optional[str] = None
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(validation_alias="request_metadata")

    user: Optional[RequestUserOut] = None
    reviewer: Optional[RequestUserOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PendingCheckResponse(CamelModel):
    has_pending_request: bool
    request: Optional[AccessRequestResponse] = None

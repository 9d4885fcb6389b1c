# app/crud/tenant_access.py
from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.core.email import email_service
from app.core.roles import TENANT_REVIEWER_ROLES, UserRole, UserStatus
from app.models.tenant import Tenant
from app.models.tenant_access_request import AccessRequestStatus, TenantAccessRequest
from app.models.user import User
from app.schemas.tenant_access import (
    AccessRequestCreate,
    AccessRequestQuery,
    AccessRequestReview,
    AccessRequestUpdate,
)

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "createdAt": TenantAccessRequest.created_at,
    "updatedAt": TenantAccessRequest.updated_at,
    "status": TenantAccessRequest.status,
    "reviewedAt": TenantAccessRequest.reviewed_at,
}


async def _commit(db: AsyncSession, action: str, **log_context) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("tenant_access.conflict", action=action, error=str(exc.orig), **log_context)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have a pending request for this tenant",
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("tenant_access.db_error", action=action, error=str(exc), **log_context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {exc}",
        )


async def _get_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None or tenant.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


async def _tenant_name(db: AsyncSession, tenant_id: uuid.UUID) -> str:
    name = (await db.execute(select(Tenant.name).where(Tenant.id == tenant_id))).scalar_one_or_none()
    return name or "your school"


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
async def get_request(db: AsyncSession, request_id: uuid.UUID) -> TenantAccessRequest:
    req = await db.get(TenantAccessRequest, request_id)
    if req is None or req.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access request not found")
    return req


async def list_requests(
    db: AsyncSession,
    query: AccessRequestQuery,
    tenant_id: Optional[uuid.UUID],
) -> tuple[Sequence[TenantAccessRequest], int]:
    base = select(TenantAccessRequest)
    if not query.include_deleted:
        base = base.where(TenantAccessRequest.deleted_at.is_(None))
    if tenant_id is not None:
        base = base.where(TenantAccessRequest.tenant_id == tenant_id)
    if query.status is not None:
        base = base.where(TenantAccessRequest.status == query.status.value)
    if query.user_id is not None:
        base = base.where(TenantAccessRequest.user_id == query.user_id)
    if query.search:
        term = f"%{query.search.strip()}%"
        base = base.where(TenantAccessRequest.message.ilike(term))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()

    column = SORT_COLUMNS.get(query.sort_by, TenantAccessRequest.created_at)
    order = column.asc() if query.sort_direction == "ASC" else column.desc()
    stmt = base.order_by(order, TenantAccessRequest.id).offset(query.offset).limit(query.limit)
    return (await db.execute(stmt)).scalars().all(), int(total)


async def list_for_user(db: AsyncSession, user_id: uuid.UUID) -> Sequence[TenantAccessRequest]:
    stmt = (
        select(TenantAccessRequest)
        .where(TenantAccessRequest.user_id == user_id, TenantAccessRequest.deleted_at.is_(None))
        .order_by(TenantAccessRequest.created_at.desc())
    )
    return (await db.execute(stmt)).scalars().all()


async def list_for_tenant(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    status_filter: Optional[AccessRequestStatus] = None,
) -> Sequence[TenantAccessRequest]:
    stmt = select(TenantAccessRequest).where(
        TenantAccessRequest.tenant_id == tenant_id,
        TenantAccessRequest.deleted_at.is_(None),
    )
    if status_filter is not None:
        stmt = stmt.where(TenantAccessRequest.status == status_filter.value)
    stmt = stmt.order_by(TenantAccessRequest.created_at.desc())
    return (await db.execute(stmt)).scalars().all()


async def list_pending_for_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> Sequence[TenantAccessRequest]:
    return await list_for_tenant(db, tenant_id, AccessRequestStatus.PENDING)


async def find_pending_for_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[TenantAccessRequest]:
    stmt = (
        select(TenantAccessRequest)
        .where(
            TenantAccessRequest.user_id == user_id,
            TenantAccessRequest.status == AccessRequestStatus.PENDING.value,
            TenantAccessRequest.deleted_at.is_(None),
        )
        .order_by(TenantAccessRequest.created_at.desc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


# ---------------------------------------------------------
# Workflow
# ---------------------------------------------------------
async def create_request(db: AsyncSession, user_id: uuid.UUID, payload: AccessRequestCreate) -> TenantAccessRequest:
    user = await db.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email must be verified before requesting access",
        )

    tenant = await _get_tenant(db, payload.tenant_id)

    if user.tenant_id == tenant.id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already have access to this tenant")
    if user.tenant_id is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already belong to a tenant")

    existing = await db.execute(
        select(TenantAccessRequest.id).where(
            TenantAccessRequest.user_id == user.id,
            TenantAccessRequest.tenant_id == tenant.id,
            TenantAccessRequest.status == AccessRequestStatus.PENDING.value,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have a pending request for this tenant",
        )

    req = TenantAccessRequest(
        user_id=user.id,
        tenant_id=tenant.id,
        requested_role=payload.requested_role.value,
        message=payload.message,
        status=AccessRequestStatus.PENDING.value,
        request_metadata=dict(payload.metadata),
        created_by=user.id,
        updated_by=user.id,
    )
    db.add(req)
    await _commit(db, "create access request", user_id=str(user.id), tenant_id=str(tenant.id))
    await db.refresh(req)

    admins = (
        await db.execute(
            select(User).where(
                User.tenant_id == tenant.id,
                User.role == UserRole.ADMIN.value,
                User.status == UserStatus.ACTIVE.value,
                User.deleted_at.is_(None),
            )
        )
    ).scalars().all()
    for admin in admins:
        email_service.send_access_request_notification(
            to=admin.email,
            admin_name=admin.first_name,
            requester_name=user.full_name,
            requester_email=user.email,
            tenant_name=tenant.name,
            requested_role=req.requested_role,
            message=req.message,
        )

    logger.info(
        "tenant_access.requested",
        request_id=str(req.id),
        user_id=str(user.id),
        tenant_id=str(tenant.id),
        admins_notified=len(admins),
    )
    return req


async def review_request(
    db: AsyncSession,
    req: TenantAccessRequest,
    reviewer_id: uuid.UUID,
    payload: AccessRequestReview,
) -> TenantAccessRequest:
    if not req.is_pending:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This request has already been reviewed")

    reviewer = await db.get(User, reviewer_id)
    if reviewer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reviewer not found")
    if reviewer.role != UserRole.SUPER_ADMIN.value and reviewer.tenant_id != req.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only review requests for your own tenant",
        )
    if reviewer.role not in TENANT_REVIEWER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can review access requests",
        )

    approve = payload.status == AccessRequestStatus.APPROVED.value
    reason = (payload.rejection_reason or "").strip()
    if not approve and not reason:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rejection reason is required when rejecting a request",
        )

    requester = await db.get(User, req.user_id)
    if requester is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if approve and requester.tenant_id is not None and requester.tenant_id != req.tenant_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already belongs to another tenant")

    now = utcnow()
    req.status = payload.status
    req.reviewed_by = reviewer.id
    req.reviewed_at = now
    req.updated_by = reviewer.id
    if approve:
        requester.tenant_id = req.tenant_id
        requester.role = req.requested_role
        requester.status = UserStatus.ACTIVE.value
        requester.updated_by = reviewer.id
    else:
        req.rejection_reason = reason

    await _commit(db, "review access request", request_id=str(req.id))
    await db.refresh(req)

    tenant_name = await _tenant_name(db, req.tenant_id)
    if approve:
        email_service.send_access_approved(requester.email, requester.first_name, tenant_name, req.requested_role)
    else:
        email_service.send_access_rejected(requester.email, requester.first_name, tenant_name, reason)

    logger.info(
        "tenant_access.reviewed",
        request_id=str(req.id),
        status=req.status,
        reviewer_id=str(reviewer.id),
    )
    return req


def _ensure_author_and_pending(req: TenantAccessRequest, user_id: uuid.UUID, verb: str, done: str) -> None:
    if req.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"You can only {verb} your own requests")
    if not req.is_pending:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Only pending requests can be {done}")


async def cancel_request(db: AsyncSession, req: TenantAccessRequest, user_id: uuid.UUID) -> TenantAccessRequest:
    _ensure_author_and_pending(req, user_id, "cancel", "cancelled")
    req.status = AccessRequestStatus.CANCELLED.value
    req.updated_by = user_id
    await _commit(db, "cancel access request", request_id=str(req.id))
    await db.refresh(req)
    logger.info("tenant_access.cancelled", request_id=str(req.id))
    return req


async def update_request(
    db: AsyncSession,
    req: TenantAccessRequest,
    user_id: uuid.UUID,
    payload: AccessRequestUpdate,
) -> TenantAccessRequest:
    _ensure_author_and_pending(req, user_id, "edit", "edited")
    if payload.requested_role is not None:
        req.requested_role = payload.requested_role.value
    if payload.message is not None:
        req.message = payload.message
    req.updated_by = user_id
    await _commit(db, "update access request", request_id=str(req.id))
    await db.refresh(req)
    return req

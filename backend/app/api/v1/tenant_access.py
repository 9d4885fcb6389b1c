# app/api/v1/tenant_access.py
from __future__ import annotations

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import ensure_tenant_access, is_super_admin, require_roles, scoped_tenant_id
from app.api.v1.auth import get_current_user
from app.core.roles import UserRole
from app.crud import tenant_access as crud
from app.db.session import get_db
from app.models.tenant_access_request import AccessRequestStatus, TenantAccessRequest
from app.models.user import User
from app.schemas.common import Paginated, PaginationMeta
from app.schemas.tenant_access import (
    AccessRequestCreate,
    AccessRequestQuery,
    AccessRequestResponse,
    AccessRequestReview,
    AccessRequestUpdate,
    PendingCheckResponse,
)

router = APIRouter(prefix="/tenant-access", tags=["tenant-access"])

require_reviewer = require_roles(UserRole.SUPER_ADMIN, UserRole.ADMIN)


def _out(req: TenantAccessRequest) -> AccessRequestResponse:
    return AccessRequestResponse.model_validate(req)


def _ensure_can_view(user: User, req: TenantAccessRequest) -> None:
    """Authors see their own requests; admins see their tenant's."""
    if req.user_id == user.id or is_super_admin(user):
        return
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this request")
    ensure_tenant_access(user, req.tenant_id)


@router.post("/request", response_model=AccessRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_access_request(
    payload: AccessRequestCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(await crud.create_request(db, user.id, payload))


@router.get("/requests", response_model=Paginated[AccessRequestResponse])
async def list_access_requests(
    query: Annotated[AccessRequestQuery, Query()],
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_reviewer),
):
    tenant_id = scoped_tenant_id(user, query.tenant_id)
    rows, total = await crud.list_requests(db, query, tenant_id)
    return Paginated[AccessRequestResponse](
        data=[_out(r) for r in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/my-requests", response_model=list[AccessRequestResponse])
async def my_access_requests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [_out(r) for r in await crud.list_for_user(db, user.id)]


@router.get("/my-requests/pending", response_model=PendingCheckResponse)
async def my_pending_access_request(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = await crud.find_pending_for_user(db, user.id)
    return PendingCheckResponse(has_pending_request=req is not None, request=_out(req) if req else None)


@router.get("/tenant/{tenant_id}/requests", response_model=list[AccessRequestResponse])
async def tenant_access_requests(
    tenant_id: uuid.UUID,
    status_filter: Annotated[Optional[AccessRequestStatus], Query(alias="status")] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_reviewer),
):
    ensure_tenant_access(user, tenant_id)
    return [_out(r) for r in await crud.list_for_tenant(db, tenant_id, status_filter)]


@router.get("/tenant/{tenant_id}/pending", response_model=list[AccessRequestResponse])
async def tenant_pending_access_requests(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_reviewer),
):
    ensure_tenant_access(user, tenant_id)
    return [_out(r) for r in await crud.list_pending_for_tenant(db, tenant_id)]


@router.get("/requests/{request_id}", response_model=AccessRequestResponse)
async def get_access_request(
    request_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = await crud.get_request(db, request_id)
    _ensure_can_view(user, req)
    return _out(req)


@router.patch("/requests/{request_id}/review", response_model=AccessRequestResponse)
async def review_access_request(
    request_id: uuid.UUID,
    payload: AccessRequestReview,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = await crud.get_request(db, request_id)
    return _out(await crud.review_request(db, req, user.id, payload))


@router.patch("/requests/{request_id}/cancel", response_model=AccessRequestResponse)
async def cancel_access_request(
    request_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = await crud.get_request(db, request_id)
    return _out(await crud.cancel_request(db, req, user.id))


@router.patch("/requests/{request_id}", response_model=AccessRequestResponse)
async def update_access_request(
    request_id: uuid.UUID,
    payload: AccessRequestUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = await crud.get_request(db, request_id)
    return _out(await crud.update_request(db, req, user.id, payload))

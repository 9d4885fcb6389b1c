# app/api/v1/tenants.py
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import ensure_tenant_access, ensure_tenant_admin, require_super_admin
from app.api.v1.auth import get_current_user, to_user_response
from app.crud import tenants as crud
from app.db.session import get_db
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.common import Paginated, PaginationMeta
from app.schemas.tenant import (
    MinimalTenantResponse,
    SubscriptionUpdate,
    TenantCreate,
    TenantFeaturesPatch,
    TenantLimitsPatch,
    TenantMinimalCreate,
    TenantQuery,
    TenantResponse,
    TenantStatistics,
    TenantSummary,
    TenantUpdate,
)

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _out(tenant: Tenant) -> TenantResponse:
    return TenantResponse.model_validate(tenant)


async def _load_for_admin(db: AsyncSession, user: User, tenant_id: uuid.UUID) -> Tenant:
    tenant = await crud.get_tenant(db, tenant_id)
    ensure_tenant_admin(user, tenant.id)
    return tenant


# ---------------------------------------------------------
# Create
# ---------------------------------------------------------
@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    payload: TenantCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_super_admin),
):
    return _out(await crud.create_tenant(db, payload, actor_id=user.id))


@router.post("/minimal", response_model=MinimalTenantResponse, status_code=status.HTTP_201_CREATED)
async def create_minimal_tenant(
    payload: TenantMinimalCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant, owner = await crud.create_minimal(db, payload, user.id)
    return MinimalTenantResponse(tenant=_out(tenant), user=await to_user_response(db, owner))


# ---------------------------------------------------------
# Listing / reporting (platform-wide)
# ---------------------------------------------------------
@router.get("", response_model=Paginated[TenantResponse])
async def list_tenants(
    query: Annotated[TenantQuery, Query()],
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    rows, total = await crud.list_tenants(db, query)
    return Paginated[TenantResponse](
        data=[_out(t) for t in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/summary", response_model=Paginated[TenantSummary])
async def list_tenant_summaries(
    query: Annotated[TenantQuery, Query()],
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    rows, total = await crud.list_tenants(db, query)
    return Paginated[TenantSummary](
        data=[crud.to_summary(t) for t in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/statistics", response_model=TenantStatistics)
async def tenant_statistics(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return await crud.get_statistics(db)


@router.get("/expiring-soon", response_model=list[TenantResponse])
async def tenants_expiring_soon(
    days: Annotated[int, Query(ge=1, le=365)] = 30,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return [_out(t) for t in await crud.get_expiring_soon(db, days)]


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
@router.get("/by-code/{code}", response_model=TenantResponse)
async def tenant_by_code(
    code: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await crud.get_by_slug(db, code)
    ensure_tenant_access(user, tenant.id)
    return _out(tenant)


@router.get("/by-domain/{domain}", response_model=TenantResponse)
async def tenant_by_domain(
    domain: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await crud.get_by_domain(db, domain)
    ensure_tenant_access(user, tenant.id)
    return _out(tenant)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_tenant_access(user, tenant_id)
    return _out(await crud.get_tenant(db, tenant_id))


# ---------------------------------------------------------
# Tenant-scoped changes
# ---------------------------------------------------------
@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: uuid.UUID,
    payload: TenantUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await _load_for_admin(db, user, tenant_id)
    return _out(await crud.update_tenant(db, tenant, payload, actor_id=user.id))


@router.patch("/{tenant_id}/toggle-status", response_model=TenantResponse)
async def toggle_tenant_status(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await _load_for_admin(db, user, tenant_id)
    return _out(await crud.toggle_status(db, tenant, actor_id=user.id))


@router.patch("/{tenant_id}/features", response_model=TenantResponse)
async def update_tenant_features(
    tenant_id: uuid.UUID,
    payload: TenantFeaturesPatch,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await _load_for_admin(db, user, tenant_id)
    return _out(await crud.update_features(db, tenant, payload, actor_id=user.id))


@router.patch("/{tenant_id}/limits", response_model=TenantResponse)
async def update_tenant_limits(
    tenant_id: uuid.UUID,
    payload: TenantLimitsPatch,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant = await _load_for_admin(db, user, tenant_id)
    return _out(await crud.update_limits(db, tenant, payload, actor_id=user.id))


# ---------------------------------------------------------
# Platform-only changes
# ---------------------------------------------------------
@router.patch("/{tenant_id}/subscription", response_model=TenantResponse)
async def update_tenant_subscription(
    tenant_id: uuid.UUID,
    payload: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_super_admin),
):
    tenant = await crud.get_tenant(db, tenant_id)
    return _out(await crud.update_subscription(db, tenant, payload, actor_id=user.id))


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_super_admin),
):
    tenant = await crud.get_tenant(db, tenant_id)
    await crud.remove(db, tenant, actor_id=user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tenant_id}/restore", response_model=TenantResponse)
async def restore_tenant(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_super_admin),
):
    tenant = await crud.get_tenant(db, tenant_id, include_deleted=True)
    return _out(await crud.restore(db, tenant, actor_id=user.id))

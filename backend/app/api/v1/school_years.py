# app/api/v1/school_years.py
from __future__ import annotations

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import ensure_tenant_access, scoped_tenant_id
from app.api.v1.auth import get_current_user
from app.crud import school_years as crud
from app.db.session import get_db
from app.models.school_year import SchoolYear
from app.models.user import User
from app.schemas.common import Paginated, PaginationMeta
from app.schemas.school_year import (
    BulkDelete,
    BulkStatusUpdate,
    SchoolYearCreate,
    SchoolYearQuery,
    SchoolYearResponse,
    SchoolYearStatistics,
    SchoolYearSummary,
    SchoolYearUpdate,
)

router = APIRouter(prefix="/school-years", tags=["school-years"])


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
async def _load_for_user(
    db: AsyncSession,
    user: User,
    school_year_id: uuid.UUID,
    include_deleted: bool = False,
) -> SchoolYear:
    sy = await crud.get_school_year(db, school_year_id, include_deleted=include_deleted)
    ensure_tenant_access(user, sy.tenant_id)
    return sy


def _tenant_for(user: User, tenant_id: Optional[uuid.UUID]) -> uuid.UUID:
    scoped = scoped_tenant_id(user, tenant_id)
    if scoped is None:
        # super admin without an explicit tenant
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="tenantId is required")
    return scoped


def _out(sy: SchoolYear) -> SchoolYearResponse:
    return SchoolYearResponse.model_validate(sy)


# ---------------------------------------------------------
# Create / list
# ---------------------------------------------------------
@router.post("", response_model=SchoolYearResponse, status_code=status.HTTP_201_CREATED)
async def create_school_year(
    payload: SchoolYearCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_tenant_access(user, payload.tenant_id)
    return _out(await crud.create_school_year(db, payload, actor_id=user.id))


@router.get("", response_model=Paginated[SchoolYearResponse])
async def list_school_years(
    query: Annotated[SchoolYearQuery, Query()],
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant_id = scoped_tenant_id(user, query.tenant_id)
    rows, total = await crud.list_school_years(db, query, tenant_id)
    return Paginated[SchoolYearResponse](
        data=[_out(r) for r in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/summary", response_model=Paginated[SchoolYearSummary])
async def list_school_year_summaries(
    query: Annotated[SchoolYearQuery, Query()],
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tenant_id = scoped_tenant_id(user, query.tenant_id)
    rows, total = await crud.list_school_years(db, query, tenant_id)
    return Paginated[SchoolYearSummary](
        data=[crud.to_summary(r) for r in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/statistics", response_model=SchoolYearStatistics)
async def school_year_statistics(
    tenant_id: Annotated[Optional[uuid.UUID], Query(alias="tenantId")] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await crud.get_statistics(db, scoped_tenant_id(user, tenant_id))


@router.get("/current", response_model=SchoolYearResponse)
async def current_school_year(
    tenant_id: Annotated[Optional[uuid.UUID], Query(alias="tenantId")] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(await crud.get_current(db, _tenant_for(user, tenant_id)))


@router.get("/default", response_model=SchoolYearResponse)
async def default_school_year(
    tenant_id: Annotated[Optional[uuid.UUID], Query(alias="tenantId")] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(await crud.get_default(db, _tenant_for(user, tenant_id)))


@router.get("/tenant/{tenant_id}", response_model=list[SchoolYearResponse])
async def school_years_by_tenant(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_tenant_access(user, tenant_id)
    return [_out(r) for r in await crud.list_by_tenant(db, tenant_id)]


@router.get("/tenant/{tenant_id}/code/{code}", response_model=SchoolYearResponse)
async def school_year_by_tenant_and_code(
    tenant_id: uuid.UUID,
    code: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_tenant_access(user, tenant_id)
    return _out(await crud.get_by_code(db, tenant_id, code))


@router.get("/by-code/{code}", response_model=SchoolYearResponse)
async def school_year_by_code(
    code: str,
    tenant_id: Annotated[Optional[uuid.UUID], Query(alias="tenantId")] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(await crud.get_by_code(db, _tenant_for(user, tenant_id), code))


# ---------------------------------------------------------
# Bulk operations (declared before /{id} routes)
# ---------------------------------------------------------
@router.post("/bulk/update-status", response_model=list[SchoolYearResponse])
async def bulk_update_status(
    payload: BulkStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = await crud.load_many(db, payload.ids)
    for sy in rows:
        ensure_tenant_access(user, sy.tenant_id)
    updated = await crud.bulk_update_status(db, rows, payload.status, actor_id=user.id)
    return [_out(r) for r in updated]


@router.post("/bulk/delete", status_code=status.HTTP_204_NO_CONTENT)
async def bulk_delete(
    payload: BulkDelete,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = await crud.load_many(db, payload.ids)
    for sy in rows:
        ensure_tenant_access(user, sy.tenant_id)
    await crud.bulk_delete(db, rows, actor_id=user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------
# Single record
# ---------------------------------------------------------
@router.get("/{school_year_id}", response_model=SchoolYearResponse)
async def get_school_year(
    school_year_id: uuid.UUID,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(await _load_for_user(db, user, school_year_id, include_deleted=include_deleted))


@router.put("/{school_year_id}", response_model=SchoolYearResponse)
@router.patch("/{school_year_id}", response_model=SchoolYearResponse)
async def update_school_year(
    school_year_id: uuid.UUID,
    payload: SchoolYearUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    return _out(await crud.update_school_year(db, sy, payload, actor_id=user.id))


@router.post("/{school_year_id}/set-default", response_model=SchoolYearResponse)
@router.patch("/{school_year_id}/set-default", response_model=SchoolYearResponse)
async def set_default_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    return _out(await crud.set_as_default(db, sy, actor_id=user.id))


@router.patch("/{school_year_id}/toggle-status", response_model=SchoolYearResponse)
async def toggle_school_year_status(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    return _out(await crud.toggle_status(db, sy, actor_id=user.id))


@router.patch("/{school_year_id}/activate", response_model=SchoolYearResponse)
async def activate_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    return _out(await crud.activate(db, sy, actor_id=user.id))


@router.patch("/{school_year_id}/archive", response_model=SchoolYearResponse)
async def archive_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    return _out(await crud.archive(db, sy, actor_id=user.id))


@router.delete("/{school_year_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id)
    await crud.remove(db, sy, actor_id=user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{school_year_id}/restore", response_model=SchoolYearResponse)
async def restore_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id, include_deleted=True)
    return _out(await crud.restore(db, sy, actor_id=user.id))


@router.delete("/{school_year_id}/hard", status_code=status.HTTP_204_NO_CONTENT)
async def hard_delete_school_year(
    school_year_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sy = await _load_for_user(db, user, school_year_id, include_deleted=True)
    await crud.permanent_delete(db, sy)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

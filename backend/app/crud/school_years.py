# app/crud/school_years.py
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator, Optional, Sequence

import structlog
from fastapi import HTTPException, status
from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import today, utcnow
from app.models.school_year import NEXT_STATUS, SchoolYear, SchoolYearStatus, duration_days
from app.models.tenant import Tenant
from app.schemas.school_year import (
    SchoolYearCreate,
    SchoolYearQuery,
    SchoolYearStatistics,
    SchoolYearSummary,
    SchoolYearUpdate,
    UpcomingDeadline,
)

logger = structlog.get_logger(__name__)

MIN_DURATION_DAYS = 30
MAX_DURATION_DAYS = 500
DEADLINE_WINDOW_DAYS = 90

SORT_COLUMNS = {
    "name": SchoolYear.name,
    "code": SchoolYear.code,
    "startDate": SchoolYear.start_date,
    "endDate": SchoolYear.end_date,
    "status": SchoolYear.status,
    "isDefault": SchoolYear.is_default,
    "createdAt": SchoolYear.created_at,
    "updatedAt": SchoolYear.updated_at,
}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="School year not found")


@asynccontextmanager
async def _unit_of_work(db: AsyncSession, action: str, **log_context) -> AsyncIterator[None]:
    """
    One transaction per operation. Unique-constraint losers surface as 409,
    anything else from the database as 500.
    """
    try:
        yield
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("school_year.conflict", action=action, error=str(exc.orig), **log_context)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Failed to {action}: conflicting school year already exists",
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("school_year.db_error", action=action, error=str(exc), **log_context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {exc}",
        )


# ---------------------------------------------------------
# Validation
# ---------------------------------------------------------
def validate_dates(start_date: date, end_date: date) -> None:
    if start_date >= end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Start date must be before end date",
        )
    duration = duration_days(start_date, end_date)
    if duration < MIN_DURATION_DAYS or duration > MAX_DURATION_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"School year duration must be between {MIN_DURATION_DAYS} and "
                f"{MAX_DURATION_DAYS} days (got {duration})"
            ),
        )


async def validate_unique_code(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    code: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    # Tombstoned rows keep their code; (tenant_id, code) is unique across all rows.
    stmt = select(SchoolYear.id).where(SchoolYear.tenant_id == tenant_id, SchoolYear.code == code)
    if exclude_id is not None:
        stmt = stmt.where(SchoolYear.id != exclude_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"School year with code '{code}' already exists for this tenant",
        )


async def validate_no_overlap(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    # Closed ranges: a year starting on another's last day overlaps it.
    stmt = select(SchoolYear).where(
        SchoolYear.tenant_id == tenant_id,
        SchoolYear.deleted_at.is_(None),
        SchoolYear.start_date <= end_date,
        SchoolYear.end_date >= start_date,
    )
    if exclude_id is not None:
        stmt = stmt.where(SchoolYear.id != exclude_id)
    existing = (await db.execute(stmt.limit(1))).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Date range overlaps with existing school year: {existing.name}",
        )


async def _unset_default(db: AsyncSession, tenant_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None) -> None:
    # Runs before the new default is flushed so the partial unique index never sees two.
    stmt = (
        update(SchoolYear)
        .where(
            SchoolYear.tenant_id == tenant_id,
            SchoolYear.is_default.is_(True),
            SchoolYear.deleted_at.is_(None),
        )
        .values(is_default=False, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    if exclude_id is not None:
        stmt = stmt.where(SchoolYear.id != exclude_id)
    await db.execute(stmt)


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
async def get_school_year(db: AsyncSession, school_year_id: uuid.UUID, include_deleted: bool = False) -> SchoolYear:
    sy = await db.get(SchoolYear, school_year_id)
    if sy is None or (sy.deleted_at is not None and not include_deleted):
        raise _not_found()
    return sy


def _apply_filters(stmt: Select, query: SchoolYearQuery, tenant_id: Optional[uuid.UUID]) -> Select:
    if not query.include_deleted:
        stmt = stmt.where(SchoolYear.deleted_at.is_(None))
    if tenant_id is not None:
        stmt = stmt.where(SchoolYear.tenant_id == tenant_id)
    if query.status is not None:
        stmt = stmt.where(SchoolYear.status == query.status.value)
    if query.is_default is not None:
        stmt = stmt.where(SchoolYear.is_default.is_(query.is_default))
    if query.start_date_from:
        stmt = stmt.where(SchoolYear.start_date >= query.start_date_from)
    if query.start_date_to:
        stmt = stmt.where(SchoolYear.start_date <= query.start_date_to)
    if query.end_date_from:
        stmt = stmt.where(SchoolYear.end_date >= query.end_date_from)
    if query.end_date_to:
        stmt = stmt.where(SchoolYear.end_date <= query.end_date_to)
    if query.created_by:
        stmt = stmt.where(SchoolYear.created_by == query.created_by)
    if query.updated_by:
        stmt = stmt.where(SchoolYear.updated_by == query.updated_by)
    if query.enrollment_status is not None:
        stmt = stmt.where(SchoolYear.enrollment_status == query.enrollment_status.value)
    if query.academic_calendar_status is not None:
        stmt = stmt.where(SchoolYear.academic_calendar_status == query.academic_calendar_status.value)
    if query.search:
        term = f"%{query.search.strip()}%"
        stmt = stmt.where(
            or_(
                SchoolYear.name.ilike(term),
                SchoolYear.code.ilike(term),
                SchoolYear.description.ilike(term),
            )
        )
    return stmt


async def list_school_years(
    db: AsyncSession,
    query: SchoolYearQuery,
    tenant_id: Optional[uuid.UUID],
) -> tuple[Sequence[SchoolYear], int]:
    """
    Returns (page of rows, total matching). tenant_id is the already-scoped filter;
    query.tenant_id is ignored here.
    """
    base = _apply_filters(select(SchoolYear), query, tenant_id)

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()

    column = SORT_COLUMNS.get(query.sort_by, SchoolYear.start_date)
    order = column.asc() if query.sort_direction == "ASC" else column.desc()
    stmt = base.order_by(order, SchoolYear.id).offset(query.offset).limit(query.limit)

    rows = (await db.execute(stmt)).scalars().all()
    return rows, int(total)


async def list_by_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> Sequence[SchoolYear]:
    stmt = (
        select(SchoolYear)
        .where(SchoolYear.tenant_id == tenant_id, SchoolYear.deleted_at.is_(None))
        .order_by(SchoolYear.start_date.desc())
    )
    return (await db.execute(stmt)).scalars().all()


async def get_by_code(db: AsyncSession, tenant_id: uuid.UUID, code: str) -> SchoolYear:
    stmt = select(SchoolYear).where(
        SchoolYear.tenant_id == tenant_id,
        SchoolYear.code == code,
        SchoolYear.deleted_at.is_(None),
    )
    sy = (await db.execute(stmt)).scalar_one_or_none()
    if sy is None:
        raise _not_found()
    return sy


async def get_current(db: AsyncSession, tenant_id: uuid.UUID) -> SchoolYear:
    now = today()
    stmt = (
        select(SchoolYear)
        .where(
            SchoolYear.tenant_id == tenant_id,
            SchoolYear.deleted_at.is_(None),
            SchoolYear.status == SchoolYearStatus.ACTIVE.value,
            SchoolYear.start_date <= now,
            SchoolYear.end_date >= now,
        )
        .order_by(SchoolYear.start_date.desc())
        .limit(1)
    )
    sy = (await db.execute(stmt)).scalar_one_or_none()
    if sy is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No current school year found")
    return sy


async def find_default(db: AsyncSession, tenant_id: uuid.UUID) -> Optional[SchoolYear]:
    stmt = select(SchoolYear).where(
        SchoolYear.tenant_id == tenant_id,
        SchoolYear.deleted_at.is_(None),
        SchoolYear.is_default.is_(True),
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_default(db: AsyncSession, tenant_id: uuid.UUID) -> SchoolYear:
    sy = await find_default(db, tenant_id)
    if sy is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No default school year found")
    return sy


# ---------------------------------------------------------
# Writes
# ---------------------------------------------------------
async def create_school_year(db: AsyncSession, payload: SchoolYearCreate, actor_id: uuid.UUID) -> SchoolYear:
    tenant = await db.get(Tenant, payload.tenant_id)
    if tenant is None or tenant.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    validate_dates(payload.start_date, payload.end_date)
    await validate_unique_code(db, payload.tenant_id, payload.code)
    await validate_no_overlap(db, payload.tenant_id, payload.start_date, payload.end_date)

    data = payload.model_dump(exclude_none=True)
    for key in ("status", "enrollment_status", "academic_calendar_status"):
        if key in data:
            data[key] = data[key].value

    sy = SchoolYear(**data, created_by=actor_id, updated_by=actor_id)

    async with _unit_of_work(db, "create school year", tenant_id=str(payload.tenant_id)):
        if payload.is_default:
            await _unset_default(db, payload.tenant_id)
        db.add(sy)
    await db.refresh(sy)

    logger.info("school_year.created", school_year_id=str(sy.id), tenant_id=str(sy.tenant_id))
    return sy


# Columns that may not be cleared by an explicit null.
_REQUIRED_FIELDS = {"name", "code", "start_date", "end_date", "status", "is_default", "term_count"}


async def update_school_year(
    db: AsyncSession,
    sy: SchoolYear,
    payload: SchoolYearUpdate,
    actor_id: uuid.UUID,
) -> SchoolYear:
    data = payload.model_dump(exclude_unset=True)

    start = data.get("start_date") or sy.start_date
    end = data.get("end_date") or sy.end_date
    if start != sy.start_date or end != sy.end_date:
        validate_dates(start, end)
        await validate_no_overlap(db, sy.tenant_id, start, end, exclude_id=sy.id)

    if data.get("code") and data["code"] != sy.code:
        await validate_unique_code(db, sy.tenant_id, data["code"], exclude_id=sy.id)

    becomes_default = data.get("is_default") is True and not sy.is_default

    async with _unit_of_work(db, "update school year", school_year_id=str(sy.id)):
        if becomes_default:
            await _unset_default(db, sy.tenant_id, exclude_id=sy.id)
        for key, value in data.items():
            if value is None and (key in _REQUIRED_FIELDS or key.endswith("_count") or key.endswith("_status")):
                continue
            setattr(sy, key, getattr(value, "value", value))
        sy.updated_by = actor_id
    await db.refresh(sy)

    logger.info("school_year.updated", school_year_id=str(sy.id), fields=sorted(data))
    return sy


async def set_as_default(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> SchoolYear:
    if sy.is_default:
        return sy

    async with _unit_of_work(db, "set default school year", school_year_id=str(sy.id)):
        await _unset_default(db, sy.tenant_id, exclude_id=sy.id)
        sy.is_default = True
        sy.updated_by = actor_id
    await db.refresh(sy)

    logger.info("school_year.default_set", school_year_id=str(sy.id), tenant_id=str(sy.tenant_id))
    return sy


async def _set_status(db: AsyncSession, sy: SchoolYear, new_status: str, actor_id: uuid.UUID) -> SchoolYear:
    old_status = sy.status
    async with _unit_of_work(db, "update school year status", school_year_id=str(sy.id)):
        sy.status = new_status
        sy.updated_by = actor_id
    await db.refresh(sy)

    logger.info("school_year.status_changed", school_year_id=str(sy.id), old=old_status, new=new_status)
    return sy


async def toggle_status(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> SchoolYear:
    return await _set_status(db, sy, NEXT_STATUS.get(sy.status, SchoolYearStatus.DRAFT.value), actor_id)


async def activate(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> SchoolYear:
    return await _set_status(db, sy, SchoolYearStatus.ACTIVE.value, actor_id)


async def archive(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> SchoolYear:
    return await _set_status(db, sy, SchoolYearStatus.ARCHIVED.value, actor_id)


def _ensure_deletable(sy: SchoolYear) -> None:
    if sy.is_default:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete the default school year: {sy.name}",
        )
    if sy.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete an active school year: {sy.name}",
        )


def _tombstone(sy: SchoolYear, actor_id: uuid.UUID) -> None:
    sy.deleted_at = utcnow()
    sy.deleted_by = actor_id
    sy.updated_by = actor_id


async def remove(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> None:
    _ensure_deletable(sy)
    async with _unit_of_work(db, "delete school year", school_year_id=str(sy.id)):
        _tombstone(sy, actor_id)
    logger.info("school_year.deleted", school_year_id=str(sy.id))


async def restore(db: AsyncSession, sy: SchoolYear, actor_id: uuid.UUID) -> SchoolYear:
    if sy.deleted_at is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="School year is not deleted")

    await validate_no_overlap(db, sy.tenant_id, sy.start_date, sy.end_date, exclude_id=sy.id)

    async with _unit_of_work(db, "restore school year", school_year_id=str(sy.id)):
        sy.deleted_at = None
        sy.deleted_by = None
        sy.updated_by = actor_id
    await db.refresh(sy)

    logger.info("school_year.restored", school_year_id=str(sy.id))
    return sy


async def permanent_delete(db: AsyncSession, sy: SchoolYear) -> None:
    if sy.has_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot permanently delete a school year that has students, staff or classes",
        )
    school_year_id = str(sy.id)
    async with _unit_of_work(db, "permanently delete school year", school_year_id=school_year_id):
        await db.delete(sy)
    logger.info("school_year.hard_deleted", school_year_id=school_year_id)


async def load_many(db: AsyncSession, ids: Sequence[uuid.UUID]) -> list[SchoolYear]:
    """Live rows for every id, or 404 naming the missing ones."""
    unique_ids = list(dict.fromkeys(ids))
    stmt = select(SchoolYear).where(SchoolYear.id.in_(unique_ids), SchoolYear.deleted_at.is_(None))
    rows = list((await db.execute(stmt)).scalars().all())
    if len(rows) != len(unique_ids):
        found = {r.id for r in rows}
        missing = [str(i) for i in unique_ids if i not in found]
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"School years not found: {', '.join(missing)}",
        )
    return rows


async def bulk_update_status(
    db: AsyncSession,
    rows: Sequence[SchoolYear],
    new_status: SchoolYearStatus,
    actor_id: uuid.UUID,
) -> list[SchoolYear]:
    async with _unit_of_work(db, "bulk update school year status", count=len(rows)):
        for sy in rows:
            sy.status = new_status.value
            sy.updated_by = actor_id
    for sy in rows:
        await db.refresh(sy)

    logger.info("school_year.bulk_status", count=len(rows), status=new_status.value)
    return list(rows)


async def bulk_delete(db: AsyncSession, rows: Sequence[SchoolYear], actor_id: uuid.UUID) -> None:
    # All or nothing: one protected member rejects the batch.
    for sy in rows:
        _ensure_deletable(sy)
    async with _unit_of_work(db, "bulk delete school years", count=len(rows)):
        for sy in rows:
            _tombstone(sy, actor_id)
    logger.info("school_year.bulk_deleted", count=len(rows))


# ---------------------------------------------------------
# Statistics
# ---------------------------------------------------------
def to_summary(sy: SchoolYear) -> SchoolYearSummary:
    return SchoolYearSummary.model_validate(sy)


def _upcoming_deadlines(rows: Sequence[SchoolYear]) -> list[UpcomingDeadline]:
    now = today()
    horizon = now + timedelta(days=DEADLINE_WINDOW_DAYS)
    out: list[UpcomingDeadline] = []
    for sy in rows:
        for kind, value in (
            ("enrollment_end", sy.enrollment_end_date),
            ("grade_submission", sy.grade_submission_deadline),
            ("graduation", sy.graduation_date),
        ):
            if value is not None and now <= value <= horizon:
                out.append(
                    UpcomingDeadline(
                        school_year_id=sy.id,
                        school_year_name=sy.name,
                        type=kind,
                        deadline=value,
                        days_remaining=(value - now).days,
                    )
                )
    out.sort(key=lambda d: d.deadline)
    return out


async def get_statistics(db: AsyncSession, tenant_id: Optional[uuid.UUID]) -> SchoolYearStatistics:
    stmt = select(SchoolYear)
    if tenant_id is not None:
        stmt = stmt.where(SchoolYear.tenant_id == tenant_id)
    rows = (await db.execute(stmt)).scalars().all()

    live = [r for r in rows if r.deleted_at is None]
    default = next((r for r in live if r.is_default), None)
    durations = [r.duration for r in live]

    def _count(state: SchoolYearStatus) -> int:
        return sum(1 for r in live if r.status == state.value)

    return SchoolYearStatistics(
        total=len(live),
        active=_count(SchoolYearStatus.ACTIVE),
        draft=_count(SchoolYearStatus.DRAFT),
        archived=_count(SchoolYearStatus.ARCHIVED),
        deleted=len(rows) - len(live),
        current_default=to_summary(default) if default else None,
        total_students=sum(r.student_count for r in live),
        total_staff=sum(r.staff_count for r in live),
        total_classes=sum(r.class_count for r in live),
        average_duration_days=round(sum(durations) / len(durations), 2) if durations else 0.0,
        upcoming_deadlines=_upcoming_deadlines(live),
    )

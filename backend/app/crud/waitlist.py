# app/crud/waitlist.py
from __future__ import annotations

import csv
import io
import uuid
from datetime import timedelta
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.models.waitlist_subscriber import WaitlistStatus, WaitlistSubscriber
from app.schemas.waitlist import SubscriberCreate, SubscriberQuery, WaitlistStats

logger = structlog.get_logger(__name__)

RECENT_SIGNUP_DAYS = 7

SORT_COLUMNS = {
    "createdAt": WaitlistSubscriber.created_at,
    "updatedAt": WaitlistSubscriber.updated_at,
    "email": WaitlistSubscriber.email,
    "status": WaitlistSubscriber.status,
    "source": WaitlistSubscriber.source,
    "country": WaitlistSubscriber.country,
}

CSV_HEADERS = [
    "ID",
    "Email",
    "First Name",
    "Last Name",
    "Organization",
    "Role",
    "Phone",
    "Country",
    "Status",
    "Source",
    "Locale",
    "Created At",
    "Notified At",
]


def _already_subscribed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="This email is already subscribed to the waitlist",
    )


async def find_by_email(db: AsyncSession, email: str) -> Optional[WaitlistSubscriber]:
    res = await db.execute(select(WaitlistSubscriber).where(WaitlistSubscriber.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def get_subscriber(db: AsyncSession, subscriber_id: uuid.UUID) -> WaitlistSubscriber:
    sub = await db.get(WaitlistSubscriber, subscriber_id)
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subscriber with ID {subscriber_id} not found",
        )
    return sub


async def subscribe(
    db: AsyncSession,
    payload: SubscriberCreate,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> WaitlistSubscriber:
    email = str(payload.email).lower()
    existing = await find_by_email(db, email)
    if existing is not None:
        if existing.status != WaitlistStatus.UNSUBSCRIBED.value:
            raise _already_subscribed()
        existing.status = WaitlistStatus.ACTIVE.value
        existing.unsubscribed_at = None
        await db.commit()
        await db.refresh(existing)
        logger.info("waitlist.resubscribed", subscriber_id=str(existing.id))
        return existing

    data = payload.model_dump(exclude={"email", "metadata", "source"})
    sub = WaitlistSubscriber(
        **data,
        email=email,
        source=payload.source.value,
        status=WaitlistStatus.ACTIVE.value,
        subscriber_metadata=dict(payload.metadata),
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )
    db.add(sub)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _already_subscribed()
    await db.refresh(sub)

    logger.info("waitlist.subscribed", subscriber_id=str(sub.id), source=sub.source)
    return sub


async def list_subscribers(db: AsyncSession, query: SubscriberQuery) -> tuple[Sequence[WaitlistSubscriber], int]:
    base = select(WaitlistSubscriber)
    if query.search:
        term = f"%{query.search.strip()}%"
        base = base.where(
            or_(
                WaitlistSubscriber.email.ilike(term),
                WaitlistSubscriber.first_name.ilike(term),
                WaitlistSubscriber.last_name.ilike(term),
                WaitlistSubscriber.organization.ilike(term),
            )
        )
    if query.status is not None:
        base = base.where(WaitlistSubscriber.status == query.status.value)
    if query.source is not None:
        base = base.where(WaitlistSubscriber.source == query.source.value)
    if query.country:
        base = base.where(WaitlistSubscriber.country == query.country)
    if query.locale:
        base = base.where(WaitlistSubscriber.locale == query.locale)
    if query.start_date:
        base = base.where(WaitlistSubscriber.created_at >= query.start_date)
    if query.end_date:
        base = base.where(WaitlistSubscriber.created_at <= query.end_date)

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()

    column = SORT_COLUMNS.get(query.sort_by, WaitlistSubscriber.created_at)
    order = column.asc() if query.sort_direction == "ASC" else column.desc()
    stmt = base.order_by(order, WaitlistSubscriber.id).offset(query.offset).limit(query.limit)
    return (await db.execute(stmt)).scalars().all(), int(total)


async def mark_as_notified(db: AsyncSession, sub: WaitlistSubscriber) -> WaitlistSubscriber:
    sub.status = WaitlistStatus.NOTIFIED.value
    sub.notified_at = utcnow()
    await db.commit()
    await db.refresh(sub)
    return sub


async def mark_many_as_notified(db: AsyncSession, ids: list[uuid.UUID]) -> int:
    if not ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No subscriber IDs provided")
    stmt = (
        update(WaitlistSubscriber)
        .where(WaitlistSubscriber.id.in_(ids))
        .values(status=WaitlistStatus.NOTIFIED.value, notified_at=utcnow(), updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    res = await db.execute(stmt)
    await db.commit()
    logger.info("waitlist.bulk_notified", requested=len(ids), updated=res.rowcount)
    return int(res.rowcount or 0)


async def unsubscribe(db: AsyncSession, sub: WaitlistSubscriber) -> WaitlistSubscriber:
    sub.status = WaitlistStatus.UNSUBSCRIBED.value
    sub.unsubscribed_at = utcnow()
    await db.commit()
    await db.refresh(sub)
    logger.info("waitlist.unsubscribed", subscriber_id=str(sub.id))
    return sub


async def unsubscribe_by_email(db: AsyncSession, email: str) -> WaitlistSubscriber:
    sub = await find_by_email(db, email)
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subscriber with email {email} not found",
        )
    return await unsubscribe(db, sub)


async def remove(db: AsyncSession, sub: WaitlistSubscriber) -> None:
    await db.delete(sub)
    await db.commit()
    logger.info("waitlist.deleted", subscriber_id=str(sub.id))


async def get_stats(db: AsyncSession) -> WaitlistStats:
    by_status = dict(
        (await db.execute(select(WaitlistSubscriber.status, func.count()).group_by(WaitlistSubscriber.status))).all()
    )
    by_source = dict(
        (await db.execute(select(WaitlistSubscriber.source, func.count()).group_by(WaitlistSubscriber.source))).all()
    )
    by_country = dict(
        (
            await db.execute(
                select(WaitlistSubscriber.country, func.count())
                .where(WaitlistSubscriber.country.is_not(None))
                .group_by(WaitlistSubscriber.country)
            )
        ).all()
    )
    since = utcnow() - timedelta(days=RECENT_SIGNUP_DAYS)
    recent = (
        await db.execute(select(func.count()).select_from(WaitlistSubscriber).where(WaitlistSubscriber.created_at >= since))
    ).scalar_one()

    return WaitlistStats(
        total=sum(by_status.values()),
        active=by_status.get(WaitlistStatus.ACTIVE.value, 0),
        notified=by_status.get(WaitlistStatus.NOTIFIED.value, 0),
        unsubscribed=by_status.get(WaitlistStatus.UNSUBSCRIBED.value, 0),
        by_source=by_source,
        by_country=by_country,
        recent_signups=int(recent),
    )


def _iso(value) -> str:
    return value.isoformat() if value else ""


async def export_csv(db: AsyncSession) -> str:
    rows = (
        await db.execute(select(WaitlistSubscriber).order_by(WaitlistSubscriber.created_at.desc()))
    ).scalars().all()

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for sub in rows:
        writer.writerow(
            [
                sub.id,
                sub.email,
                sub.first_name or "",
                sub.last_name or "",
                sub.organization or "",
                sub.role or "",
                sub.phone or "",
                sub.country or "",
                sub.status,
                sub.source,
                sub.locale or "",
                _iso(sub.created_at),
                _iso(sub.notified_at),
            ]
        )
    return buf.getvalue()

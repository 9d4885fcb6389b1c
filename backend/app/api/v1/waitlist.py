# app/api/v1/waitlist.py
from __future__ import annotations

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import require_super_admin
from app.core.rate_limit import client_ip
from app.crud import waitlist as crud
from app.db.session import get_db
from app.models.user import User
from app.models.waitlist_subscriber import WaitlistSubscriber
from app.schemas.common import Paginated, PaginationMeta
from app.schemas.waitlist import (
    BulkNotify,
    BulkNotifyResult,
    SubscriberCreate,
    SubscriberQuery,
    SubscriberResponse,
    UnsubscribeRequest,
    WaitlistStats,
)

router = APIRouter(prefix="/waitlist", tags=["waitlist"])

CSV_FILENAME = "waitlist-subscribers.csv"


def _out(sub: WaitlistSubscriber) -> SubscriberResponse:
    return SubscriberResponse.model_validate(sub)


# ---------------------------------------------------------
# Public
# ---------------------------------------------------------
@router.post("/subscribe", response_model=SubscriberResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(
    payload: SubscriberCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    sub = await crud.subscribe(
        db,
        payload,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return _out(sub)


@router.post("/unsubscribe", response_model=SubscriberResponse)
async def unsubscribe_by_email(
    payload: UnsubscribeRequest,
    db: AsyncSession = Depends(get_db),
):
    return _out(await crud.unsubscribe_by_email(db, str(payload.email)))


# ---------------------------------------------------------
# Platform admin
# ---------------------------------------------------------
@router.get("/subscribers", response_model=Paginated[SubscriberResponse])
async def list_subscribers(
    query: Annotated[SubscriberQuery, Query()],
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    rows, total = await crud.list_subscribers(db, query)
    return Paginated[SubscriberResponse](
        data=[_out(s) for s in rows],
        meta=PaginationMeta.build(total, query.page, query.limit),
    )


@router.get("/stats", response_model=WaitlistStats)
async def waitlist_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return await crud.get_stats(db)


@router.get("/export/csv")
async def export_csv(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    body = await crud.export_csv(db)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
    )


@router.get("/subscribers/email/{email}", response_model=Optional[SubscriberResponse])
async def subscriber_by_email(
    email: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    sub = await crud.find_by_email(db, email)
    return _out(sub) if sub else None


@router.patch("/subscribers/notify/bulk", response_model=BulkNotifyResult)
async def notify_many(
    payload: BulkNotify,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return BulkNotifyResult(updated=await crud.mark_many_as_notified(db, payload.ids))


@router.get("/subscribers/{subscriber_id}", response_model=SubscriberResponse)
async def get_subscriber(
    subscriber_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return _out(await crud.get_subscriber(db, subscriber_id))


@router.patch("/subscribers/{subscriber_id}/notify", response_model=SubscriberResponse)
async def notify_subscriber(
    subscriber_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    sub = await crud.get_subscriber(db, subscriber_id)
    return _out(await crud.mark_as_notified(db, sub))


@router.patch("/subscribers/{subscriber_id}/unsubscribe", response_model=SubscriberResponse)
async def unsubscribe_subscriber(
    subscriber_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    sub = await crud.get_subscriber(db, subscriber_id)
    return _out(await crud.unsubscribe(db, sub))


@router.delete("/subscribers/{subscriber_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscriber(
    subscriber_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    sub = await crud.get_subscriber(db, subscriber_id)
    await crud.remove(db, sub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# backend/app/schemas/waitlist.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import EmailStr, Field

from app.models.waitlist_subscriber import WaitlistSource, WaitlistStatus
from app.schemas.common import BaseQuery, CamelModel


class SubscriberCreate(CamelModel):
    email: EmailStr
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    organization: Optional[str] = Field(default=None, max_length=100)
    role: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20, alias="phoneNumber")
    country: Optional[str] = Field(default=None, max_length=100)
    source: WaitlistSource = WaitlistSource.COMING_SOON_PAGE
    locale: Optional[str] = Field(default=None, max_length=50)
    referral_code: Optional[str] = Field(default=None, max_length=100)
    utm_source: Optional[str] = Field(default=None, max_length=100)
    utm_medium: Optional[str] = Field(default=None, max_length=100)
    utm_campaign: Optional[str] = Field(default=None, max_length=100)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UnsubscribeRequest(CamelModel):
    email: EmailStr


class BulkNotify(CamelModel):
    # empty list is rejected with a 400 by the handler, not a 422
    ids: list[uuid.UUID] = Field(default_factory=list)


class BulkNotifyResult(CamelModel):
    updated: int


class SubscriberQuery(BaseQuery):
    sort_by: Literal["createdAt", "updatedAt", "email", "status", "source", "country"] = "createdAt"
    status: Optional[WaitlistStatus] = None
    source: Optional[WaitlistSource] = None
    country: Optional[str] = None
    locale: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class SubscriberResponse(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = Field(default=None, alias="phoneNumber")
    country: Optional[str] = None
    locale: Optional[str] = None
    source: WaitlistSource
    status: WaitlistStatus
    referral_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    metadata: dict[str, Any] = Field(validation_alias="subscriber_metadata")
    notified_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WaitlistStats(CamelModel):
    total: int
    active: int
    notified: int
    unsubscribed: int
    by_source: dict[str, int]
    by_country: dict[str, int]
    recent_signups: int

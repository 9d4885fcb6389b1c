# app/crud/tenants.py
from __future__ import annotations

import re
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional, Sequence

import structlog
from fastapi import HTTPException, status
from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.core.plan_defaults import (
    calculate_renewal_date,
    effects_of_subscription_status,
    get_plan_defaults,
)
from app.core.roles import UserRole
from app.crud.tenant_graph import apply_compliance, apply_subscription_limits, build_minimal_tenant, build_tenant
from app.models.tenant import Tenant, TenantLifecycleStage, TenantStatus
from app.models.tenant_profile import Address, SchoolInfo, TenantContactInfo, TenantLocation
from app.models.tenant_subscription import SubscriptionPlan, SubscriptionStatus, TenantSubscription, TrialInfo
from app.models.tenant_usage import TenantBranding
from app.models.user import User
from app.schemas.tenant import (
    AddressSummary,
    SubscriptionUpdate,
    TenantCreate,
    TenantFeaturesPatch,
    TenantLimitsPatch,
    TenantMinimalCreate,
    TenantQuery,
    TenantStatistics,
    TenantSummary,
    TenantUpdate,
)

logger = structlog.get_logger(__name__)

RECENT_DAYS = 30
TRIAL_WARNING_DAYS = 7
RENEWAL_WARNING_DAYS = 30

SORT_COLUMNS = {
    "name": Tenant.name,
    "slug": Tenant.slug,
    "status": Tenant.status,
    "lifecycleStage": Tenant.lifecycle_stage,
    "createdAt": Tenant.created_at,
    "updatedAt": Tenant.updated_at,
}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")


@asynccontextmanager
async def _unit_of_work(db: AsyncSession, action: str, **log_context) -> AsyncIterator[None]:
    """
    The whole graph is written in one transaction. A unique-constraint loser
    (concurrent create with the same slug or email) surfaces as 409.
    """
    try:
        yield
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("tenant.conflict", action=action, error=str(exc.orig), **log_context)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Failed to {action}: tenant with this slug or email already exists",
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("tenant.db_error", action=action, error=str(exc), **log_context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {exc}",
        )


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


def _strip_scheme(value: str) -> str:
    return re.sub(r"^https?://", "", value.strip().lower()).rstrip("/")


# ---------------------------------------------------------
# Validation
# ---------------------------------------------------------
async def _slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    stmt = select(Tenant.id).where(Tenant.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Tenant.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    stmt = select(TenantContactInfo.id).where(func.lower(TenantContactInfo.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(TenantContactInfo.tenant_id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def validate_unique_fields(
    db: AsyncSession,
    slug: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    errors: list[str] = []
    if slug and await _slug_taken(db, slug, exclude_id):
        errors.append("Tenant with this slug already exists")
    if email and await _email_taken(db, str(email), exclude_id):
        errors.append("Tenant with this email already exists")
    if errors:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=", ".join(errors))


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
async def get_tenant(db: AsyncSession, tenant_id: uuid.UUID, include_deleted: bool = False) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None or (tenant.deleted_at is not None and not include_deleted):
        raise _not_found()
    return tenant


async def get_by_slug(db: AsyncSession, code: str) -> Tenant:
    stmt = select(Tenant).where(Tenant.slug == code.strip().lower(), Tenant.deleted_at.is_(None))
    tenant = (await db.execute(stmt)).scalar_one_or_none()
    if tenant is None:
        raise _not_found()
    return tenant


async def get_by_domain(db: AsyncSession, domain: str) -> Tenant:
    host = _strip_scheme(domain)
    candidates = [host, f"{host}/", f"http://{host}", f"http://{host}/", f"https://{host}", f"https://{host}/"]
    stmt = (
        select(Tenant)
        .join(TenantContactInfo, TenantContactInfo.tenant_id == Tenant.id)
        .where(func.lower(TenantContactInfo.website).in_(candidates), Tenant.deleted_at.is_(None))
        .limit(1)
    )
    tenant = (await db.execute(stmt)).scalar_one_or_none()
    if tenant is None:
        raise _not_found()
    return tenant


def _apply_filters(stmt: Select, query: TenantQuery) -> Select:
    if not query.include_deleted:
        stmt = stmt.where(Tenant.deleted_at.is_(None))
    if query.status is not None:
        stmt = stmt.where(Tenant.status == query.status.value)
    if query.is_active is not None:
        if query.is_active:
            stmt = stmt.where(Tenant.status == TenantStatus.ACTIVE.value)
        else:
            stmt = stmt.where(Tenant.status != TenantStatus.ACTIVE.value)
    if query.lifecycle_stage is not None:
        stmt = stmt.where(Tenant.lifecycle_stage == query.lifecycle_stage.value)
    if query.subscription_plan is not None:
        stmt = stmt.where(Tenant.subscription.has(TenantSubscription.plan == query.subscription_plan.value))
    if query.subscription_status is not None:
        stmt = stmt.where(Tenant.subscription.has(TenantSubscription.status == query.subscription_status.value))
    if query.school_type is not None:
        stmt = stmt.where(Tenant.school_info.has(SchoolInfo.type == query.school_type.value))
    if query.region:
        stmt = stmt.where(Tenant.location.has(TenantLocation.region.ilike(query.region)))
    if query.country:
        stmt = stmt.where(Tenant.location.has(TenantLocation.country.ilike(query.country)))
    if query.state:
        stmt = stmt.where(
            Tenant.location.has(TenantLocation.address.has(Address.state.ilike(query.state)))
        )
    if query.trial_ending_soon:
        cutoff = utcnow() + timedelta(days=query.trial_ending_soon)
        stmt = stmt.where(
            Tenant.subscription.has(
                TenantSubscription.trial.has(
                    and_(TrialInfo.is_trial_active.is_(True), TrialInfo.trial_end_date <= cutoff)
                )
            )
        )
    if query.created_after:
        stmt = stmt.where(Tenant.created_at >= query.created_after)
    if query.created_before:
        stmt = stmt.where(Tenant.created_at <= query.created_before)
    if query.search:
        term = f"%{query.search.strip()}%"
        stmt = stmt.where(
            or_(
                Tenant.name.ilike(term),
                Tenant.slug.ilike(term),
                Tenant.display_name.ilike(term),
                Tenant.contact_info.has(
                    or_(TenantContactInfo.email.ilike(term), TenantContactInfo.phone.ilike(term))
                ),
                Tenant.school_info.has(SchoolInfo.principal_name.ilike(term)),
            )
        )
    return stmt


async def list_tenants(db: AsyncSession, query: TenantQuery) -> tuple[Sequence[Tenant], int]:
    base = _apply_filters(select(Tenant), query)
    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()

    column = SORT_COLUMNS.get(query.sort_by, Tenant.created_at)
    order = column.asc() if query.sort_direction == "ASC" else column.desc()
    stmt = base.order_by(order, Tenant.id).offset(query.offset).limit(query.limit)

    rows = (await db.execute(stmt)).scalars().all()
    return rows, int(total)


def to_summary(tenant: Tenant) -> TenantSummary:
    ci = tenant.contact_info
    address = None
    if ci is not None and ci.address is not None:
        a = ci.address
        street = ", ".join(part for part in (a.street1, a.street2) if part) or None
        address = AddressSummary(
            street=street,
            city=a.city,
            state=a.state,
            country=a.country,
            postal_code=a.postal_code,
        )
    return TenantSummary(
        id=tenant.id,
        name=tenant.name,
        slug=tenant.slug,
        status=tenant.status,
        email=ci.email if ci else None,
        phone=ci.phone if ci else None,
        logo_url=tenant.branding.logo_url if tenant.branding else None,
        address=address,
        created_at=tenant.created_at,
    )


# ---------------------------------------------------------
# Create
# ---------------------------------------------------------
async def create_tenant(db: AsyncSession, payload: TenantCreate, actor_id: Optional[uuid.UUID] = None) -> Tenant:
    await validate_unique_fields(db, slug=payload.slug, email=str(payload.contact_info.email))

    async with _unit_of_work(db, "create tenant", slug=payload.slug):
        tenant = build_tenant(db, payload, actor_id=actor_id)
    await db.refresh(tenant)

    logger.info("tenant.created", tenant_id=str(tenant.id), slug=tenant.slug, plan=payload.subscription_plan.value)
    return tenant


async def create_minimal(db: AsyncSession, payload: TenantMinimalCreate, user_id: uuid.UUID) -> tuple[Tenant, User]:
    user = await db.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.tenant_id is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already belongs to a tenant")
    if not user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email must be verified to create a tenant",
        )
    if await _email_taken(db, str(payload.email)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tenant with this email already exists")

    slug = slugify(payload.name)
    if not slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant name must contain letters or digits")
    if await _slug_taken(db, slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tenant with this name already exists")

    async with _unit_of_work(db, "create tenant", slug=slug, user_id=str(user_id)):
        tenant = build_minimal_tenant(db, payload, slug, actor_id=user_id)
        await db.flush()
        user.tenant_id = tenant.id
        user.role = UserRole.ADMIN.value
        user.updated_by = user_id
    await db.refresh(tenant)
    await db.refresh(user)

    logger.info("tenant.created_minimal", tenant_id=str(tenant.id), slug=slug, user_id=str(user_id))
    return tenant, user


# ---------------------------------------------------------
# Update
# ---------------------------------------------------------
def _patch(target, values: dict) -> None:
    for key, value in values.items():
        if value is not None:
            setattr(target, key, value)


def _enum_values(data: dict) -> dict:
    return {k: getattr(v, "value", v) for k, v in data.items()}


def _patch_address(address: Address, patch) -> None:
    if patch is not None:
        _patch(address, patch.model_dump(exclude_unset=True))


async def update_tenant(
    db: AsyncSession,
    tenant: Tenant,
    payload: TenantUpdate,
    actor_id: Optional[uuid.UUID] = None,
) -> Tenant:
    new_slug = payload.slug if payload.slug and payload.slug != tenant.slug else None
    new_email = None
    if payload.contact_info and payload.contact_info.email:
        email = str(payload.contact_info.email).lower()
        if tenant.contact_info is None or email != tenant.contact_info.email.lower():
            new_email = email
    await validate_unique_fields(db, slug=new_slug, email=new_email, exclude_id=tenant.id)

    async with _unit_of_work(db, "update tenant", tenant_id=str(tenant.id)):
        basic = payload.model_dump(
            include={"name", "slug", "display_name", "description", "status", "lifecycle_stage", "tags"},
            exclude_unset=True,
        )
        _patch(tenant, _enum_values(basic))
        if payload.metadata is not None:
            tenant.tenant_metadata = dict(payload.metadata)

        if payload.contact_info is not None and tenant.contact_info is not None:
            ci = tenant.contact_info
            _patch(ci, payload.contact_info.model_dump(include={"phone", "website"}, exclude_unset=True))
            if new_email:
                ci.email = new_email
            if payload.contact_info.primary_contact is not None:
                _patch(ci.primary_contact, payload.contact_info.primary_contact.model_dump(exclude_unset=True))
            _patch_address(ci.address, payload.contact_info.address)

        if payload.location is not None and tenant.location is not None:
            _patch(tenant.location, payload.location.model_dump(exclude={"address"}, exclude_unset=True))
            _patch_address(tenant.location.address, payload.location.address)

        if payload.school_info is not None and tenant.school_info is not None:
            school = _enum_values(payload.school_info.model_dump(exclude_unset=True))
            if school.get("levels") is not None:
                school["levels"] = [getattr(lvl, "value", lvl) for lvl in school["levels"]]
            _patch(tenant.school_info, school)

        subscription = tenant.subscription
        if subscription is not None:
            if payload.subscription_plan is not None:
                subscription.plan = payload.subscription_plan.value
                apply_subscription_limits(subscription, get_plan_defaults(subscription.plan))
            if payload.billing_cycle is not None:
                subscription.billing_cycle = payload.billing_cycle.value
                subscription.renewal_date = calculate_renewal_date(subscription.start_date, subscription.billing_cycle)

        config = tenant.configuration
        if payload.features is not None and config is not None:
            _patch(config.features, payload.features.model_dump(exclude_unset=True))
        if payload.limits is not None and config is not None:
            _patch(config.limits, payload.limits.model_dump(exclude_unset=True))

        if payload.compliance_requirements is not None and tenant.compliance is not None:
            apply_compliance(tenant.compliance, payload.compliance_requirements)

        if payload.branding is not None:
            values = _enum_values(payload.branding.model_dump(exclude_unset=True))
            if tenant.branding is None:
                tenant.branding = TenantBranding(**{k: v for k, v in values.items() if v is not None})
                db.add(tenant.branding)
            else:
                _patch(tenant.branding, values)

        tenant.updated_by = actor_id
    await db.refresh(tenant)

    logger.info("tenant.updated", tenant_id=str(tenant.id))
    return tenant


async def toggle_status(db: AsyncSession, tenant: Tenant, actor_id: Optional[uuid.UUID] = None) -> Tenant:
    """ACTIVE <-> INACTIVE; any other status is left as is."""
    if tenant.status == TenantStatus.ACTIVE.value:
        new_status, stage = TenantStatus.INACTIVE.value, TenantLifecycleStage.AT_RISK.value
    elif tenant.status == TenantStatus.INACTIVE.value:
        new_status, stage = TenantStatus.ACTIVE.value, TenantLifecycleStage.ACTIVE.value
    else:
        return tenant

    async with _unit_of_work(db, "toggle tenant status", tenant_id=str(tenant.id)):
        tenant.status = new_status
        tenant.lifecycle_stage = stage
        tenant.updated_by = actor_id
    await db.refresh(tenant)

    logger.info("tenant.status_toggled", tenant_id=str(tenant.id), status=new_status)
    return tenant


async def update_subscription(
    db: AsyncSession,
    tenant: Tenant,
    payload: SubscriptionUpdate,
    actor_id: Optional[uuid.UUID] = None,
) -> Tenant:
    subscription = tenant.subscription
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant subscription not found")

    async with _unit_of_work(db, "update subscription", tenant_id=str(tenant.id)):
        subscription.plan = payload.plan.value
        subscription.status = payload.status.value
        subscription.billing_cycle = payload.billing_cycle.value
        if payload.start_date is not None:
            subscription.start_date = payload.start_date
        if payload.end_date is not None:
            subscription.end_date = payload.end_date
        subscription.renewal_date = calculate_renewal_date(subscription.start_date, subscription.billing_cycle)
        if subscription.billing is not None:
            subscription.billing.next_billing_date = subscription.renewal_date

        defaults = get_plan_defaults(subscription.plan)
        apply_subscription_limits(subscription, defaults)
        subscription.base_price = defaults.base_price
        subscription.additional_user_price = defaults.additional_user_price
        subscription.total_price = defaults.base_price

        trial = subscription.trial
        if trial is not None and trial.is_trial_active and payload.status != SubscriptionStatus.TRIAL:
            trial.is_trial_active = False
            trial.trial_days_remaining = 0
            if payload.status == SubscriptionStatus.ACTIVE:
                trial.converted_from_trial = True
                trial.conversion_date = utcnow()

        effects = effects_of_subscription_status(payload.status)
        if effects is not None:
            tenant.status, tenant.lifecycle_stage = effects
        tenant.updated_by = actor_id
    await db.refresh(tenant)

    logger.info(
        "tenant.subscription_updated",
        tenant_id=str(tenant.id),
        plan=payload.plan.value,
        status=payload.status.value,
    )
    return tenant


async def update_features(
    db: AsyncSession,
    tenant: Tenant,
    payload: TenantFeaturesPatch,
    actor_id: Optional[uuid.UUID] = None,
) -> Tenant:
    async with _unit_of_work(db, "update features", tenant_id=str(tenant.id)):
        features = tenant.configuration.features
        _patch(features, payload.model_dump(exclude_unset=True))
        if payload.api_access is not None and tenant.configuration.api_settings is not None:
            tenant.configuration.api_settings.enabled = payload.api_access
        tenant.updated_by = actor_id
    await db.refresh(tenant)
    return tenant


async def update_limits(
    db: AsyncSession,
    tenant: Tenant,
    payload: TenantLimitsPatch,
    actor_id: Optional[uuid.UUID] = None,
) -> Tenant:
    async with _unit_of_work(db, "update limits", tenant_id=str(tenant.id)):
        _patch(tenant.configuration.limits, payload.model_dump(exclude_unset=True))
        tenant.updated_by = actor_id
    await db.refresh(tenant)
    return tenant


# ---------------------------------------------------------
# Delete / restore
# ---------------------------------------------------------
async def remove(db: AsyncSession, tenant: Tenant, actor_id: Optional[uuid.UUID] = None) -> None:
    async with _unit_of_work(db, "delete tenant", tenant_id=str(tenant.id)):
        tenant.deleted_at = utcnow()
        tenant.updated_by = actor_id
    logger.info("tenant.deleted", tenant_id=str(tenant.id))


async def restore(db: AsyncSession, tenant: Tenant, actor_id: Optional[uuid.UUID] = None) -> Tenant:
    if tenant.deleted_at is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant is not deleted")
    async with _unit_of_work(db, "restore tenant", tenant_id=str(tenant.id)):
        tenant.deleted_at = None
        tenant.updated_by = actor_id
    await db.refresh(tenant)
    logger.info("tenant.restored", tenant_id=str(tenant.id))
    return tenant


# ---------------------------------------------------------
# Reporting
# ---------------------------------------------------------
async def _grouped(db: AsyncSession, column, *joins) -> dict[str, int]:
    stmt = select(column, func.count()).select_from(Tenant)
    for target, on in joins:
        stmt = stmt.join(target, on)
    stmt = stmt.where(Tenant.deleted_at.is_(None)).group_by(column)
    return {key: int(count) for key, count in (await db.execute(stmt)).all()}


def _expiring_clause(days: int):
    now = utcnow()
    cutoff = now + timedelta(days=days)
    trial_ending = TenantSubscription.trial.has(
        and_(
            TrialInfo.is_trial_active.is_(True),
            TrialInfo.trial_end_date >= now,
            TrialInfo.trial_end_date <= cutoff,
        )
    )
    renewing = and_(TenantSubscription.renewal_date >= now, TenantSubscription.renewal_date <= cutoff)
    return trial_ending, renewing


async def get_statistics(db: AsyncSession) -> TenantStatistics:
    live = Tenant.deleted_at.is_(None)

    total = (await db.execute(select(func.count()).select_from(Tenant).where(live))).scalar_one()

    by_status = {s.value: 0 for s in TenantStatus}
    by_status.update(await _grouped(db, Tenant.status))
    by_stage = {s.value: 0 for s in TenantLifecycleStage}
    by_stage.update(await _grouped(db, Tenant.lifecycle_stage))
    by_plan = {p.value: 0 for p in SubscriptionPlan}
    by_plan.update(
        await _grouped(db, TenantSubscription.plan, (TenantSubscription, TenantSubscription.tenant_id == Tenant.id))
    )

    recent_cutoff = utcnow() - timedelta(days=RECENT_DAYS)
    recently_created = (
        await db.execute(select(func.count()).select_from(Tenant).where(live, Tenant.created_at >= recent_cutoff))
    ).scalar_one()

    trial_ending, _ = _expiring_clause(TRIAL_WARNING_DAYS)
    _, renewing = _expiring_clause(RENEWAL_WARNING_DAYS)
    trial_expiring = (
        await db.execute(select(func.count()).select_from(Tenant).where(live, Tenant.subscription.has(trial_ending)))
    ).scalar_one()
    renewal_expiring = (
        await db.execute(select(func.count()).select_from(Tenant).where(live, Tenant.subscription.has(renewing)))
    ).scalar_one()

    return TenantStatistics(
        total=int(total),
        by_status=by_status,
        by_lifecycle_stage=by_stage,
        by_subscription_plan=by_plan,
        recently_created=int(recently_created),
        trial_expiring_soon=int(trial_expiring),
        subscription_expiring_soon=int(renewal_expiring),
    )


async def get_expiring_soon(db: AsyncSession, days: int = 30) -> Sequence[Tenant]:
    trial_ending, renewing = _expiring_clause(days)
    stmt = (
        select(Tenant)
        .where(Tenant.deleted_at.is_(None), Tenant.subscription.has(or_(trial_ending, renewing)))
        .order_by(Tenant.name)
    )
    return (await db.execute(stmt)).scalars().all()

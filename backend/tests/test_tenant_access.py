# tests/test_tenant_access.py
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.roles import UserRole, UserStatus
from app.models.tenant_access_request import TenantAccessRequest

BASE = "/api/v1/tenant-access"


async def request_access(client, headers, tenant_id, **extra):
    body = {"tenantId": str(tenant_id), "message": "Please let me in"}
    body.update(extra)
    return await client.post(f"{BASE}/request", json=body, headers=headers)


@pytest.mark.asyncio
async def test_create_request(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    applicant = await make_user(status=UserStatus.PENDING)

    r = await request_access(client, auth_headers(applicant), tenant.id, requestedRole="teacher")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "pending"
    assert body["requestedRole"] == "teacher"
    assert body["userId"] == str(applicant.id)
    assert body["user"]["email"] == applicant.email
    assert body["reviewer"] is None

    r = await client.get(f"{BASE}/my-requests/pending", headers=auth_headers(applicant))
    assert r.json()["hasPendingRequest"] is True
    assert r.json()["request"]["id"] == body["id"]

    r = await client.get("/api/v1/auth/me", headers=auth_headers(applicant))
    assert r.json()["hasPendingRequest"] is True
    assert r.json()["pendingRequestId"] == body["id"]


@pytest.mark.asyncio
async def test_create_request_preconditions(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    other = await make_tenant()

    unverified = await make_user(email_verified=False)
    r = await request_access(client, auth_headers(unverified), tenant.id)
    assert r.status_code == 400
    assert r.json()["detail"] == "Email must be verified before requesting access"

    member = await make_user(tenant_id=tenant.id)
    r = await request_access(client, auth_headers(member), tenant.id)
    assert r.status_code == 409
    assert r.json()["detail"] == "You already have access to this tenant"

    r = await request_access(client, auth_headers(member), other.id)
    assert r.status_code == 409
    assert r.json()["detail"] == "You already belong to a tenant"

    applicant = await make_user()
    assert (await request_access(client, auth_headers(applicant), tenant.id)).status_code == 201
    r = await request_access(client, auth_headers(applicant), tenant.id)
    assert r.status_code == 409
    assert r.json()["detail"] == "You already have a pending request for this tenant"

    r = await request_access(client, auth_headers(applicant), tenant.id, requestedRole="super_admin")
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_approve_assigns_user_to_tenant(client, db, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    applicant = await make_user(status=UserStatus.PENDING)

    created = (await request_access(client, auth_headers(applicant), tenant.id, requestedRole="teacher")).json()

    r = await client.patch(
        f"{BASE}/requests/{created['id']}/review",
        json={"status": "approved"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "approved"
    assert body["reviewedBy"] == str(admin.id)
    assert body["reviewedAt"] is not None
    assert body["reviewer"]["id"] == str(admin.id)

    await db.refresh(applicant)
    assert applicant.tenant_id == tenant.id
    assert applicant.role == UserRole.TEACHER.value
    assert applicant.status == UserStatus.ACTIVE.value

    r = await client.patch(
        f"{BASE}/requests/{created['id']}/review",
        json={"status": "rejected", "rejectionReason": "changed my mind"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "This request has already been reviewed"


@pytest.mark.asyncio
async def test_reject_requires_reason(client, db, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    applicant = await make_user()
    created = (await request_access(client, auth_headers(applicant), tenant.id)).json()
    url = f"{BASE}/requests/{created['id']}/review"

    r = await client.patch(url, json={"status": "rejected", "rejectionReason": "   "}, headers=auth_headers(admin))
    assert r.status_code == 400
    assert r.json()["detail"] == "Rejection reason is required when rejecting a request"

    r = await client.patch(
        url, json={"status": "rejected", "rejectionReason": "Unknown applicant"}, headers=auth_headers(admin)
    )
    assert r.status_code == 200
    assert r.json()["rejectionReason"] == "Unknown applicant"

    await db.refresh(applicant)
    assert applicant.tenant_id is None


@pytest.mark.asyncio
async def test_review_status_must_be_decision(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    applicant = await make_user()
    created = (await request_access(client, auth_headers(applicant), tenant.id)).json()

    r = await client.patch(
        f"{BASE}/requests/{created['id']}/review", json={"status": "cancelled"}, headers=auth_headers(admin)
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_review_is_limited_to_own_tenant_admins(client, make_tenant, make_user, auth_headers, super_admin):
    tenant = await make_tenant()
    other = await make_tenant()
    foreign_admin = await make_user(role=UserRole.ADMIN, tenant_id=other.id)
    teacher = await make_user(role=UserRole.TEACHER, tenant_id=tenant.id)
    applicant = await make_user()
    created = (await request_access(client, auth_headers(applicant), tenant.id)).json()
    url = f"{BASE}/requests/{created['id']}/review"

    r = await client.patch(url, json={"status": "approved"}, headers=auth_headers(foreign_admin))
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only review requests for your own tenant"

    r = await client.patch(url, json={"status": "approved"}, headers=auth_headers(teacher))
    assert r.status_code == 403
    assert r.json()["detail"] == "Only administrators can review access requests"

    r = await client.patch(url, json={"status": "approved"}, headers=auth_headers(super_admin))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_cancel_and_edit_only_by_author_while_pending(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    applicant = await make_user()
    stranger = await make_user()
    created = (await request_access(client, auth_headers(applicant), tenant.id)).json()

    r = await client.patch(f"{BASE}/requests/{created['id']}/cancel", headers=auth_headers(stranger))
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only cancel your own requests"

    r = await client.patch(
        f"{BASE}/requests/{created['id']}",
        json={"requestedRole": "librarian", "message": "Updated"},
        headers=auth_headers(applicant),
    )
    assert r.status_code == 200
    assert r.json()["requestedRole"] == "librarian"
    assert r.json()["message"] == "Updated"

    r = await client.patch(f"{BASE}/requests/{created['id']}/cancel", headers=auth_headers(applicant))
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = await client.patch(f"{BASE}/requests/{created['id']}/cancel", headers=auth_headers(applicant))
    assert r.status_code == 400
    assert r.json()["detail"] == "Only pending requests can be cancelled"

    r = await client.patch(f"{BASE}/requests/{created['id']}", json={"message": "x"}, headers=auth_headers(applicant))
    assert r.status_code == 400
    assert r.json()["detail"] == "Only pending requests can be edited"

    # a cancelled request no longer blocks a new one
    r = await request_access(client, auth_headers(applicant), tenant.id)
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_pending_is_unique_per_user_and_tenant(db, make_tenant, make_user):
    tenant_id = (await make_tenant()).id
    user_id = (await make_user()).id

    db.add(TenantAccessRequest(user_id=user_id, tenant_id=tenant_id, status="pending"))
    await db.commit()

    db.add(TenantAccessRequest(user_id=user_id, tenant_id=tenant_id, status="pending"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()

    db.add(TenantAccessRequest(user_id=user_id, tenant_id=tenant_id, status="rejected"))
    await db.commit()

    rows = (
        await db.execute(select(TenantAccessRequest).where(TenantAccessRequest.user_id == user_id))
    ).scalars().all()
    assert sorted(r.status for r in rows) == ["pending", "rejected"]


@pytest.mark.asyncio
async def test_listings_are_scoped(client, make_tenant, make_user, auth_headers, super_admin):
    tenant = await make_tenant()
    other = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    foreign_admin = await make_user(role=UserRole.ADMIN, tenant_id=other.id)

    a1 = await make_user()
    a2 = await make_user()
    a3 = await make_user()
    await request_access(client, auth_headers(a1), tenant.id)
    await request_access(client, auth_headers(a2), tenant.id)
    await request_access(client, auth_headers(a3), other.id)

    r = await client.get(f"{BASE}/requests", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["meta"]["total"] == 2
    assert {row["tenantId"] for row in r.json()["data"]} == {str(tenant.id)}

    r = await client.get(f"{BASE}/requests", headers=auth_headers(super_admin))
    assert r.json()["meta"]["total"] == 3

    r = await client.get(f"{BASE}/tenant/{tenant.id}/pending", headers=auth_headers(admin))
    assert len(r.json()) == 2

    r = await client.get(f"{BASE}/tenant/{tenant.id}/requests", headers=auth_headers(foreign_admin))
    assert r.status_code == 403

    r = await client.get(f"{BASE}/requests", headers=auth_headers(a1))
    assert r.status_code == 403

    r = await client.get(f"{BASE}/my-requests", headers=auth_headers(a1))
    assert len(r.json()) == 1


@pytest.mark.asyncio
async def test_get_request_visibility(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    applicant = await make_user()
    stranger = await make_user()
    created = (await request_access(client, auth_headers(applicant), tenant.id)).json()
    url = f"{BASE}/requests/{created['id']}"

    assert (await client.get(url, headers=auth_headers(applicant))).status_code == 200
    assert (await client.get(url, headers=auth_headers(admin))).status_code == 200
    assert (await client.get(url, headers=auth_headers(stranger))).status_code == 403

# tests/test_tenants.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from app.core.roles import UserRole

BASE = "/api/v1/tenants"


def address(city: str = "Springfield") -> dict:
    return {"street1": "1 Main St", "city": city, "state": "IL", "country": "USA", "postalCode": "62701"}


def full_payload(slug: str = "green-valley", email: str = "office@greenvalley.edu", **extra) -> dict:
    body = {
        "name": "Green Valley Academy",
        "slug": slug,
        "displayName": "Green Valley",
        "contactInfo": {
            "phone": "+15550101",
            "email": email,
            "website": "https://greenvalley.edu",
            "address": address(),
            "primaryContact": {
                "name": "Jane Roe",
                "title": "Principal",
                "email": "jane@greenvalley.edu",
                "phone": "+15550102",
            },
        },
        "location": {"region": "Midwest", "country": "USA", "address": address()},
        "schoolInfo": {
            "type": "private",
            "category": "high",
            "levels": ["high"],
            "studentCapacity": 800,
            "languagesOffered": ["English", "Spanish"],
        },
        "subscriptionPlan": "professional",
        "billingCycle": "annual",
        "complianceRequirements": ["GDPR", "ferpa", "State-Privacy-Act"],
    }
    body.update(extra)
    return body


async def create_full(client, headers, **kwargs) -> dict:
    r = await client.post(BASE, json=full_payload(**kwargs), headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_tenant_applies_plan_defaults(client, super_admin, auth_headers):
    body = await create_full(client, auth_headers(super_admin))

    assert body["status"] == "inactive"
    assert body["lifecycleStage"] == "onboarding"
    assert body["contactInfo"]["email"] == "office@greenvalley.edu"
    assert body["schoolInfo"]["levels"] == ["high"]

    sub = body["subscription"]
    assert sub["plan"] == "professional"
    assert sub["status"] == "trial"
    assert Decimal(sub["basePrice"]) == Decimal("99.99")
    assert sub["limits"]["maxUsers"] == 50
    assert sub["limits"]["features"]["apiAccess"] is True
    assert sub["limits"]["features"]["ssoIntegration"] is False
    assert sub["trial"]["isTrialActive"] is True
    assert sub["trial"]["trialDaysRemaining"] == 30
    assert sub["billing"]["status"] == "current"

    start = datetime.fromisoformat(sub["startDate"])
    renewal = datetime.fromisoformat(sub["renewalDate"])
    assert (renewal.year, renewal.month) == (start.year + 1, start.month)

    config = body["configuration"]
    assert config["features"]["hrManagement"] is False
    assert config["features"]["examManagement"] is True
    assert config["limits"]["maxStaff"] == 100
    assert config["apiSettings"]["enabled"] is True
    assert config["customizations"]["customFieldsLimit"] == 250
    assert config["systemSettings"]["backupFrequency"] == "weekly"
    assert config["systemSettings"]["passwordPolicy"]["minLength"] == 8

    compliance = body["compliance"]
    assert compliance["gdprCompliant"] is True
    assert compliance["ferpaCompliant"] is True
    assert compliance["coppaCompliant"] is False
    assert compliance["localRegulations"] == ["state-privacy-act"]


@pytest.mark.asyncio
async def test_create_tenant_feature_and_limit_overrides(client, super_admin, auth_headers):
    body = await create_full(
        client,
        auth_headers(super_admin),
        subscriptionPlan="starter",
        features={"apiAccess": True, "libraryManagement": True},
        limits={"maxUsers": 15},
    )
    config = body["configuration"]
    assert config["features"]["apiAccess"] is True
    assert config["features"]["libraryManagement"] is True
    assert config["features"]["hrManagement"] is False
    assert config["limits"]["maxUsers"] == 15
    assert config["limits"]["maxStudents"] == 100
    assert config["apiSettings"]["enabled"] is True


@pytest.mark.asyncio
async def test_create_tenant_conflicts(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    await create_full(client, headers)

    r = await client.post(BASE, json=full_payload(), headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "Tenant with this slug already exists, Tenant with this email already exists"

    r = await client.post(BASE, json=full_payload(slug="another-slug", email="OFFICE@greenvalley.edu"), headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "Tenant with this email already exists"


@pytest.mark.asyncio
async def test_create_tenant_requires_super_admin(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)

    r = await client.post(BASE, json=full_payload(), headers=auth_headers(admin))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_create_tenant_validates_slug(client, super_admin, auth_headers):
    r = await client.post(BASE, json=full_payload(slug="Not A Slug"), headers=auth_headers(super_admin))
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_minimal_create_promotes_user_to_admin(client, make_user, auth_headers):
    user = await make_user(email="founder@example.com")

    r = await client.post(
        f"{BASE}/minimal",
        json={"name": "Sunrise School", "code": "sun-01", "email": "hello@sunrise.example.com", "phone": "+15550111"},
        headers=auth_headers(user),
    )
    assert r.status_code == 201, r.text
    body = r.json()
    tenant = body["tenant"]

    assert tenant["slug"] == "sunrise-school"
    assert tenant["status"] == "active"
    assert tenant["lifecycleStage"] == "onboarding"
    assert tenant["metadata"]["createdMinimal"] is True
    assert tenant["metadata"]["code"] == "SUN-01"
    assert tenant["contactInfo"]["address"]["city"] == "Not provided"
    assert tenant["contactInfo"]["primaryContact"]["title"] == "Administrator"
    assert tenant["subscription"]["plan"] == "starter"
    assert tenant["subscription"]["trial"]["trialDaysRemaining"] == 30
    assert tenant["subscription"]["billing"]["status"] == "pending"
    assert tenant["configuration"]["systemSettings"]["backupFrequency"] == "never"
    assert tenant["compliance"]["gdprCompliant"] is True
    assert tenant["schoolInfo"]["languagesOffered"] == ["English"]

    assert body["user"]["role"] == "admin"
    assert body["user"]["tenantId"] == tenant["id"]

    r = await client.post(
        f"{BASE}/minimal",
        json={"name": "Second School", "code": "SEC", "email": "second@example.com", "phone": "+15550112"},
        headers=auth_headers(user),
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "User already belongs to a tenant"


@pytest.mark.asyncio
async def test_minimal_create_preconditions(client, make_user, auth_headers):
    unverified = await make_user(email_verified=False)
    r = await client.post(
        f"{BASE}/minimal",
        json={"name": "Unverified School", "code": "UNV", "email": "unv@example.com", "phone": "+1"},
        headers=auth_headers(unverified),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Email must be verified to create a tenant"

    first = await make_user()
    second = await make_user()
    r = await client.post(
        f"{BASE}/minimal",
        json={"name": "Twin Oaks", "code": "TWIN", "email": "twin@example.com", "phone": "+1"},
        headers=auth_headers(first),
    )
    assert r.status_code == 201

    r = await client.post(
        f"{BASE}/minimal",
        json={"name": "Twin  Oaks", "code": "TWIN2", "email": "other-twin@example.com", "phone": "+1"},
        headers=auth_headers(second),
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Tenant with this name already exists"


@pytest.mark.asyncio
async def test_get_tenant_is_scoped(client, make_tenant, make_user, auth_headers):
    home = await make_tenant()
    other = await make_tenant()
    member = await make_user(tenant_id=home.id)

    r = await client.get(f"{BASE}/{home.id}", headers=auth_headers(member))
    assert r.status_code == 200
    assert r.json()["slug"] == home.slug

    r = await client.get(f"{BASE}/by-code/{home.slug.upper()}", headers=auth_headers(member))
    assert r.status_code == 200

    r = await client.get(f"{BASE}/{other.id}", headers=auth_headers(member))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_get_by_domain(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    created = await create_full(client, headers)

    r = await client.get(f"{BASE}/by-domain/greenvalley.edu", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == created["id"]

    r = await client.get(f"{BASE}/by-domain/unknown.edu", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_toggle_status(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)
    headers = auth_headers(admin)

    r = await client.patch(f"{BASE}/{tenant.id}/toggle-status", headers=headers)
    assert r.status_code == 200
    assert (r.json()["status"], r.json()["lifecycleStage"]) == ("inactive", "at_risk")

    r = await client.patch(f"{BASE}/{tenant.id}/toggle-status", headers=headers)
    assert (r.json()["status"], r.json()["lifecycleStage"]) == ("active", "active")


@pytest.mark.asyncio
async def test_tenant_changes_require_own_admin(client, make_tenant, make_user, auth_headers):
    home = await make_tenant()
    other = await make_tenant()
    staff = await make_user(tenant_id=home.id)
    foreign_admin = await make_user(role=UserRole.ADMIN, tenant_id=other.id)

    r = await client.patch(f"{BASE}/{home.id}/toggle-status", headers=auth_headers(staff))
    assert r.status_code == 403
    assert r.json()["detail"] == "Only tenant administrators can modify this tenant"

    r = await client.patch(f"{BASE}/{home.id}/limits", json={"maxUsers": 5}, headers=auth_headers(foreign_admin))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_update_subscription_moves_tenant_state(client, make_tenant, super_admin, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(super_admin)

    r = await client.patch(
        f"{BASE}/{tenant.id}/subscription",
        json={"plan": "enterprise", "status": "active", "billingCycle": "quarterly"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    sub = body["subscription"]
    assert (body["status"], body["lifecycleStage"]) == ("active", "active")
    assert sub["plan"] == "enterprise"
    assert sub["limits"]["maxUsers"] == 200
    assert sub["limits"]["features"]["dedicatedAccountManager"] is True
    assert Decimal(sub["basePrice"]) == Decimal("299.99")
    assert sub["trial"]["isTrialActive"] is False
    assert sub["trial"]["convertedFromTrial"] is True
    assert sub["billing"]["nextBillingDate"] == sub["renewalDate"]

    start = datetime.fromisoformat(sub["startDate"])
    renewal = datetime.fromisoformat(sub["renewalDate"])
    assert (renewal.year * 12 + renewal.month) - (start.year * 12 + start.month) == 3

    r = await client.patch(
        f"{BASE}/{tenant.id}/subscription",
        json={"plan": "enterprise", "status": "cancelled", "billingCycle": "quarterly"},
        headers=headers,
    )
    assert (r.json()["status"], r.json()["lifecycleStage"]) == ("inactive", "churned")


@pytest.mark.asyncio
async def test_update_subscription_is_platform_only(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(role=UserRole.ADMIN, tenant_id=tenant.id)

    r = await client.patch(
        f"{BASE}/{tenant.id}/subscription",
        json={"plan": "enterprise", "status": "active", "billingCycle": "monthly"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_update_features_and_limits(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(role=UserRole.ADMIN, tenant_id=tenant.id))

    r = await client.patch(f"{BASE}/{tenant.id}/features", json={"apiAccess": True, "hrManagement": True}, headers=headers)
    assert r.status_code == 200
    config = r.json()["configuration"]
    assert config["features"]["apiAccess"] is True
    assert config["features"]["hrManagement"] is True
    assert config["features"]["academicManagement"] is True
    assert config["apiSettings"]["enabled"] is True

    r = await client.patch(f"{BASE}/{tenant.id}/limits", json={"maxUsers": 25}, headers=headers)
    assert r.status_code == 200
    assert r.json()["configuration"]["limits"]["maxUsers"] == 25
    assert r.json()["configuration"]["limits"]["maxStudents"] == 100

    r = await client.patch(f"{BASE}/{tenant.id}/limits", json={"maxUsers": 0}, headers=headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_update_tenant_profile(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    taken = await make_tenant()
    headers = auth_headers(await make_user(role=UserRole.ADMIN, tenant_id=tenant.id))

    r = await client.patch(
        f"{BASE}/{tenant.id}",
        json={
            "displayName": "Renamed School",
            "contactInfo": {"website": "https://renamed.example.com", "address": {"city": "Shelbyville"}},
            "complianceRequirements": ["coppa"],
            "branding": {"primaryColor": "#123456", "theme": "dark"},
        },
        headers=headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["displayName"] == "Renamed School"
    assert body["contactInfo"]["website"] == "https://renamed.example.com"
    assert body["contactInfo"]["address"]["city"] == "Shelbyville"
    assert body["compliance"]["coppaCompliant"] is True
    assert body["compliance"]["gdprCompliant"] is False
    assert body["branding"]["primaryColor"] == "#123456"

    r = await client.patch(
        f"{BASE}/{tenant.id}",
        json={"contactInfo": {"email": f"{taken.slug}@school.example.com"}},
        headers=headers,
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Tenant with this email already exists"


@pytest.mark.asyncio
async def test_soft_delete_and_restore(client, make_tenant, super_admin, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(super_admin)

    r = await client.delete(f"{BASE}/{tenant.id}", headers=headers)
    assert r.status_code == 204

    r = await client.get(f"{BASE}/{tenant.id}", headers=headers)
    assert r.status_code == 404

    r = await client.get(BASE, params={"includeDeleted": "true"}, headers=headers)
    assert r.json()["meta"]["total"] == 1

    r = await client.post(f"{BASE}/{tenant.id}/restore", headers=headers)
    assert r.status_code == 200
    assert r.json()["deletedAt"] is None

    r = await client.post(f"{BASE}/{tenant.id}/restore", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Tenant is not deleted"


@pytest.mark.asyncio
async def test_list_filters_and_summary(client, make_tenant, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    await make_tenant("Alpha School")
    await create_full(client, headers)

    r = await client.get(BASE, params={"subscriptionPlan": "professional"}, headers=headers)
    assert r.status_code == 200
    assert [t["slug"] for t in r.json()["data"]] == ["green-valley"]

    r = await client.get(BASE, params={"search": "alpha"}, headers=headers)
    assert [t["slug"] for t in r.json()["data"]] == ["alpha-school"]

    r = await client.get(BASE, params={"schoolType": "private", "sortBy": "name", "sortDirection": "ASC"}, headers=headers)
    assert [t["name"] for t in r.json()["data"]] == ["Alpha School", "Green Valley Academy"]

    r = await client.get(f"{BASE}/summary", params={"country": "usa"}, headers=headers)
    assert r.status_code == 200
    summary = r.json()["data"]
    assert len(summary) == 1
    assert summary[0]["email"] == "office@greenvalley.edu"
    assert summary[0]["address"]["street"] == "1 Main St"


@pytest.mark.asyncio
async def test_statistics_and_expiring(client, make_tenant, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    live = await make_tenant()
    gone = await make_tenant()
    await client.delete(f"{BASE}/{gone.id}", headers=headers)

    r = await client.get(f"{BASE}/statistics", headers=headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["total"] == 1
    assert set(stats["byStatus"]) == {"active", "inactive", "suspended", "terminated", "migrating", "maintenance"}
    assert stats["byStatus"]["active"] == 1
    assert stats["byLifecycleStage"]["onboarding"] == 1
    assert stats["bySubscriptionPlan"] == {"starter": 1, "professional": 0, "enterprise": 0, "custom": 0}
    assert stats["recentlyCreated"] == 1
    assert stats["trialExpiringSoon"] == 0
    assert stats["subscriptionExpiringSoon"] == 1

    r = await client.get(f"{BASE}/expiring-soon", params={"days": 31}, headers=headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [str(live.id)]

    r = await client.get(f"{BASE}/expiring-soon", params={"days": 0}, headers=headers)
    assert r.status_code == 422

# tests/test_school_years.py
from __future__ import annotations

import pytest
from sqlalchemy import select

from app.core.roles import UserRole
from app.models.school_year import SchoolYear

BASE = "/api/v1/school-years"


def year_payload(tenant_id, code: str, start: str, end: str, **extra) -> dict:
    body = {
        "tenantId": str(tenant_id),
        "name": f"Year {code}",
        "code": code,
        "startDate": start,
        "endDate": end,
    }
    body.update(extra)
    return body


async def create_year(client, headers, tenant_id, code, start, end, **extra) -> dict:
    r = await client.post(BASE, json=year_payload(tenant_id, code, start, end, **extra), headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_school_year_defaults(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    user = await make_user(tenant_id=tenant.id, role=UserRole.ADMIN)

    body = await create_year(client, auth_headers(user), tenant.id, "2030-31", "2030-09-01", "2031-06-30")

    assert body["status"] == "draft"
    assert body["isDefault"] is False
    assert body["termCount"] == 2
    assert body["enrollmentStatus"] == "pending"
    assert body["academicCalendarStatus"] == "draft"
    assert body["duration"] == 302
    assert body["createdBy"] == str(user.id)


@pytest.mark.asyncio
async def test_rejects_inverted_and_out_of_range_dates(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))

    r = await client.post(BASE, json=year_payload(tenant.id, "A", "2031-06-30", "2030-09-01"), headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Start date must be before end date"

    r = await client.post(BASE, json=year_payload(tenant.id, "B", "2030-09-01", "2030-09-20"), headers=headers)
    assert r.status_code == 400
    assert "between 30 and 500 days" in r.json()["detail"]

    r = await client.post(BASE, json=year_payload(tenant.id, "C", "2030-01-01", "2031-12-31"), headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_duration_bounds_are_inclusive(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))

    # 29 days
    r = await client.post(BASE, json=year_payload(tenant.id, "D29", "2030-01-01", "2030-01-30"), headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"].endswith("(got 29)")

    # 501 days
    r = await client.post(BASE, json=year_payload(tenant.id, "D501", "2030-02-01", "2031-06-17"), headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"].endswith("(got 501)")

    short = await create_year(client, headers, tenant.id, "D30", "2030-01-01", "2030-01-31")
    assert short["duration"] == 30

    long = await create_year(client, headers, tenant.id, "D500", "2030-02-01", "2031-06-16")
    assert long["duration"] == 500


@pytest.mark.asyncio
async def test_overlap_is_closed_range(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    await create_year(client, headers, tenant.id, "Y1", "2030-09-01", "2031-06-30")

    # starting on the previous year's last day still overlaps
    r = await client.post(BASE, json=year_payload(tenant.id, "Y2", "2031-06-30", "2032-05-31"), headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "Date range overlaps with existing school year: Year Y1"

    await create_year(client, headers, tenant.id, "Y2", "2031-07-01", "2032-05-31")


@pytest.mark.asyncio
async def test_duplicate_code_conflicts(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    await create_year(client, headers, tenant.id, "DUP", "2030-09-01", "2031-06-30")

    r = await client.post(BASE, json=year_payload(tenant.id, "DUP", "2032-09-01", "2033-06-30"), headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "School year with code 'DUP' already exists for this tenant"


@pytest.mark.asyncio
async def test_other_tenants_do_not_overlap(client, make_tenant, make_user, auth_headers, super_admin):
    t1 = await make_tenant()
    t2 = await make_tenant()
    headers = auth_headers(super_admin)

    await create_year(client, headers, t1.id, "SAME", "2030-09-01", "2031-06-30")
    await create_year(client, headers, t2.id, "SAME", "2030-09-01", "2031-06-30")


@pytest.mark.asyncio
async def test_single_default_per_tenant(client, db, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))

    first = await create_year(client, headers, tenant.id, "A", "2030-09-01", "2031-06-30", isDefault=True)
    second = await create_year(client, headers, tenant.id, "B", "2031-09-01", "2032-06-30", isDefault=True)

    r = await client.get(f"{BASE}/{first['id']}", headers=headers)
    assert r.json()["isDefault"] is False

    r = await client.get(f"{BASE}/default", params={"tenantId": str(tenant.id)}, headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == second["id"]

    r = await client.post(f"{BASE}/{first['id']}/set-default", headers=headers)
    assert r.status_code == 200
    assert r.json()["isDefault"] is True

    defaults = (
        await db.execute(
            select(SchoolYear).where(SchoolYear.tenant_id == tenant.id, SchoolYear.is_default.is_(True))
        )
    ).scalars().all()
    assert [str(sy.id) for sy in defaults] == [first["id"]]


@pytest.mark.asyncio
async def test_toggle_status_cycles(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    sy = await create_year(client, headers, tenant.id, "T", "2030-09-01", "2031-06-30")

    seen = []
    for _ in range(3):
        r = await client.patch(f"{BASE}/{sy['id']}/toggle-status", headers=headers)
        assert r.status_code == 200
        seen.append(r.json()["status"])
    assert seen == ["active", "archived", "draft"]


@pytest.mark.asyncio
async def test_delete_rules_and_restore(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))

    default = await create_year(client, headers, tenant.id, "D", "2030-09-01", "2031-06-30", isDefault=True)
    active = await create_year(client, headers, tenant.id, "ACT", "2031-09-01", "2032-06-30", status="active")
    draft = await create_year(client, headers, tenant.id, "DR", "2032-09-01", "2033-06-30")

    r = await client.delete(f"{BASE}/{default['id']}", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot delete the default school year: Year D"

    r = await client.delete(f"{BASE}/{active['id']}", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot delete an active school year: Year ACT"

    r = await client.delete(f"{BASE}/{draft['id']}", headers=headers)
    assert r.status_code == 204

    r = await client.get(f"{BASE}/{draft['id']}", headers=headers)
    assert r.status_code == 404

    r = await client.get(f"{BASE}/{draft['id']}", params={"includeDeleted": "true"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["deletedAt"] is not None

    # tombstoned rows no longer block their date range
    await create_year(client, headers, tenant.id, "DR2", "2032-09-01", "2033-06-30")

    r = await client.post(f"{BASE}/{draft['id']}/restore", headers=headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_restore_live_year_is_rejected(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    sy = await create_year(client, headers, tenant.id, "LIVE", "2030-09-01", "2031-06-30")

    r = await client.post(f"{BASE}/{sy['id']}/restore", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "School year is not deleted"


@pytest.mark.asyncio
async def test_hard_delete_requires_empty_year(client, db, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    busy = await create_year(client, headers, tenant.id, "BUSY", "2030-09-01", "2031-06-30", studentCount=12)
    empty = await create_year(client, headers, tenant.id, "EMPTY", "2031-09-01", "2032-06-30")

    r = await client.delete(f"{BASE}/{busy['id']}/hard", headers=headers)
    assert r.status_code == 400

    r = await client.delete(f"{BASE}/{empty['id']}/hard", headers=headers)
    assert r.status_code == 204

    remaining = (await db.execute(select(SchoolYear.code).where(SchoolYear.tenant_id == tenant.id))).scalars().all()
    assert remaining == ["BUSY"]


@pytest.mark.asyncio
async def test_update_checks_overlap_against_others(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    await create_year(client, headers, tenant.id, "A", "2030-09-01", "2031-06-30")
    b = await create_year(client, headers, tenant.id, "B", "2031-09-01", "2032-06-30")

    # shifting its own range is fine
    r = await client.patch(f"{BASE}/{b['id']}", json={"startDate": "2031-08-15"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["startDate"] == "2031-08-15"

    r = await client.patch(f"{BASE}/{b['id']}", json={"startDate": "2031-06-01"}, headers=headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_cross_tenant_access_is_forbidden(client, make_tenant, make_user, auth_headers, super_admin):
    home = await make_tenant()
    other = await make_tenant()
    outsider = await make_user(tenant_id=home.id)

    sy = await create_year(client, auth_headers(super_admin), other.id, "X", "2030-09-01", "2031-06-30")

    r = await client.get(f"{BASE}/{sy['id']}", headers=auth_headers(outsider))
    assert r.status_code == 403

    r = await client.post(
        BASE,
        json=year_payload(other.id, "Y", "2032-09-01", "2033-06-30"),
        headers=auth_headers(outsider),
    )
    assert r.status_code == 403

    r = await client.get(BASE, params={"tenantId": str(other.id)}, headers=auth_headers(outsider))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_list_is_scoped_to_own_tenant(client, make_tenant, make_user, auth_headers, super_admin):
    home = await make_tenant()
    other = await make_tenant()
    member = await make_user(tenant_id=home.id)
    admin_headers = auth_headers(super_admin)

    await create_year(client, admin_headers, home.id, "H1", "2030-09-01", "2031-06-30")
    await create_year(client, admin_headers, home.id, "H2", "2031-09-01", "2032-06-30")
    await create_year(client, admin_headers, other.id, "O1", "2030-09-01", "2031-06-30")

    r = await client.get(BASE, params={"sortBy": "code", "sortDirection": "ASC"}, headers=auth_headers(member))
    assert r.status_code == 200
    body = r.json()
    assert [row["code"] for row in body["data"]] == ["H1", "H2"]
    assert body["meta"]["total"] == 2
    assert body["meta"]["hasNext"] is False

    r = await client.get(BASE, params={"limit": 1}, headers=admin_headers)
    assert r.json()["meta"]["total"] == 3
    assert r.json()["meta"]["totalPages"] == 3


@pytest.mark.asyncio
async def test_bulk_delete_is_all_or_nothing(client, db, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    keep = await create_year(client, headers, tenant.id, "K", "2030-09-01", "2031-06-30", isDefault=True)
    drop = await create_year(client, headers, tenant.id, "D", "2031-09-01", "2032-06-30")

    r = await client.post(f"{BASE}/bulk/delete", json={"ids": [keep["id"], drop["id"]]}, headers=headers)
    assert r.status_code == 400

    live = (
        await db.execute(select(SchoolYear).where(SchoolYear.tenant_id == tenant.id, SchoolYear.deleted_at.is_(None)))
    ).scalars().all()
    assert len(live) == 2

    r = await client.post(f"{BASE}/bulk/update-status", json={"ids": [drop["id"]], "status": "archived"}, headers=headers)
    assert r.status_code == 200
    assert r.json()[0]["status"] == "archived"

    r = await client.post(f"{BASE}/bulk/delete", json={"ids": [drop["id"]]}, headers=headers)
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_statistics(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    headers = auth_headers(await make_user(tenant_id=tenant.id))
    await create_year(
        client, headers, tenant.id, "S1", "2030-09-01", "2031-06-30",
        isDefault=True, status="active", studentCount=100, staffCount=10,
    )
    await create_year(client, headers, tenant.id, "S2", "2031-09-01", "2032-06-30", studentCount=50)

    r = await client.get(f"{BASE}/statistics", headers=headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["draft"] == 1
    assert stats["totalStudents"] == 150
    assert stats["totalStaff"] == 10
    assert stats["currentDefault"]["code"] == "S1"

# tests/test_waitlist.py
from __future__ import annotations

import csv
import io
import uuid

import pytest

BASE = "/api/v1/waitlist"


async def subscribe(client, email: str, **extra):
    body = {"email": email}
    body.update(extra)
    return await client.post(f"{BASE}/subscribe", json=body, headers={"User-Agent": "pytest-agent"})


@pytest.mark.asyncio
async def test_subscribe(client, db):
    r = await subscribe(
        client,
        "Early.Bird@Example.com",
        firstName="Early",
        organization="Bird Academy",
        phoneNumber="+15550199",
        country="Kenya",
        source="landing_page",
        metadata={"campaign": "spring"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["email"] == "early.bird@example.com"
    assert body["status"] == "active"
    assert body["source"] == "landing_page"
    assert body["phoneNumber"] == "+15550199"
    assert body["metadata"] == {"campaign": "spring"}
    assert "ipAddress" not in body


@pytest.mark.asyncio
async def test_subscribe_defaults_source(client):
    r = await subscribe(client, "plain@example.com")
    assert r.status_code == 201
    assert r.json()["source"] == "coming_soon_page"


@pytest.mark.asyncio
async def test_duplicate_and_resubscribe(client):
    assert (await subscribe(client, "twice@example.com")).status_code == 201

    r = await subscribe(client, "TWICE@example.com")
    assert r.status_code == 409
    assert r.json()["detail"] == "This email is already subscribed to the waitlist"

    r = await client.post(f"{BASE}/unsubscribe", json={"email": "twice@example.com"})
    assert r.status_code == 200
    assert r.json()["status"] == "unsubscribed"
    assert r.json()["unsubscribedAt"] is not None

    r = await subscribe(client, "twice@example.com")
    assert r.status_code == 201
    assert r.json()["status"] == "active"
    assert r.json()["unsubscribedAt"] is None


@pytest.mark.asyncio
async def test_unsubscribe_unknown_email(client):
    r = await client.post(f"{BASE}/unsubscribe", json={"email": "ghost@example.com"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_routes_require_super_admin(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant()
    admin = await make_user(tenant_id=tenant.id)

    r = await client.get(f"{BASE}/subscribers", headers=auth_headers(admin))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_notify_and_bulk_notify(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    ids = [(await subscribe(client, f"n{i}@example.com")).json()["id"] for i in range(3)]

    r = await client.patch(f"{BASE}/subscribers/{ids[0]}/notify", headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "notified"
    assert r.json()["notifiedAt"] is not None

    r = await client.patch(f"{BASE}/subscribers/notify/bulk", json={"ids": ids[1:]}, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"updated": 2}

    r = await client.patch(f"{BASE}/subscribers/notify/bulk", json={"ids": []}, headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "No subscriber IDs provided"

    r = await client.get(f"{BASE}/subscribers", params={"status": "notified"}, headers=headers)
    assert r.json()["meta"]["total"] == 3


@pytest.mark.asyncio
async def test_lookup_and_delete(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    sub = (await subscribe(client, "lookup@example.com")).json()

    r = await client.get(f"{BASE}/subscribers/email/LOOKUP@example.com", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == sub["id"]

    r = await client.get(f"{BASE}/subscribers/email/missing@example.com", headers=headers)
    assert r.status_code == 200
    assert r.json() is None

    missing = uuid.uuid4()
    r = await client.get(f"{BASE}/subscribers/{missing}", headers=headers)
    assert r.status_code == 404
    assert r.json()["detail"] == f"Subscriber with ID {missing} not found"

    r = await client.delete(f"{BASE}/subscribers/{sub['id']}", headers=headers)
    assert r.status_code == 204

    r = await client.get(f"{BASE}/subscribers/{sub['id']}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_filters(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    await subscribe(client, "a@example.com", country="Kenya", source="referral")
    await subscribe(client, "b@example.com", country="Ghana")
    await subscribe(client, "c@example.com", organization="Kenya Schools Trust")

    r = await client.get(f"{BASE}/subscribers", params={"country": "Kenya"}, headers=headers)
    assert [s["email"] for s in r.json()["data"]] == ["a@example.com"]

    r = await client.get(f"{BASE}/subscribers", params={"source": "referral"}, headers=headers)
    assert r.json()["meta"]["total"] == 1

    r = await client.get(f"{BASE}/subscribers", params={"search": "kenya"}, headers=headers)
    assert [s["email"] for s in r.json()["data"]] == ["c@example.com"]

    r = await client.get(
        f"{BASE}/subscribers", params={"sortBy": "email", "sortDirection": "ASC", "limit": 2}, headers=headers
    )
    body = r.json()
    assert [s["email"] for s in body["data"]] == ["a@example.com", "b@example.com"]
    assert body["meta"]["hasNext"] is True


@pytest.mark.asyncio
async def test_stats(client, super_admin, auth_headers):
    headers = auth_headers(super_admin)
    await subscribe(client, "s1@example.com", country="Kenya")
    await subscribe(client, "s2@example.com", country="Kenya", source="referral")
    await subscribe(client, "s3@example.com")
    await client.post(f"{BASE}/unsubscribe", json={"email": "s3@example.com"})

    r = await client.get(f"{BASE}/stats", headers=headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["unsubscribed"] == 1
    assert stats["notified"] == 0
    assert stats["bySource"] == {"coming_soon_page": 2, "referral": 1}
    assert stats["byCountry"] == {"Kenya": 2}
    assert stats["recentSignups"] == 3


@pytest.mark.asyncio
async def test_export_csv(client, super_admin, auth_headers):
    await subscribe(client, "csv@example.com", firstName="Comma, Inc", country="Kenya")

    r = await client.get(f"{BASE}/export/csv", headers=auth_headers(super_admin))
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="waitlist-subscribers.csv"' in r.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(r.text)))
    assert rows[0][:3] == ["ID", "Email", "First Name"]
    assert rows[1][1] == "csv@example.com"
    assert rows[1][2] == "Comma, Inc"
    assert len(rows) == 2

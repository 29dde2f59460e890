from datetime import timedelta, timezone

import pytest

from app.models.affiliate import AffiliateClick, PartnerCompany
from app.timeutils import utcnow


@pytest.fixture
def partners(db):
    rows = [
        PartnerCompany(name="Beta Labs", category="Labs", affiliate_url="https://beta.example.com/?ref=ch"),
        PartnerCompany(name="Alpha Pharmacy", category="Pharmacy", affiliate_url="https://alpha.example.com/?ref=ch"),
        PartnerCompany(name="Gamma Retired", affiliate_url="https://gamma.example.com", is_active=False),
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


def test_public_partner_list_is_active_only_and_sorted(client, partners):
    r = client.get("/partners")
    assert r.status_code == 200
    assert [p["name"] for p in r.json()] == ["Alpha Pharmacy", "Beta Labs"]


def test_admin_partner_crud(client, admin_headers, partners):
    assert len(client.get("/partners/all", headers=admin_headers).json()) == 3

    r = client.post(
        "/partners",
        json={"name": "Delta Dental", "affiliate_url": "https://delta.example.com", "category": "Dental"},
        headers=admin_headers,
    )
    assert r.status_code == 201
    new_id = r.json()["id"]

    r = client.patch(f"/partners/{new_id}", json={"is_active": False}, headers=admin_headers)
    assert r.json()["is_active"] is False
    assert r.json()["category"] == "Dental"

    assert client.delete(f"/partners/{new_id}", headers=admin_headers).status_code == 200
    assert client.patch(f"/partners/{new_id}", json={"name": "x"}, headers=admin_headers).status_code == 404


def test_partner_management_requires_admin(client, partners):
    assert client.get("/partners/all").status_code == 401
    assert client.post("/partners", json={"name": "x", "affiliate_url": "https://x"}).status_code == 401


def test_track_click_records_forwarded_ip(client, db, partners):
    r = client.post(
        "/clicks",
        json={"company_id": partners[0].id, "session_id": "sess-1"},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest-agent"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["ip_address"] == "203.0.113.7"
    assert body["user_agent"] == "pytest-agent"
    assert body["partner_name"] == "Beta Labs"


def test_track_click_falls_back_to_real_ip(client, partners):
    r = client.post("/clicks", json={"company_id": partners[0].id}, headers={"X-Real-IP": "198.51.100.4"})
    assert r.json()["ip_address"] == "198.51.100.4"


def test_track_click_unknown_partner(client):
    r = client.post("/clicks", json={"company_id": 12345})
    assert r.status_code == 404


def test_click_attribution_to_member(client, admin_headers, partners, make_member):
    member = make_member()
    client.post("/clicks", json={"company_id": partners[0].id, "member_user_id": member.id})
    client.post("/clicks", json={"company_id": partners[1].id, "member_user_id": 999})

    r = client.get(f"/members/{member.id}/clicks", headers=admin_headers)
    assert r.status_code == 200
    assert [c["company_id"] for c in r.json()] == [partners[0].id]


def test_conversions_and_analytics(client, admin_headers, partners):
    beta, alpha = partners[0], partners[1]
    for _ in range(3):
        client.post("/clicks", json={"company_id": beta.id})
    client.post("/clicks", json={"company_id": alpha.id})

    def convert(company_id, value, commission, status):
        r = client.post(
            "/conversions",
            json={"company_id": company_id, "conversion_value": value, "commission_amount": commission, "status": status},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    convert(beta.id, 100, 10, "confirmed")
    convert(beta.id, 50, 5, "confirmed")
    pending = convert(alpha.id, 500, 50, "pending")

    overview = client.get("/analytics/overview", headers=admin_headers).json()
    assert overview["total_clicks"] == 4
    assert overview["total_conversions"] == 2
    assert overview["total_revenue"] == pytest.approx(150)
    assert overview["total_commission"] == pytest.approx(15)
    assert overview["conversion_rate"] == pytest.approx(50.0)
    assert overview["average_order_value"] == pytest.approx(75)

    stats = client.get("/analytics/partners", headers=admin_headers).json()
    assert [s["partner_name"] for s in stats] == ["Beta Labs", "Alpha Pharmacy"]
    assert stats[0]["conversions"] == 2
    assert stats[0]["conversion_rate"] == pytest.approx(2 / 3 * 100)
    assert stats[1]["conversions"] == 0

    r = client.patch(f"/conversions/{pending['id']}", json={"status": "confirmed", "notes": "verified"}, headers=admin_headers)
    assert r.json()["status"] == "confirmed"
    assert client.get("/analytics/overview", headers=admin_headers).json()["total_revenue"] == pytest.approx(650)

    recent = client.get("/conversions/recent", params={"limit": 2}, headers=admin_headers).json()
    assert len(recent) == 2
    assert recent[0]["id"] == pending["id"]
    assert recent[0]["partner_name"] == "Alpha Pharmacy"


def test_negative_conversion_amount_rejected(client, admin_headers, partners):
    r = client.post(
        "/conversions",
        json={"company_id": partners[0].id, "conversion_value": -1},
        headers=admin_headers,
    )
    assert r.status_code == 422
    assert r.json()["error"] == "Validation failed."


def test_overview_respects_window(client, db, admin_headers, partners):
    old = AffiliateClick(company_id=partners[0].id, clicked_at=utcnow() - timedelta(days=40))
    db.add(old)
    db.commit()
    client.post("/clicks", json={"company_id": partners[0].id})

    start = (utcnow() - timedelta(days=7)).strftime("%Y-%m-%dT%H:%M:%S")
    r = client.get("/analytics/overview", params={"start": start}, headers=admin_headers)
    assert r.json()["total_clicks"] == 1
    assert client.get("/analytics/overview", headers=admin_headers).json()["total_clicks"] == 2


def test_timeseries_is_zero_filled(client, admin_headers, partners):
    client.post("/clicks", json={"company_id": partners[0].id})
    r = client.get("/analytics/timeseries", params={"days": 7}, headers=admin_headers)
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 8
    assert rows[-1]["date"] == utcnow().date().isoformat()
    assert rows[-1]["clicks"] == 1
    assert sum(row["clicks"] for row in rows[:-1]) == 0


def test_conversion_defaults_to_confirmed_and_can_be_cancelled(client, admin_headers, partners):
    r = client.post("/conversions", json={"company_id": partners[0].id, "conversion_value": 80}, headers=admin_headers)
    assert r.status_code == 201, r.text
    conversion = r.json()
    assert conversion["status"] == "confirmed"
    assert conversion["click_id"] is None
    assert client.get("/analytics/overview", headers=admin_headers).json()["total_revenue"] == pytest.approx(80)

    r = client.patch(f"/conversions/{conversion['id']}", json={"status": "cancelled"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert client.get("/analytics/overview", headers=admin_headers).json()["total_revenue"] == 0

    r = client.patch(f"/conversions/{conversion['id']}", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 422


def test_conversion_linked_to_click_inherits_member(client, admin_headers, partners, make_member):
    member = make_member()
    click = client.post("/clicks", json={"company_id": partners[0].id, "member_user_id": member.id}).json()

    r = client.post(
        "/conversions",
        json={"company_id": partners[0].id, "click_id": click["id"], "conversion_value": 20},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["click_id"] == click["id"]
    assert r.json()["member_user_id"] == member.id


def test_conversion_click_must_exist_and_match_partner(client, admin_headers, partners):
    click = client.post("/clicks", json={"company_id": partners[0].id}).json()

    r = client.post("/conversions", json={"company_id": partners[0].id, "click_id": 9999}, headers=admin_headers)
    assert r.status_code == 404
    r = client.post("/conversions", json={"company_id": partners[1].id, "click_id": click["id"]}, headers=admin_headers)
    assert r.status_code == 400


def test_admin_click_log_filters(client, db, admin_headers, partners):
    beta, alpha = partners[0], partners[1]
    db.add(AffiliateClick(company_id=beta.id, clicked_at=utcnow() - timedelta(days=10)))
    db.commit()
    client.post("/clicks", json={"company_id": beta.id})
    client.post("/clicks", json={"company_id": alpha.id})

    rows = client.get("/clicks", headers=admin_headers).json()
    assert len(rows) == 3
    assert {r["partner_name"] for r in rows} == {"Beta Labs", "Alpha Pharmacy"}

    rows = client.get("/clicks", params={"partner_id": beta.id}, headers=admin_headers).json()
    assert len(rows) == 2

    start = (utcnow() - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")
    rows = client.get("/clicks", params={"start": start, "partner_id": beta.id}, headers=admin_headers).json()
    assert len(rows) == 1

    assert client.get("/clicks").status_code == 401


def test_member_click_activity_across_members(client, admin_headers, partners, make_member):
    first = make_member("first@example.com", full_name="First Member")
    second = make_member("second@example.com", full_name="Second Member")
    client.post("/clicks", json={"company_id": partners[0].id, "member_user_id": first.id})
    client.post("/clicks", json={"company_id": partners[1].id, "member_user_id": second.id})
    client.post("/clicks", json={"company_id": partners[1].id})

    rows = client.get("/clicks/members", headers=admin_headers).json()
    assert len(rows) == 2
    assert {(r["member_name"], r["partner_name"]) for r in rows} == {
        ("First Member", "Beta Labs"),
        ("Second Member", "Alpha Pharmacy"),
    }


def test_window_with_utc_offset(client, db, admin_headers, partners):
    now = utcnow()
    db.add(AffiliateClick(company_id=partners[0].id, clicked_at=now - timedelta(hours=1)))
    db.commit()

    # the same instant as now - 30 minutes, written with a +02:00 offset
    local = (now - timedelta(minutes=30)).astimezone(timezone(timedelta(hours=2)))
    r = client.get("/analytics/overview", params={"start": local.isoformat()}, headers=admin_headers)
    assert r.json()["total_clicks"] == 0

    local = (now - timedelta(hours=2)).astimezone(timezone(timedelta(hours=2)))
    r = client.get("/analytics/overview", params={"start": local.isoformat()}, headers=admin_headers)
    assert r.json()["total_clicks"] == 1

from app.models.identity import AuthIdentity
from app.models.member import MemberUser
from app.services.identity import IdentityProvider
from tests.conftest import ADMIN_EMAIL, STRONG_PASSWORD, bearer, login

REGISTRATION = {
    "email": "Newbie@Example.com",
    "password": STRONG_PASSWORD,
    "full_name": "Nora Newbie",
    "company_name": "Newbie Health",
    "phone": "555-0100",
}


def test_register_creates_pending_member_and_sends_both_emails(client, db, outbox):
    r = client.post("/members/register", json=REGISTRATION)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["member"]["email"] == "newbie@example.com"
    assert body["member"]["is_approved"] is False
    assert body["emails"]["member_email"]["email_sent"] is True
    assert body["emails"]["admin_email"]["email_sent"] is True

    assert len(outbox.to("newbie@example.com")) == 1
    notices = [m for m in outbox.messages if m["to"] != "newbie@example.com"]
    assert len(notices) == 1
    assert "Nora Newbie" in notices[0]["subject"]

    r = login(client, "/auth/member/login", "newbie@example.com", STRONG_PASSWORD)
    assert r.json()["code"] == "pending_approval"


def test_register_rejects_weak_password_without_side_effects(client, db):
    r = client.post("/members/register", json={**REGISTRATION, "password": "weakpass"})
    assert r.status_code == 400
    db.expire_all()
    assert db.query(AuthIdentity).count() == 0


def test_register_with_admin_email_conflicts(client, admin):
    r = client.post("/members/register", json={**REGISTRATION, "email": ADMIN_EMAIL})
    assert r.status_code == 409
    assert r.json()["error"] == "An admin with this email already exists"


def test_register_twice_conflicts(client):
    assert client.post("/members/register", json=REGISTRATION).status_code == 201
    r = client.post("/members/register", json=REGISTRATION)
    assert r.status_code == 409


def test_registration_email_failure_is_reported_not_fatal(client, outbox):
    outbox.fail_for.add("newbie@example.com")
    r = client.post("/members/register", json=REGISTRATION)
    assert r.status_code == 201
    emails = r.json()["emails"]
    assert emails["member_email"] == {"email_sent": False, "email_error": "mail relay unavailable"}
    assert emails["admin_email"]["email_sent"] is True


def test_update_own_profile(client, make_member):
    make_member()
    headers = bearer(login(client, "/auth/member/login", "member@example.com", STRONG_PASSWORD))
    r = client.patch("/members/me", json={"company_name": "New Co", "phone": "555-0199"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["company_name"] == "New Co"
    assert r.json()["full_name"] == "Mia Member"

    assert client.patch("/members/me", json={"full_name": "  "}, headers=headers).status_code == 400


def test_list_members_by_status(client, admin_headers, make_member):
    make_member("a@example.com", approved=True)
    make_member("p@example.com", approved=False)
    make_member("i@example.com", approved=True, active=False)

    def emails(status):
        r = client.get("/members", params={"status": status}, headers=admin_headers)
        assert r.status_code == 200
        return {m["email"] for m in r.json()}

    assert emails("pending") == {"p@example.com"}
    assert emails("approved") == {"a@example.com", "i@example.com"}
    assert emails("inactive") == {"i@example.com"}
    assert client.get("/members", params={"status": "bogus"}, headers=admin_headers).status_code == 400
    assert len(client.get("/members", headers=admin_headers).json()) == 3


def test_delete_member(client, db, admin_headers, make_member):
    member = make_member()
    member_id, user_id = member.id, member.user_id
    r = client.delete(f"/members/{member_id}", headers=admin_headers)
    assert r.status_code == 200
    assert "warnings" not in r.json()

    db.expire_all()
    assert db.get(MemberUser, member_id) is None
    assert db.get(AuthIdentity, user_id) is None


def test_delete_member_with_missing_identity_warns(client, db, admin_headers, make_member, monkeypatch):
    member = make_member()
    monkeypatch.setattr(IdentityProvider, "delete_user", lambda self, user_id: False)
    r = client.delete(f"/members/{member.id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["warnings"] == ["Login identity was already missing"]


def test_delete_unknown_member_is_404(client, admin_headers):
    assert client.delete("/members/999", headers=admin_headers).status_code == 404


def test_register_reuses_login_identity_left_without_profile(client, db, identity):
    orphan_id = identity.create_user("newbie@example.com", "Old!Password123").id
    r = client.post("/members/register", json=REGISTRATION)
    assert r.status_code == 201, r.text
    assert r.json()["member"]["user_id"] == orphan_id

    db.expire_all()
    assert db.query(AuthIdentity).count() == 1
    assert login(client, "/auth/member/login", "newbie@example.com", "Old!Password123").status_code == 401
    assert login(client, "/auth/member/login", "newbie@example.com", STRONG_PASSWORD).json()["code"] == "pending_approval"


def test_register_after_partial_delete(client, db, admin_headers, make_member, monkeypatch):
    member = make_member("newbie@example.com")
    with monkeypatch.context() as m:
        m.setattr(IdentityProvider, "delete_user", lambda self, user_id: False)
        assert client.delete(f"/members/{member.id}", headers=admin_headers).status_code == 200

    r = client.post("/members/register", json=REGISTRATION)
    assert r.status_code == 201, r.text

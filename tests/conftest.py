import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, enable_sqlite_foreign_keys, get_db
from app.main import app
from app.models.admin import AdminUser
from app.models.member import MemberUser
from app.services import notifications
from app.services.identity import IdentityProvider
from app.services.notifications import NotificationResult
from app.timeutils import utcnow

ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "Adm1n!Password"
STRONG_PASSWORD = "N3w!Password99"

_gensalt = bcrypt.gensalt


class Outbox:
    """Stands in for the mail transport; records every message."""

    def __init__(self):
        self.messages = []
        self.fail_for = set()

    def __call__(self, to_email, subject, html_content, text_content=None, *, to_name=None, settings=None):
        self.messages.append({"to": to_email, "subject": subject, "html": html_content})
        if to_email in self.fail_for:
            return NotificationResult(sent=False, error="mail relay unavailable")
        return NotificationResult(sent=True)

    def to(self, email):
        return [m for m in self.messages if m["to"] == email]


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": _gensalt(rounds=rounds, prefix=prefix))


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(notifications, "send_email", box)
    return box


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def identity(db):
    return IdentityProvider(db)


@pytest.fixture
def admin(db, identity):
    auth_user = identity.create_user(ADMIN_EMAIL, ADMIN_PASSWORD)
    row = AdminUser(user_id=auth_user.id, email=ADMIN_EMAIL, full_name="Root Admin", is_active=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def login(client, path, email, password):
    return client.post(path, json={"email": email, "password": password})


def bearer(response):
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, admin):
    r = login(client, "/auth/admin/login", ADMIN_EMAIL, ADMIN_PASSWORD)
    assert r.status_code == 200, r.text
    return bearer(r)


@pytest.fixture
def make_member(db, identity):
    def _make(email="member@example.com", password=STRONG_PASSWORD, *, approved=True, active=True, full_name="Mia Member"):
        auth_user = identity.create_user(email, password)
        member = MemberUser(
            user_id=auth_user.id,
            email=email,
            full_name=full_name,
            company_name="Acme Clinic",
            is_approved=approved,
            approved_at=utcnow() if approved else None,
            is_active=active,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make

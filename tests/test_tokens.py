import string
from datetime import timedelta

from app.models.invitation import InvitationToken
from app.services.tokens import (
    claim_token,
    create_token,
    generate_token,
    get_active_token,
    get_unused_token,
    invalidate_unused_tokens,
    release_token,
)
from app.timeutils import as_utc, utcnow


def test_generate_token_is_64_hex_chars_and_unique():
    tokens = {generate_token() for _ in range(200)}
    assert len(tokens) == 200
    for t in tokens:
        assert len(t) == 64
        assert set(t) <= set(string.hexdigits.lower())


def test_create_token_sets_owner_and_expiry(db, admin):
    now = utcnow()
    row = create_token(db, admin, expires_in_days=7, now=now)
    db.commit()
    assert row.admin_user_id == admin.id
    assert row.member_user_id is None
    assert row.used is False
    assert as_utc(row.expires_at) - now == timedelta(days=7)
    assert row.account_type == "admin"
    assert row.account is admin


def test_member_token_points_at_member(db, make_member):
    member = make_member(approved=False)
    row = create_token(db, member, expires_in_days=3)
    db.commit()
    assert row.member_user_id == member.id
    assert row.admin_user_id is None
    assert row.account_type == "member"


def test_active_token_is_newest_unused_unexpired(db, admin):
    now = utcnow()
    older = create_token(db, admin, expires_in_days=7, now=now - timedelta(hours=2))
    newer = create_token(db, admin, expires_in_days=7, now=now - timedelta(hours=1))
    expired = create_token(db, admin, expires_in_days=1, now=now - timedelta(days=3))
    db.commit()

    assert get_active_token(db, admin).id == newer.id
    newer.used = True
    db.commit()
    assert get_active_token(db, admin).id == older.id
    older.used = True
    db.commit()
    # only the expired one is left unused
    assert expired.used is False
    assert get_active_token(db, admin) is None


def test_invalidate_unused_tokens_marks_all_used(db, admin):
    for _ in range(3):
        create_token(db, admin, expires_in_days=7)
    db.commit()
    assert invalidate_unused_tokens(db, admin) == 3
    db.commit()
    db.expire_all()
    assert db.query(InvitationToken).filter(InvitationToken.used.is_(False)).count() == 0
    assert get_active_token(db, admin) is None


def test_claim_succeeds_once(db, admin):
    row = create_token(db, admin, expires_in_days=7)
    db.commit()
    assert claim_token(db, row.id) is True
    assert claim_token(db, row.id) is False
    assert get_unused_token(db, row.token) is None


def test_release_makes_token_usable_again(db, admin):
    row = create_token(db, admin, expires_in_days=7)
    db.commit()
    claim_token(db, row.id)
    release_token(db, row.id)
    assert get_unused_token(db, row.token) is not None
    assert claim_token(db, row.id) is True

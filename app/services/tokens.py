"""Invitation token generation and persistence."""
import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.admin import AdminUser
from app.models.invitation import InvitationToken
from app.models.member import MemberUser
from app.timeutils import utcnow

TOKEN_BYTES = 32  # 256 bits -> 64 hex chars


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def _owner_filter(owner: AdminUser | MemberUser):
    if isinstance(owner, AdminUser):
        return InvitationToken.admin_user_id == owner.id
    return InvitationToken.member_user_id == owner.id


def create_token(
    db: Session,
    owner: AdminUser | MemberUser,
    *,
    expires_in_days: int,
    now: datetime | None = None,
) -> InvitationToken:
    """Persist a fresh unused token for the owner. Commit is left to the caller."""
    now = now or utcnow()
    row = InvitationToken(
        token=generate_token(),
        expires_at=now + timedelta(days=expires_in_days),
        used=False,
        created_at=now,
    )
    if isinstance(owner, AdminUser):
        row.admin_user_id = owner.id
    else:
        row.member_user_id = owner.id
    db.add(row)
    db.flush()
    return row


def get_unused_token(db: Session, token: str) -> InvitationToken | None:
    return (
        db.query(InvitationToken)
        .filter(InvitationToken.token == token, InvitationToken.used.is_(False))
        .first()
    )


def get_active_token(db: Session, owner: AdminUser | MemberUser, now: datetime | None = None) -> InvitationToken | None:
    """Newest unused, unexpired token for the owner (several may coexist)."""
    now = now or utcnow()
    return (
        db.query(InvitationToken)
        .filter(_owner_filter(owner), InvitationToken.used.is_(False), InvitationToken.expires_at > now)
        .order_by(InvitationToken.created_at.desc(), InvitationToken.id.desc())
        .first()
    )


def invalidate_unused_tokens(db: Session, owner: AdminUser | MemberUser) -> int:
    return (
        db.query(InvitationToken)
        .filter(_owner_filter(owner), InvitationToken.used.is_(False))
        .update({InvitationToken.used: True}, synchronize_session=False)
    )


def claim_token(db: Session, token_id: int) -> bool:
    """UPDATE ... SET used=true WHERE id=:id AND used=false; True only if this call flipped it."""
    claimed = (
        db.query(InvitationToken)
        .filter(InvitationToken.id == token_id, InvitationToken.used.is_(False))
        .update({InvitationToken.used: True}, synchronize_session=False)
    )
    db.commit()
    return claimed == 1


def release_token(db: Session, token_id: int) -> None:
    """Undo a claim after the credential update failed, so the link can be retried."""
    db.query(InvitationToken).filter(InvitationToken.id == token_id).update(
        {InvitationToken.used: False}, synchronize_session=False
    )
    db.commit()

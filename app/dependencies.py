"""Shared dependencies: DB session, identity provider, current admin / member."""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AuthenticationError, PermissionDeniedError
from app.models.admin import AdminUser
from app.models.identity import AuthIdentity
from app.models.member import MemberUser
from app.services.approvals import enforce_member_gate
from app.services.identity import IdentityProvider, decode_token_with_error
from app.services.passwords import PasswordPolicy, get_password_policy

security = HTTPBearer(auto_error=False)


def get_identity_provider(db: Session = Depends(get_db)) -> IdentityProvider:
    return IdentityProvider(db)


def get_policy() -> PasswordPolicy:
    return get_password_policy()


def get_current_identity(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> tuple[AuthIdentity, str]:
    """Returns (identity, account_type) from the bearer token."""
    if not credentials:
        raise AuthenticationError("Not authenticated")
    payload, _ = decode_token_with_error((credentials.credentials or "").strip())
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    identity = db.query(AuthIdentity).filter(AuthIdentity.id == str(payload["sub"])).first()
    if not identity:
        raise AuthenticationError("User not found")
    return identity, payload.get("account_type") or ""


def get_current_admin(
    db: Session = Depends(get_db),
    current: tuple[AuthIdentity, str] = Depends(get_current_identity),
) -> AdminUser:
    identity, _ = current
    admin = db.query(AdminUser).filter(AdminUser.user_id == identity.id).first()
    if not admin or not admin.is_active:
        raise PermissionDeniedError("Active admin account required")
    return admin


def get_current_member(
    db: Session = Depends(get_db),
    current: tuple[AuthIdentity, str] = Depends(get_current_identity),
) -> MemberUser:
    """Gate is re-checked on every request so deactivation takes effect immediately."""
    identity, _ = current
    member = db.query(MemberUser).filter(MemberUser.user_id == identity.id).first()
    if not member:
        raise PermissionDeniedError("Member account required")
    enforce_member_gate(member)
    return member


def get_current_account(
    db: Session = Depends(get_db),
    current: tuple[AuthIdentity, str] = Depends(get_current_identity),
) -> AdminUser | MemberUser:
    identity, account_type = current
    if account_type != "member":
        admin = db.query(AdminUser).filter(AdminUser.user_id == identity.id).first()
        if admin:
            if not admin.is_active:
                raise PermissionDeniedError("Active admin account required")
            return admin
    member = db.query(MemberUser).filter(MemberUser.user_id == identity.id).first()
    if not member:
        raise PermissionDeniedError("No account found for this login")
    enforce_member_gate(member)
    return member

"""Login for admins and members, current account, admin password change."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_account, get_current_admin, get_identity_provider, get_policy
from app.errors import AuthenticationError, PermissionDeniedError
from app.models.admin import AdminUser
from app.models.member import MemberUser
from app.schemas.auth import ChangePasswordRequest, LoginRequest, MeResponse, Token
from app.services.accounts import normalize_email
from app.services.admins import change_admin_password, must_change_password
from app.services.approvals import enforce_member_gate
from app.services.identity import IdentityProvider
from app.services.passwords import PasswordPolicy

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


@router.post("/admin/login", response_model=Token)
def admin_login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    auth_user = identity.authenticate(normalize_email(data.email), data.password)
    if not auth_user:
        raise AuthenticationError(INVALID_CREDENTIALS)
    admin = db.query(AdminUser).filter(AdminUser.user_id == auth_user.id).first()
    if not admin:
        raise PermissionDeniedError("Access denied. Admin account required.")
    if not admin.is_active:
        raise PermissionDeniedError("Your admin account has been deactivated.")
    return Token(
        access_token=identity.create_session_token(auth_user, "admin"),
        account_type="admin",
        must_change_password=must_change_password(admin),
    )


@router.post("/member/login", response_model=Token)
def member_login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Credentials first, then the approval gate; no token leaves here for a pending or deactivated member."""
    auth_user = identity.authenticate(normalize_email(data.email), data.password)
    if not auth_user:
        raise AuthenticationError(INVALID_CREDENTIALS)
    member = db.query(MemberUser).filter(MemberUser.user_id == auth_user.id).first()
    if not member:
        raise PermissionDeniedError("No member account found for this login.")
    enforce_member_gate(member)
    log.info("Member login %s", member.email)
    return Token(access_token=identity.create_session_token(auth_user, "member"), account_type="member")


@router.get("/me", response_model=MeResponse)
def me(account: AdminUser | MemberUser = Depends(get_current_account)):
    is_admin = isinstance(account, AdminUser)
    return MeResponse(
        account_type="admin" if is_admin else "member",
        id=account.id,
        user_id=account.user_id,
        email=account.email,
        full_name=account.full_name,
        is_active=account.is_active,
        is_approved=None if is_admin else account.is_approved,
        must_change_password=must_change_password(account) if is_admin else None,
        last_sign_in_at=account.identity.last_sign_in_at if account.identity else None,
    )


@router.post("/admin/change-password")
def admin_change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    policy: PasswordPolicy = Depends(get_policy),
    admin: AdminUser = Depends(get_current_admin),
):
    change_admin_password(
        db,
        identity,
        policy,
        admin,
        current_password=data.current_password,
        new_password=data.new_password,
    )
    return {"success": True, "message": "Password updated successfully"}

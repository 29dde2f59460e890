"""
Invitation lifecycle for admin and member accounts.

issue -> (token row + optional email) -> validate (read only) -> complete setup
(claim token, set password, clear rotation flags). Regenerate supersedes every
unused token of the owner; initial issue does not.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import (
    ExpiredError,
    NotFoundError,
    NotFoundOrUsedError,
    NotificationDeliveryError,
    UpstreamServiceError,
    ValidationError,
)
from app.models.admin import AdminUser
from app.models.member import MemberUser
from app.models.invitation import InvitationToken
from app.services import notifications
from app.services.accounts import ensure_email_available, normalize_email, require_fields
from app.services.identity import IdentityProvider, generate_throwaway_password
from app.services.notifications import NotificationResult
from app.services.passwords import PasswordPolicy
from app.services.tokens import (
    claim_token,
    create_token,
    get_active_token,
    get_unused_token,
    invalidate_unused_tokens,
    release_token,
)
from app.timeutils import as_utc, utcnow

log = logging.getLogger(__name__)

Account = AdminUser | MemberUser

SETUP_COMPLETE_MESSAGE = "Password set successfully. You can now log in with your credentials."


@dataclass
class IssuedInvitation:
    account: Account
    token: InvitationToken
    setup_link: str
    notification: NotificationResult

    def as_response(self) -> dict:
        key = "admin" if isinstance(self.account, AdminUser) else "member"
        body = {
            "success": True,
            key: self.account,
            "invitation_token": self.token.token,
            "token_expires_at": as_utc(self.token.expires_at),
            "setup_link": self.setup_link,
        }
        body.update(self.notification.as_response_fields())
        return body


@dataclass
class InvitationIdentity:
    """What a valid token unlocks: the display identity of its owner."""

    token_id: int
    account_type: str
    account_id: int
    user_id: str
    email: str
    full_name: str


def build_setup_link(account: Account, token: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    template = (
        settings.admin_setup_link_template if isinstance(account, AdminUser) else settings.member_setup_link_template
    )
    return settings.setup_link(template, token)


def _expire_days(account: Account, settings: Settings) -> int:
    if isinstance(account, AdminUser):
        return settings.admin_invitation_expire_days
    return settings.member_invitation_expire_days


def _send_invitation(account: Account, row: InvitationToken, setup_link: str, *, regenerated: bool = False):
    if isinstance(account, AdminUser):
        return notifications.send_admin_invitation_email(
            account.email, account.full_name, setup_link, row.expires_at, regenerated=regenerated
        )
    return notifications.send_member_invitation_email(account.email, account.full_name, setup_link, row.expires_at)


def insert_profile(db: Session, identity: IdentityProvider, profile: Account, failure_message: str) -> Account:
    """Insert the profile row; if that fails, delete the identity created for it and surface the error."""
    db.add(profile)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("%s for %s: %s", failure_message, profile.email, e)
        try:
            identity.delete_user(profile.user_id)
        except UpstreamServiceError:
            log.exception("Compensating delete of identity %s failed", profile.user_id)
        raise UpstreamServiceError(failure_message, details=str(getattr(e, "orig", e))) from e
    db.refresh(profile)
    return profile


def _issue(
    db: Session,
    profile: Account,
    *,
    send_email: bool,
    settings: Settings,
) -> IssuedInvitation:
    try:
        row = create_token(db, profile, expires_in_days=_expire_days(profile, settings))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to create invitation token", details=str(getattr(e, "orig", e))) from e
    db.refresh(row)

    setup_link = build_setup_link(profile, row.token, settings)
    if send_email:
        result = _send_invitation(profile, row, setup_link)
        if not result.sent:
            log.warning("Invitation email to %s not sent: %s", profile.email, result.error)
    else:
        result = NotificationResult(sent=False)
    return IssuedInvitation(account=profile, token=row, setup_link=setup_link, notification=result)


def issue_admin_invitation(
    db: Session,
    identity: IdentityProvider,
    *,
    email: str,
    full_name: str,
    created_by: str | None = None,
    send_email: bool = True,
    settings: Settings | None = None,
) -> IssuedInvitation:
    settings = settings or get_settings()
    require_fields(email=email, full_name=full_name)
    email = normalize_email(email)
    ensure_email_available(db, email)

    auth_user = identity.provision_user(email, generate_throwaway_password(), email_confirmed=True)
    admin = AdminUser(
        user_id=auth_user.id,
        email=email,
        full_name=full_name.strip(),
        is_active=True,
        must_change_password=True,
        created_by=created_by,
    )
    insert_profile(db, identity, admin, "Failed to create admin record")
    log.info("Admin invitation issued for %s (admin_id=%s)", email, admin.id)
    return _issue(db, admin, send_email=send_email, settings=settings)


def issue_member_invitation(
    db: Session,
    identity: IdentityProvider,
    *,
    email: str,
    full_name: str,
    company_name: str | None = None,
    phone: str | None = None,
    auto_approve: bool = False,
    approved_by: str | None = None,
    send_email: bool = True,
    settings: Settings | None = None,
) -> IssuedInvitation:
    settings = settings or get_settings()
    require_fields(email=email, full_name=full_name)
    email = normalize_email(email)
    ensure_email_available(db, email)

    auth_user = identity.provision_user(email, generate_throwaway_password(), email_confirmed=True)
    member = MemberUser(
        user_id=auth_user.id,
        email=email,
        full_name=full_name.strip(),
        company_name=(company_name or "").strip() or None,
        phone=(phone or "").strip() or None,
        is_active=True,
        is_approved=bool(auto_approve),
    )
    if auto_approve:
        member.approved_at = utcnow()
        member.approved_by = approved_by
    insert_profile(db, identity, member, "Failed to create member record")
    log.info("Member invitation issued for %s (member_id=%s, auto_approve=%s)", email, member.id, auto_approve)
    return _issue(db, member, send_email=send_email, settings=settings)


def regenerate_invitation(
    db: Session,
    account: Account,
    *,
    send_email: bool = False,
    settings: Settings | None = None,
) -> IssuedInvitation:
    """Supersede every unused token of the account and issue a fresh one."""
    settings = settings or get_settings()
    try:
        superseded = invalidate_unused_tokens(db, account)
        row = create_token(db, account, expires_in_days=_expire_days(account, settings))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to create invitation token", details=str(getattr(e, "orig", e))) from e
    db.refresh(row)
    log.info("Regenerated invitation for %s; superseded %d unused token(s)", account.email, superseded)

    setup_link = build_setup_link(account, row.token, settings)
    result = NotificationResult(sent=False)
    if send_email:
        result = _send_invitation(account, row, setup_link, regenerated=True)
        if not result.sent:
            log.warning("Regenerated invitation email to %s not sent: %s", account.email, result.error)
    return IssuedInvitation(account=account, token=row, setup_link=setup_link, notification=result)


def describe_active_invitation(db: Session, account: Account, settings: Settings | None = None) -> dict:
    row = get_active_token(db, account)
    if row is None:
        return {"has_token": False, "message": "No valid invitation token found for this account"}
    return {
        "has_token": True,
        "token": row.token,
        "setup_link": build_setup_link(account, row.token, settings),
        "expires_at": as_utc(row.expires_at),
        "created_at": as_utc(row.created_at),
        "email": account.email,
        "full_name": account.full_name,
    }


def resend_invitation_email(db: Session, account: Account, settings: Settings | None = None) -> dict:
    """Send the active link again. Here the email is the whole operation, so failure is an error."""
    row = get_active_token(db, account)
    if row is None:
        raise NotFoundError("No valid invitation token found for this account")
    setup_link = build_setup_link(account, row.token, settings)
    result = _send_invitation(account, row, setup_link)
    if not result.sent:
        raise NotificationDeliveryError("Failed to send invitation email", details=result.error)
    return {"success": True, "message": "Invitation email sent successfully", "email": account.email}


def validate_invitation(db: Session, token: str | None, now: datetime | None = None) -> InvitationIdentity:
    """Read-only check. Unknown and used tokens are reported identically; expiry is reported as such."""
    token = (token or "").strip()
    if not token:
        raise ValidationError("Token is required")
    row = get_unused_token(db, token)
    if row is None:
        raise NotFoundOrUsedError()
    now = now or utcnow()
    if now > as_utc(row.expires_at):
        raise ExpiredError()
    account = row.account
    if account is None:
        raise NotFoundOrUsedError()
    return InvitationIdentity(
        token_id=row.id,
        account_type=row.account_type,
        account_id=account.id,
        user_id=account.user_id,
        email=account.email,
        full_name=account.full_name,
    )


def _clear_rotation_flags(db: Session, invite: InvitationIdentity) -> None:
    if invite.account_type != "admin":
        return
    try:
        db.query(AdminUser).filter(AdminUser.id == invite.account_id).update(
            {
                AdminUser.must_change_password: False,
                AdminUser.password_expires_at: None,
                AdminUser.last_password_change: utcnow(),
            },
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Password set for admin %s but clearing rotation flags failed", invite.account_id)


def complete_setup(
    db: Session,
    identity: IdentityProvider,
    policy: PasswordPolicy,
    *,
    token: str | None,
    password: str | None,
    now: datetime | None = None,
) -> dict:
    """
    Set the owner's password from a valid token.

    The token is claimed with a conditional update before the password is
    touched, so two racing calls cannot both set a credential. If setting the
    password fails the claim is released and the link stays usable.
    """
    if not (token or "").strip() or not password:
        raise ValidationError("Token and password are required")
    policy.enforce(password)

    invite = validate_invitation(db, token, now=now)
    if not claim_token(db, invite.token_id):
        raise NotFoundOrUsedError()

    try:
        identity.update_user_password(invite.user_id, password)
    except UpstreamServiceError:
        try:
            release_token(db, invite.token_id)
        except SQLAlchemyError:
            db.rollback()
            log.exception("Could not release token %s after failed password update", invite.token_id)
        raise

    _clear_rotation_flags(db, invite)
    log.info("Invitation setup completed for %s (%s)", invite.email, invite.account_type)
    return {"success": True, "message": SETUP_COMPLETE_MESSAGE, "email": invite.email}

"""Member self-registration, profile edits and deletion."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import UpstreamServiceError, ValidationError
from app.models.member import MemberUser
from app.services import notifications
from app.services.accounts import ensure_email_available, normalize_email, require_fields
from app.services.approvals import get_member_or_404
from app.services.identity import IdentityProvider
from app.services.invitations import insert_profile
from app.services.passwords import PasswordPolicy

log = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "company_name", "phone")


def register_member(
    db: Session,
    identity: IdentityProvider,
    policy: PasswordPolicy,
    *,
    email: str,
    password: str,
    full_name: str,
    company_name: str | None = None,
    phone: str | None = None,
) -> dict:
    """Public sign-up. The member starts pending; emails are best effort."""
    require_fields(email=email, password=password, full_name=full_name)
    policy.enforce(password)
    email = normalize_email(email)
    ensure_email_available(db, email)

    auth_user = identity.provision_user(email, password, email_confirmed=True)
    member = MemberUser(
        user_id=auth_user.id,
        email=email,
        full_name=full_name.strip(),
        company_name=(company_name or "").strip() or None,
        phone=(phone or "").strip() or None,
        is_approved=False,
        is_active=True,
    )
    insert_profile(db, identity, member, "Failed to create member record")
    log.info("Member registered: %s (member_id=%s), awaiting approval", email, member.id)

    results = notifications.send_registration_emails(email, member.full_name, member.company_name, member.phone)
    for recipient, result in results.items():
        if not result.sent:
            log.warning("Registration %s for %s not sent: %s", recipient, email, result.error)
    return {
        "success": True,
        "member": member,
        "emails": {key: result.as_response_fields() for key, result in results.items()},
    }


def update_member_profile(db: Session, member: MemberUser, changes: dict) -> MemberUser:
    for field in PROFILE_FIELDS:
        if field not in changes:
            continue
        value = (changes[field] or "").strip()
        if field == "full_name":
            if not value:
                raise ValidationError("Full name cannot be empty")
            member.full_name = value
        else:
            setattr(member, field, value or None)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to update profile", details=str(getattr(e, "orig", e))) from e
    db.refresh(member)
    return member


def delete_member(db: Session, identity: IdentityProvider, member_id: int) -> dict:
    member = get_member_or_404(db, member_id)
    user_id, email = member.user_id, member.email
    warnings = []

    db.delete(member)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to delete member record", details=str(getattr(e, "orig", e))) from e

    try:
        identity_deleted = identity.delete_user(user_id)
    except UpstreamServiceError as e:
        raise UpstreamServiceError(
            "Partial deletion: member record removed but login identity could not be deleted",
            details={"member_deleted": True, "identity_deleted": False, "reason": e.details},
        ) from e
    if not identity_deleted:
        warnings.append("Login identity was already missing")
    log.info("Member %s deleted (identity_deleted=%s)", email, identity_deleted)

    body = {"success": True, "message": "Member deleted successfully", "email": email}
    if warnings:
        body["warnings"] = warnings
    return body

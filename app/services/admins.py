"""Admin account management: status, deletion, password rotation."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamServiceError,
    ValidationError,
)
from app.models.admin import AdminUser
from app.services.identity import IdentityProvider, verify_password
from app.services.passwords import PasswordPolicy
from app.timeutils import as_utc, utcnow

log = logging.getLogger(__name__)


def get_admin_or_404(db: Session, admin_id: int) -> AdminUser:
    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin:
        raise NotFoundError("Admin user not found")
    return admin


def must_change_password(admin: AdminUser, now=None) -> bool:
    if admin.must_change_password:
        return True
    if admin.password_expires_at is None:
        return False
    return (now or utcnow()) > as_utc(admin.password_expires_at)


def set_admin_active(db: Session, admin_id: int, is_active: bool, acting: AdminUser) -> AdminUser:
    admin = get_admin_or_404(db, admin_id)
    if admin.id == acting.id:
        raise PermissionDeniedError("You cannot change your own admin status")
    admin.is_active = bool(is_active)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to update admin status", details=str(getattr(e, "orig", e))) from e
    db.refresh(admin)
    log.info("Admin %s is_active=%s (by %s)", admin.email, admin.is_active, acting.email)
    return admin


def delete_admin(db: Session, identity: IdentityProvider, admin_id: int, acting: AdminUser) -> dict:
    """Profile first (tokens cascade), then the login identity. A half-done delete is reported, not hidden."""
    admin = get_admin_or_404(db, admin_id)
    if admin.id == acting.id:
        raise PermissionDeniedError("You cannot delete your own admin account")
    user_id, email = admin.user_id, admin.email
    db.delete(admin)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to delete admin record", details=str(getattr(e, "orig", e))) from e

    try:
        identity_deleted = identity.delete_user(user_id)
    except UpstreamServiceError as e:
        raise UpstreamServiceError(
            "Partial deletion: admin record removed but login identity could not be deleted",
            details={"admin_deleted": True, "identity_deleted": False, "reason": e.details},
        ) from e
    log.info("Admin %s deleted by %s (identity_deleted=%s)", email, acting.email, identity_deleted)
    return {"success": True, "message": "Admin user deleted successfully", "email": email}


def change_admin_password(
    db: Session,
    identity: IdentityProvider,
    policy: PasswordPolicy,
    admin: AdminUser,
    *,
    current_password: str,
    new_password: str,
) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current and new password are required")
    policy.enforce(new_password)
    auth_user = identity.get_user(admin.user_id)
    if auth_user is None or not verify_password(current_password, auth_user.hashed_password):
        raise AuthenticationError("Current password is incorrect")
    if verify_password(new_password, auth_user.hashed_password):
        raise ValidationError("New password must be different from the current password")
    identity.update_user_password(admin.user_id, new_password)

    admin.must_change_password = False
    admin.password_expires_at = None
    admin.last_password_change = utcnow()
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Password changed for admin %s but clearing rotation flags failed", admin.id)

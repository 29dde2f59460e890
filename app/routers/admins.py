"""Admin user management (admins only)."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_admin, get_identity_provider
from app.models.admin import AdminUser
from app.schemas.admin import AdminCreate, AdminInvitationResponse, AdminResponse, AdminStatusUpdate
from app.schemas.invitation import ActiveInvitation, RegenerateInvitationRequest, RegeneratedInvitation
from app.services.admins import delete_admin, get_admin_or_404, set_admin_active
from app.services.identity import IdentityProvider
from app.services.invitations import (
    describe_active_invitation,
    issue_admin_invitation,
    regenerate_invitation,
    resend_invitation_email,
)

router = APIRouter(prefix="/admins", tags=["admins"])


@router.get("", response_model=list[AdminResponse])
def list_admins(db: Session = Depends(get_db), current_admin: AdminUser = Depends(get_current_admin)):
    return db.query(AdminUser).order_by(AdminUser.created_at.desc(), AdminUser.id.desc()).all()


@router.post("", response_model=AdminInvitationResponse, status_code=201)
def create_admin(
    data: AdminCreate,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    current_admin: AdminUser = Depends(get_current_admin),
):
    """Create the admin with a throwaway password and hand back a single-use setup link."""
    issued = issue_admin_invitation(
        db,
        identity,
        email=data.email,
        full_name=data.full_name,
        created_by=current_admin.user_id,
        send_email=data.send_email,
    )
    return issued.as_response()


@router.patch("/{admin_id}/status", response_model=AdminResponse)
def update_admin_status(
    admin_id: int,
    data: AdminStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return set_admin_active(db, admin_id, data.is_active, current_admin)


@router.delete("/{admin_id}")
def remove_admin(
    admin_id: int,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return delete_admin(db, identity, admin_id, current_admin)


@router.get("/{admin_id}/invitation", response_model=ActiveInvitation)
def get_admin_invitation(
    admin_id: int,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return describe_active_invitation(db, get_admin_or_404(db, admin_id))


@router.post("/{admin_id}/invitation/regenerate", response_model=RegeneratedInvitation)
def regenerate_admin_invitation(
    admin_id: int,
    data: RegenerateInvitationRequest | None = None,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    """Old unused links stop working; the new link is returned and optionally emailed."""
    admin = get_admin_or_404(db, admin_id)
    issued = regenerate_invitation(db, admin, send_email=bool(data and data.send_email))
    return {
        "success": True,
        "token": issued.token.token,
        "setup_link": issued.setup_link,
        "expires_at": issued.token.expires_at,
        **issued.notification.as_response_fields(),
    }


@router.post("/{admin_id}/invitation/send")
def send_admin_invitation(
    admin_id: int,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return resend_invitation_email(db, get_admin_or_404(db, admin_id))

"""Member portal: self-registration and profile, plus admin approval and management."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_admin, get_current_member, get_identity_provider, get_policy
from app.errors import ValidationError
from app.models.admin import AdminUser
from app.models.member import MemberUser
from app.schemas.affiliate import ClickResponse
from app.schemas.member import (
    BulkApprovalResponse,
    MemberApprovalResponse,
    MemberCreate,
    MemberInvitationResponse,
    MemberProfileUpdate,
    MemberRegister,
    MemberRegisterResponse,
    MemberResponse,
    MemberStatusUpdate,
)
from app.services.affiliate import member_clicks
from app.services.approvals import approve_member, bulk_approve_pending, get_member_or_404, set_member_active
from app.services.identity import IdentityProvider
from app.services.invitations import issue_member_invitation
from app.services.members import delete_member, register_member, update_member_profile
from app.services.passwords import PasswordPolicy

router = APIRouter(prefix="/members", tags=["members"])

STATUS_FILTERS = ("pending", "approved", "inactive")


@router.post("/register", response_model=MemberRegisterResponse, status_code=201)
def register(
    data: MemberRegister,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    policy: PasswordPolicy = Depends(get_policy),
):
    return register_member(
        db,
        identity,
        policy,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        company_name=data.company_name,
        phone=data.phone,
    )


@router.get("/me", response_model=MemberResponse)
def my_profile(member: MemberUser = Depends(get_current_member)):
    return member


@router.patch("/me", response_model=MemberResponse)
def update_my_profile(
    data: MemberProfileUpdate,
    db: Session = Depends(get_db),
    member: MemberUser = Depends(get_current_member),
):
    return update_member_profile(db, member, data.model_dump(exclude_unset=True))


@router.get("", response_model=list[MemberResponse])
def list_members(
    status: str | None = Query(None, description="pending | approved | inactive"),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    q = db.query(MemberUser)
    if status:
        if status not in STATUS_FILTERS:
            raise ValidationError(f"status must be one of: {', '.join(STATUS_FILTERS)}")
        if status == "pending":
            q = q.filter(MemberUser.is_approved.is_(False))
        elif status == "approved":
            q = q.filter(MemberUser.is_approved.is_(True))
        else:
            q = q.filter(MemberUser.is_active.is_(False))
    return q.order_by(MemberUser.created_at.desc(), MemberUser.id.desc()).all()


@router.post("", response_model=MemberInvitationResponse, status_code=201)
def create_member(
    data: MemberCreate,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    current_admin: AdminUser = Depends(get_current_admin),
):
    issued = issue_member_invitation(
        db,
        identity,
        email=data.email,
        full_name=data.full_name,
        company_name=data.company_name,
        phone=data.phone,
        auto_approve=data.auto_approve,
        approved_by=current_admin.user_id,
        send_email=data.send_email,
    )
    return issued.as_response()


@router.post("/approve-pending", response_model=BulkApprovalResponse)
def approve_all_pending(db: Session = Depends(get_db), current_admin: AdminUser = Depends(get_current_admin)):
    return {"success": True, "approved_count": bulk_approve_pending(db, current_admin.user_id)}


@router.post("/{member_id}/approve", response_model=MemberApprovalResponse)
def approve(member_id: int, db: Session = Depends(get_db), current_admin: AdminUser = Depends(get_current_admin)):
    return approve_member(db, member_id, current_admin.user_id).as_response()


@router.patch("/{member_id}/status", response_model=MemberResponse)
def update_member_status(
    member_id: int,
    data: MemberStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return set_member_active(db, member_id, data.is_active)


@router.delete("/{member_id}")
def remove_member(
    member_id: int,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return delete_member(db, identity, member_id)


@router.get("/{member_id}/clicks", response_model=list[ClickResponse])
def member_click_activity(
    member_id: int,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    get_member_or_404(db, member_id)
    return member_clicks(db, member_id, limit=limit)

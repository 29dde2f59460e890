"""Member registration, profile and admin-side management schemas."""
from pydantic import BaseModel, EmailStr

from app.schemas.common import UTCDatetime


class MemberRegister(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    company_name: str | None = None
    phone: str | None = None


class MemberCreate(BaseModel):
    """Admin-created member; the member picks a password from the setup link."""
    email: EmailStr
    full_name: str
    company_name: str | None = None
    phone: str | None = None
    auto_approve: bool = False
    send_email: bool = True


class MemberProfileUpdate(BaseModel):
    full_name: str | None = None
    company_name: str | None = None
    phone: str | None = None


class MemberResponse(BaseModel):
    id: int
    user_id: str
    email: str
    full_name: str
    company_name: str | None = None
    phone: str | None = None
    is_approved: bool
    approved_at: UTCDatetime | None = None
    approved_by: str | None = None
    is_active: bool
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class MemberStatusUpdate(BaseModel):
    is_active: bool


class MemberInvitationResponse(BaseModel):
    success: bool = True
    member: MemberResponse
    invitation_token: str
    token_expires_at: UTCDatetime
    setup_link: str
    email_sent: bool
    email_error: str | None = None


class EmailOutcome(BaseModel):
    email_sent: bool
    email_error: str | None = None


class MemberRegisterResponse(BaseModel):
    success: bool = True
    member: MemberResponse
    emails: dict[str, EmailOutcome]


class MemberApprovalResponse(BaseModel):
    success: bool = True
    member: MemberResponse
    already_approved: bool
    email_sent: bool | None = None
    email_error: str | None = None


class BulkApprovalResponse(BaseModel):
    success: bool = True
    approved_count: int

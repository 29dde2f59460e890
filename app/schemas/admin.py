"""Admin management schemas."""
from pydantic import BaseModel, EmailStr

from app.schemas.common import UTCDatetime


class AdminCreate(BaseModel):
    email: EmailStr
    full_name: str
    send_email: bool = True


class AdminResponse(BaseModel):
    id: int
    user_id: str
    email: str
    full_name: str
    is_active: bool
    must_change_password: bool
    password_expires_at: UTCDatetime | None = None
    last_password_change: UTCDatetime | None = None
    created_by: str | None = None
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class AdminStatusUpdate(BaseModel):
    is_active: bool


class AdminInvitationResponse(BaseModel):
    success: bool = True
    admin: AdminResponse
    invitation_token: str
    token_expires_at: UTCDatetime
    setup_link: str
    email_sent: bool
    email_error: str | None = None

"""Invitation token validation and setup-completion schemas."""
from pydantic import BaseModel

from app.schemas.common import UTCDatetime


class TokenRequest(BaseModel):
    token: str | None = None


class InvitationValidation(BaseModel):
    valid: bool
    email: str | None = None
    full_name: str | None = None
    account_type: str | None = None
    error: str | None = None
    reason: str | None = None  # invalid | expired


class CompleteSetupRequest(BaseModel):
    token: str | None = None
    password: str | None = None


class CompleteSetupResponse(BaseModel):
    success: bool
    message: str
    email: str


class RegenerateInvitationRequest(BaseModel):
    send_email: bool = False


class RegeneratedInvitation(BaseModel):
    success: bool = True
    token: str
    setup_link: str
    expires_at: UTCDatetime
    email_sent: bool
    email_error: str | None = None


class ActiveInvitation(BaseModel):
    has_token: bool
    message: str | None = None
    token: str | None = None
    setup_link: str | None = None
    expires_at: UTCDatetime | None = None
    created_at: UTCDatetime | None = None
    email: str | None = None
    full_name: str | None = None

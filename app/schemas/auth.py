"""Login, session and password-change schemas."""
from pydantic import BaseModel, EmailStr

from app.schemas.common import UTCDatetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account_type: str
    must_change_password: bool = False


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class MeResponse(BaseModel):
    account_type: str
    id: int
    user_id: str
    email: str
    full_name: str
    is_active: bool
    is_approved: bool | None = None  # members only
    must_change_password: bool | None = None  # admins only
    last_sign_in_at: UTCDatetime | None = None

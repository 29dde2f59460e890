from app.schemas.auth import ChangePasswordRequest, LoginRequest, MeResponse, Token
from app.schemas.admin import AdminCreate, AdminInvitationResponse, AdminResponse, AdminStatusUpdate
from app.schemas.member import MemberCreate, MemberInvitationResponse, MemberRegister, MemberResponse
from app.schemas.invitation import CompleteSetupRequest, CompleteSetupResponse, InvitationValidation
from app.schemas.affiliate import ClickCreate, ConversionCreate, PartnerCreate, PartnerResponse

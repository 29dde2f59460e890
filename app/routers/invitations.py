"""Public invitation endpoints: check a setup token, then use it to set a password."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_identity_provider, get_policy
from app.errors import ExpiredError, NotFoundOrUsedError
from app.schemas.invitation import (
    CompleteSetupRequest,
    CompleteSetupResponse,
    InvitationValidation,
    TokenRequest,
)
from app.services.identity import IdentityProvider
from app.services.invitations import complete_setup, validate_invitation
from app.services.passwords import PasswordPolicy

router = APIRouter(prefix="/invitations", tags=["invitations"])


def _validation_result(db: Session, token: str | None) -> InvitationValidation:
    # Missing token propagates as a 400; a bad token is reported as data
    try:
        invite = validate_invitation(db, token)
    except NotFoundOrUsedError as e:
        return InvitationValidation(valid=False, error=e.message, reason="invalid")
    except ExpiredError as e:
        return InvitationValidation(valid=False, error=e.message, reason="expired")
    return InvitationValidation(
        valid=True,
        email=invite.email,
        full_name=invite.full_name,
        account_type=invite.account_type,
    )


@router.post("/validate", response_model=InvitationValidation, response_model_exclude_none=True)
def validate_token(data: TokenRequest, db: Session = Depends(get_db)):
    return _validation_result(db, data.token)


@router.get("/validate", response_model=InvitationValidation, response_model_exclude_none=True)
def validate_token_query(token: str | None = Query(None), db: Session = Depends(get_db)):
    return _validation_result(db, token)


@router.post("/complete", response_model=CompleteSetupResponse)
def complete_invitation(
    data: CompleteSetupRequest,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    policy: PasswordPolicy = Depends(get_policy),
):
    return complete_setup(db, identity, policy, token=data.token, password=data.password)

"""Identity provider: credential storage (bcrypt), sign-in and bearer session tokens (JWT)."""
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import UpstreamServiceError
from app.models.identity import AuthIdentity
from app.timeutils import utcnow

log = logging.getLogger(__name__)

THROWAWAY_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%"
THROWAWAY_PASSWORD_LENGTH = 24


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")


def generate_throwaway_password() -> str:
    """Random password for identities created on someone's behalf; never shown to anyone."""
    return "".join(secrets.choice(THROWAWAY_PASSWORD_ALPHABET) for _ in range(THROWAWAY_PASSWORD_LENGTH))


class IdentityProvider:
    """
    Create/update/delete login identities and mint session tokens.

    Each mutating call commits on its own, so callers can compensate
    (e.g. delete a just-created identity) when a later step fails.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def create_user(self, email: str, password: str, *, email_confirmed: bool = True) -> AuthIdentity:
        identity = AuthIdentity(
            email=email,
            hashed_password=get_password_hash(password),
            email_confirmed_at=utcnow() if email_confirmed else None,
        )
        self.db.add(identity)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamServiceError("Failed to create user account", details=str(getattr(e, "orig", e))) from e
        self.db.refresh(identity)
        return identity

    def provision_user(self, email: str, password: str, *, email_confirmed: bool = True) -> AuthIdentity:
        """
        Create the identity for a new account profile.

        Callers check first that no admin or member profile holds the email, so an
        identity already registered under it is one a partial delete left behind.
        It is reused with the new password instead of failing on the unique email.
        """
        orphan = self.get_user_by_email(email)
        if orphan is None:
            return self.create_user(email, password, email_confirmed=email_confirmed)
        log.warning("Reusing login identity %s for %s; it had no account profile", orphan.id, email)
        orphan.hashed_password = get_password_hash(password)
        if email_confirmed and orphan.email_confirmed_at is None:
            orphan.email_confirmed_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamServiceError("Failed to create user account", details=str(getattr(e, "orig", e))) from e
        self.db.refresh(orphan)
        return orphan

    def get_user(self, user_id: str) -> AuthIdentity | None:
        return self.db.query(AuthIdentity).filter(AuthIdentity.id == user_id).first()

    def get_user_by_email(self, email: str) -> AuthIdentity | None:
        return self.db.query(AuthIdentity).filter(func.lower(AuthIdentity.email) == email.strip().lower()).first()

    def update_user_password(self, user_id: str, password: str) -> AuthIdentity:
        identity = self.get_user(user_id)
        if identity is None:
            raise UpstreamServiceError("Failed to set password", details=f"identity {user_id} not found")
        identity.hashed_password = get_password_hash(password)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamServiceError("Failed to set password", details=str(getattr(e, "orig", e))) from e
        return identity

    def delete_user(self, user_id: str) -> bool:
        """Returns False when there was nothing to delete."""
        identity = self.get_user(user_id)
        if identity is None:
            return False
        self.db.delete(identity)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamServiceError("Failed to delete user account", details=str(getattr(e, "orig", e))) from e
        return True

    def authenticate(self, email: str, password: str) -> AuthIdentity | None:
        identity = self.db.query(AuthIdentity).filter(AuthIdentity.email == email).first()
        if identity is None or not verify_password(password, identity.hashed_password):
            return None
        identity.last_sign_in_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            log.warning("Could not record last_sign_in_at for identity %s", identity.id)
        return identity

    def create_session_token(self, identity: AuthIdentity, account_type: str) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.settings.jwt_access_token_expire_minutes)
        # PyJWT expects "sub" to be a string
        payload = {"sub": str(identity.id), "email": identity.email, "account_type": account_type, "exp": expire}
        raw = jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)
        return raw if isinstance(raw, str) else raw.decode("utf-8")

    def decode_session_token(self, token: str) -> dict | None:
        payload, _ = decode_token_with_error(token, self.settings)
        return payload


def decode_token_with_error(token: str, settings: Settings | None = None) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    settings = settings or get_settings()
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return payload, None
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)

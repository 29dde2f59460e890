"""Login identities: the credential side of every account (admin or member)."""
import uuid

from sqlalchemy import Column, String, DateTime

from app.database import Base
from app.timeutils import utcnow


def _new_identity_id() -> str:
    return str(uuid.uuid4())


class AuthIdentity(Base):
    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=_new_identity_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

"""Member (vendor/affiliate) accounts with the approval workflow flags."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class MemberUser(Base):
    __tablename__ = "member_users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("auth_identities.id"), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    # is_approved only moves false -> true; is_active toggles independently
    is_approved = Column(Boolean, default=False, nullable=False, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(36), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    identity = relationship("AuthIdentity")
    invitation_tokens = relationship(
        "InvitationToken",
        back_populates="member_user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

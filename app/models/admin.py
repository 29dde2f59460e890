"""Admin back-office accounts. Profile/authorization overlay on an AuthIdentity."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("auth_identities.id"), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Forced rotation: set on invitation, cleared once the admin picks their own password
    must_change_password = Column(Boolean, default=False, nullable=False)
    password_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_password_change = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(36), nullable=True)  # identity id of the inviting admin
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    identity = relationship("AuthIdentity")
    invitation_tokens = relationship(
        "InvitationToken",
        back_populates="admin_user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

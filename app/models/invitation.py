"""Single-use setup tokens for admin and member invitations."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class InvitationToken(Base):
    __tablename__ = "invitation_tokens"
    __table_args__ = (
        CheckConstraint(
            "(admin_user_id IS NULL) <> (member_user_id IS NULL)",
            name="ck_invitation_tokens_one_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)

    admin_user_id = Column(Integer, ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=True, index=True)
    member_user_id = Column(Integer, ForeignKey("member_users.id", ondelete="CASCADE"), nullable=True, index=True)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)  # false -> true only
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    admin_user = relationship("AdminUser", back_populates="invitation_tokens")
    member_user = relationship("MemberUser", back_populates="invitation_tokens")

    @property
    def account(self):
        return self.admin_user if self.admin_user_id is not None else self.member_user

    @property
    def account_type(self) -> str:
        return "admin" if self.admin_user_id is not None else "member"

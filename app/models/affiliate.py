"""Partner companies and the affiliate click / conversion trail."""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Numeric, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database import Base
from app.timeutils import utcnow


class ConversionStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class PartnerCompany(Base):
    __tablename__ = "partner_companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default="")
    affiliate_url = Column(String(1000), nullable=False)
    logo_url = Column(String(1000), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    clicks = relationship("AffiliateClick", back_populates="partner", cascade="all, delete-orphan", passive_deletes=True)
    conversions = relationship(
        "AffiliateConversion", back_populates="partner", cascade="all, delete-orphan", passive_deletes=True
    )


class AffiliateClick(Base):
    __tablename__ = "affiliate_clicks"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("partner_companies.id", ondelete="CASCADE"), nullable=False, index=True)
    member_user_id = Column(Integer, ForeignKey("member_users.id", ondelete="SET NULL"), nullable=True, index=True)

    user_agent = Column(String(500), nullable=True)
    referer = Column(String(1000), nullable=True)
    session_id = Column(String(100), nullable=True)
    ip_address = Column(String(64), nullable=True)

    clicked_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    partner = relationship("PartnerCompany", back_populates="clicks")
    member = relationship("MemberUser")

    @property
    def partner_name(self) -> str | None:
        return self.partner.name if self.partner else None

    @property
    def member_name(self) -> str | None:
        return self.member.full_name if self.member else None


class AffiliateConversion(Base):
    __tablename__ = "affiliate_conversions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("partner_companies.id", ondelete="CASCADE"), nullable=False, index=True)
    member_user_id = Column(Integer, ForeignKey("member_users.id", ondelete="SET NULL"), nullable=True, index=True)
    click_id = Column(Integer, ForeignKey("affiliate_clicks.id", ondelete="SET NULL"), nullable=True, index=True)

    conversion_value = Column(Numeric(12, 2), nullable=False, default=0)
    commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    conversion_type = Column(String(50), nullable=False, default="sale")
    status = Column(SQLEnum(ConversionStatus), nullable=False, default=ConversionStatus.confirmed)
    notes = Column(Text, nullable=True)

    converted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    partner = relationship("PartnerCompany", back_populates="conversions")

    @property
    def partner_name(self) -> str | None:
        return self.partner.name if self.partner else None

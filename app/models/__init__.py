"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.identity import AuthIdentity
from app.models.admin import AdminUser
from app.models.member import MemberUser
from app.models.invitation import InvitationToken
from app.models.affiliate import PartnerCompany, AffiliateClick, AffiliateConversion, ConversionStatus

__all__ = [
    "AuthIdentity",
    "AdminUser",
    "MemberUser",
    "InvitationToken",
    "PartnerCompany",
    "AffiliateClick",
    "AffiliateConversion",
    "ConversionStatus",
]

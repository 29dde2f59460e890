"""Partner companies, click tracking and conversion bookkeeping."""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, UpstreamServiceError, ValidationError
from app.models.affiliate import AffiliateClick, AffiliateConversion, ConversionStatus, PartnerCompany
from app.models.member import MemberUser
from app.services.analytics import apply_window
from app.timeutils import utcnow

log = logging.getLogger(__name__)

PARTNER_FIELDS = ("name", "description", "category", "affiliate_url", "logo_url", "is_active")


def _commit(db: Session, failure_message: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError(failure_message, details=str(getattr(e, "orig", e))) from e


def get_partner_or_404(db: Session, partner_id: int) -> PartnerCompany:
    partner = db.query(PartnerCompany).filter(PartnerCompany.id == partner_id).first()
    if not partner:
        raise NotFoundError("Partner company not found")
    return partner


def list_partners(db: Session, include_inactive: bool = False) -> list[PartnerCompany]:
    q = db.query(PartnerCompany)
    if not include_inactive:
        q = q.filter(PartnerCompany.is_active.is_(True))
    return q.order_by(PartnerCompany.name).all()


def create_partner(db: Session, data: dict) -> PartnerCompany:
    if not (data.get("name") or "").strip() or not (data.get("affiliate_url") or "").strip():
        raise ValidationError("Partner name and affiliate URL are required")
    partner = PartnerCompany(**{k: v for k, v in data.items() if k in PARTNER_FIELDS})
    db.add(partner)
    _commit(db, "Failed to create partner company")
    db.refresh(partner)
    log.info("Partner company created: %s (id=%s)", partner.name, partner.id)
    return partner


def update_partner(db: Session, partner_id: int, changes: dict) -> PartnerCompany:
    partner = get_partner_or_404(db, partner_id)
    for field, value in changes.items():
        if field in PARTNER_FIELDS:
            setattr(partner, field, value)
    _commit(db, "Failed to update partner company")
    db.refresh(partner)
    return partner


def delete_partner(db: Session, partner_id: int) -> None:
    partner = get_partner_or_404(db, partner_id)
    db.delete(partner)
    _commit(db, "Failed to delete partner company")
    log.info("Partner company %s deleted", partner_id)


def record_click(
    db: Session,
    *,
    company_id: int,
    member_user_id: int | None = None,
    user_agent: str | None = None,
    referer: str | None = None,
    session_id: str | None = None,
    ip_address: str | None = None,
) -> AffiliateClick:
    get_partner_or_404(db, company_id)
    if member_user_id is not None and db.get(MemberUser, member_user_id) is None:
        # stale member id from the browser; keep the click, drop the attribution
        member_user_id = None
    click = AffiliateClick(
        company_id=company_id,
        member_user_id=member_user_id,
        user_agent=(user_agent or "")[:500] or None,
        referer=(referer or "")[:1000] or None,
        session_id=session_id,
        ip_address=ip_address,
        clicked_at=utcnow(),
    )
    db.add(click)
    _commit(db, "Failed to track click")
    db.refresh(click)
    return click


def member_clicks(db: Session, member_id: int, limit: int = 100) -> list[AffiliateClick]:
    return (
        db.query(AffiliateClick)
        .filter(AffiliateClick.member_user_id == member_id)
        .order_by(AffiliateClick.clicked_at.desc())
        .limit(limit)
        .all()
    )


def list_clicks(
    db: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    partner_id: int | None = None,
    members_only: bool = False,
    limit: int | None = None,
) -> list[AffiliateClick]:
    """Click log for admins, newest first."""
    q = apply_window(db.query(AffiliateClick), AffiliateClick.clicked_at, start, end)
    if partner_id is not None:
        q = q.filter(AffiliateClick.company_id == partner_id)
    if members_only:
        q = q.filter(AffiliateClick.member_user_id.isnot(None))
    q = q.order_by(AffiliateClick.clicked_at.desc(), AffiliateClick.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def record_conversion(db: Session, data: dict) -> AffiliateConversion:
    """Admin-entered sale. A referenced click must belong to the same partner and lends its member attribution."""
    get_partner_or_404(db, data["company_id"])
    member_user_id = data.get("member_user_id")
    click_id = data.get("click_id")
    if click_id is not None:
        click = db.get(AffiliateClick, click_id)
        if click is None:
            raise NotFoundError("Click not found")
        if click.company_id != data["company_id"]:
            raise ValidationError("Click belongs to a different partner company")
        if member_user_id is None:
            member_user_id = click.member_user_id
    conversion = AffiliateConversion(
        company_id=data["company_id"],
        member_user_id=member_user_id,
        click_id=click_id,
        conversion_value=data.get("conversion_value") or 0,
        commission_amount=data.get("commission_amount") or 0,
        conversion_type=data.get("conversion_type") or "sale",
        status=data.get("status") or ConversionStatus.confirmed,
        notes=data.get("notes"),
        converted_at=data.get("converted_at") or utcnow(),
    )
    db.add(conversion)
    _commit(db, "Failed to record conversion")
    db.refresh(conversion)
    log.info("Conversion recorded for partner %s (id=%s, status=%s)", conversion.company_id, conversion.id, conversion.status)
    return conversion


def update_conversion(db: Session, conversion_id: int, changes: dict) -> AffiliateConversion:
    conversion = db.query(AffiliateConversion).filter(AffiliateConversion.id == conversion_id).first()
    if not conversion:
        raise NotFoundError("Conversion not found")
    if changes.get("status") is not None:
        conversion.status = ConversionStatus(changes["status"])
    if "notes" in changes:
        conversion.notes = changes["notes"]
    _commit(db, "Failed to update conversion")
    db.refresh(conversion)
    return conversion


def recent_conversions(db: Session, limit: int = 10) -> list[AffiliateConversion]:
    return (
        db.query(AffiliateConversion)
        .order_by(AffiliateConversion.created_at.desc(), AffiliateConversion.id.desc())
        .limit(limit)
        .all()
    )

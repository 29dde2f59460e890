"""Partner directory, click tracking and conversion bookkeeping."""
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_admin
from app.middleware.request_logging import client_ip
from app.models.admin import AdminUser
from app.schemas.affiliate import (
    ClickCreate,
    ClickResponse,
    ConversionCreate,
    ConversionResponse,
    ConversionUpdate,
    PartnerCreate,
    PartnerResponse,
    PartnerUpdate,
)
from app.services import affiliate

router = APIRouter(tags=["partners"])


@router.get("/partners", response_model=list[PartnerResponse])
def list_active_partners(db: Session = Depends(get_db)):
    return affiliate.list_partners(db)


@router.get("/partners/all", response_model=list[PartnerResponse])
def list_all_partners(db: Session = Depends(get_db), current_admin: AdminUser = Depends(get_current_admin)):
    return affiliate.list_partners(db, include_inactive=True)


@router.post("/partners", response_model=PartnerResponse, status_code=201)
def create_partner(
    data: PartnerCreate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.create_partner(db, data.model_dump())


@router.patch("/partners/{partner_id}", response_model=PartnerResponse)
def update_partner(
    partner_id: int,
    data: PartnerUpdate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.update_partner(db, partner_id, data.model_dump(exclude_unset=True))


@router.delete("/partners/{partner_id}")
def delete_partner(
    partner_id: int,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    affiliate.delete_partner(db, partner_id)
    return {"success": True}


@router.post("/clicks", response_model=ClickResponse, status_code=201)
def track_click(request: Request, data: ClickCreate, db: Session = Depends(get_db)):
    """Public: the partner card calls this before redirecting to the affiliate URL."""
    return affiliate.record_click(
        db,
        company_id=data.company_id,
        member_user_id=data.member_user_id,
        user_agent=data.user_agent or request.headers.get("user-agent"),
        referer=data.referer or request.headers.get("referer"),
        session_id=data.session_id,
        ip_address=client_ip(request),
    )


@router.get("/clicks", response_model=list[ClickResponse])
def list_clicks(
    start: datetime | None = None,
    end: datetime | None = None,
    partner_id: int | None = None,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.list_clicks(db, start=start, end=end, partner_id=partner_id)


@router.get("/clicks/members", response_model=list[ClickResponse])
def list_member_click_activity(
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    """Clicks attributed to a signed-in member, across all members."""
    return affiliate.list_clicks(db, members_only=True, limit=limit)


@router.post("/conversions", response_model=ConversionResponse, status_code=201)
def create_conversion(
    data: ConversionCreate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.record_conversion(db, data.model_dump())


@router.get("/conversions/recent", response_model=list[ConversionResponse])
def list_recent_conversions(
    limit: int = Query(10, ge=1, le=200),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.recent_conversions(db, limit=limit)


@router.patch("/conversions/{conversion_id}", response_model=ConversionResponse)
def update_conversion(
    conversion_id: int,
    data: ConversionUpdate,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return affiliate.update_conversion(db, conversion_id, data.model_dump(exclude_unset=True))

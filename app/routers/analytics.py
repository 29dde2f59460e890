"""Admin reporting over clicks and confirmed conversions."""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_admin
from app.models.admin import AdminUser
from app.schemas.affiliate import AnalyticsOverview, PartnerStats, TimeSeriesPoint
from app.services import analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/overview", response_model=AnalyticsOverview)
def overview(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return analytics.overview(db, start, end)


@router.get("/partners", response_model=list[PartnerStats])
def partner_stats(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return analytics.partner_stats(db, start, end)


@router.get("/timeseries", response_model=list[TimeSeriesPoint])
def timeseries(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    return analytics.timeseries(db, days)

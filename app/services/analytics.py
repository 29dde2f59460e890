"""Click/conversion reporting. Only confirmed conversions count toward revenue and rates."""
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.affiliate import AffiliateClick, AffiliateConversion, ConversionStatus, PartnerCompany
from app.timeutils import as_utc, utcnow


def _rate(conversions: int, clicks: int) -> float:
    return (conversions / clicks) * 100 if clicks else 0.0


def apply_window(q, column, start: datetime | None, end: datetime | None):
    """Bound q by [start, end]. Offsets are converted first; stored timestamps are UTC without tzinfo."""
    if start is not None:
        q = q.filter(column >= as_utc(start))
    if end is not None:
        q = q.filter(column <= as_utc(end))
    return q


def overview(db: Session, start: datetime | None = None, end: datetime | None = None) -> dict:
    clicks = apply_window(db.query(func.count(AffiliateClick.id)), AffiliateClick.clicked_at, start, end).scalar() or 0
    conv_q = db.query(
        func.count(AffiliateConversion.id),
        func.coalesce(func.sum(AffiliateConversion.conversion_value), 0),
        func.coalesce(func.sum(AffiliateConversion.commission_amount), 0),
    ).filter(AffiliateConversion.status == ConversionStatus.confirmed)
    conversions, revenue, commission = apply_window(conv_q, AffiliateConversion.converted_at, start, end).one()
    revenue, commission = float(revenue), float(commission)
    return {
        "total_clicks": clicks,
        "total_conversions": conversions,
        "total_revenue": revenue,
        "total_commission": commission,
        "conversion_rate": _rate(conversions, clicks),
        "average_order_value": revenue / conversions if conversions else 0.0,
    }


def partner_stats(db: Session, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    click_rows = apply_window(
        db.query(AffiliateClick.company_id, func.count(AffiliateClick.id)).group_by(AffiliateClick.company_id),
        AffiliateClick.clicked_at,
        start,
        end,
    ).all()
    conv_rows = apply_window(
        db.query(
            AffiliateConversion.company_id,
            func.count(AffiliateConversion.id),
            func.coalesce(func.sum(AffiliateConversion.conversion_value), 0),
            func.coalesce(func.sum(AffiliateConversion.commission_amount), 0),
        )
        .filter(AffiliateConversion.status == ConversionStatus.confirmed)
        .group_by(AffiliateConversion.company_id),
        AffiliateConversion.converted_at,
        start,
        end,
    ).all()

    stats: dict[int, dict] = {}

    def row_for(company_id: int) -> dict:
        return stats.setdefault(
            company_id,
            {"partner_id": company_id, "clicks": 0, "conversions": 0, "revenue": 0.0, "commission": 0.0},
        )

    for company_id, count in click_rows:
        row_for(company_id)["clicks"] = count
    for company_id, count, revenue, commission in conv_rows:
        row = row_for(company_id)
        row.update(conversions=count, revenue=float(revenue), commission=float(commission))

    names = dict(db.query(PartnerCompany.id, PartnerCompany.name).filter(PartnerCompany.id.in_(list(stats))).all())
    for company_id, row in stats.items():
        row["partner_name"] = names.get(company_id, "Unknown")
        row["conversion_rate"] = _rate(row["conversions"], row["clicks"])
    return sorted(stats.values(), key=lambda r: r["clicks"], reverse=True)


def timeseries(db: Session, days: int = 30, now: datetime | None = None) -> list[dict]:
    """One zero-filled row per UTC day, oldest first: days+1 rows ending today."""
    now = now or utcnow()
    today = now.date()
    first_day = today - timedelta(days=days)
    start = datetime.combine(first_day, datetime.min.time(), tzinfo=now.tzinfo)

    buckets = {}
    for i in range(days + 1):
        day = first_day + timedelta(days=i)
        buckets[day] = {"date": day.isoformat(), "clicks": 0, "conversions": 0, "revenue": 0.0}

    for (clicked_at,) in db.query(AffiliateClick.clicked_at).filter(AffiliateClick.clicked_at >= start):
        bucket = buckets.get(as_utc(clicked_at).date())
        if bucket:
            bucket["clicks"] += 1

    conversions = db.query(AffiliateConversion.converted_at, AffiliateConversion.conversion_value).filter(
        AffiliateConversion.converted_at >= start,
        AffiliateConversion.status == ConversionStatus.confirmed,
    )
    for converted_at, value in conversions:
        bucket = buckets.get(as_utc(converted_at).date())
        if bucket:
            bucket["conversions"] += 1
            bucket["revenue"] += float(value or 0)

    return list(buckets.values())

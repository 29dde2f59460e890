"""Partner, click, conversion and analytics schemas."""
from decimal import Decimal

from pydantic import BaseModel, field_validator

from app.models.affiliate import ConversionStatus
from app.schemas.common import UTCDatetime


class PartnerCreate(BaseModel):
    name: str
    description: str = ""
    category: str = ""
    affiliate_url: str
    logo_url: str | None = None
    is_active: bool = True


class PartnerUpdate(BaseModel):
    """All optional; only provided fields are updated."""
    name: str | None = None
    description: str | None = None
    category: str | None = None
    affiliate_url: str | None = None
    logo_url: str | None = None
    is_active: bool | None = None


class PartnerResponse(BaseModel):
    id: int
    name: str
    description: str
    category: str
    affiliate_url: str
    logo_url: str | None = None
    is_active: bool
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class ClickCreate(BaseModel):
    company_id: int
    member_user_id: int | None = None
    user_agent: str | None = None
    referer: str | None = None
    session_id: str | None = None


class ClickResponse(BaseModel):
    id: int
    company_id: int
    partner_name: str | None = None
    member_user_id: int | None = None
    member_name: str | None = None
    user_agent: str | None = None
    referer: str | None = None
    session_id: str | None = None
    ip_address: str | None = None
    clicked_at: UTCDatetime

    class Config:
        from_attributes = True


class ConversionCreate(BaseModel):
    company_id: int
    member_user_id: int | None = None
    click_id: int | None = None
    conversion_value: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    conversion_type: str = "sale"
    status: ConversionStatus = ConversionStatus.confirmed
    notes: str | None = None
    converted_at: UTCDatetime | None = None

    @field_validator("conversion_value", "commission_amount")
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Amounts cannot be negative")
        return v


class ConversionUpdate(BaseModel):
    status: ConversionStatus | None = None
    notes: str | None = None


class ConversionResponse(BaseModel):
    id: int
    company_id: int
    partner_name: str | None = None
    member_user_id: int | None = None
    click_id: int | None = None
    conversion_value: float
    commission_amount: float
    conversion_type: str
    status: ConversionStatus
    notes: str | None = None
    converted_at: UTCDatetime
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class AnalyticsOverview(BaseModel):
    total_clicks: int
    total_conversions: int
    total_revenue: float
    total_commission: float
    conversion_rate: float
    average_order_value: float


class PartnerStats(BaseModel):
    partner_id: int
    partner_name: str
    clicks: int
    conversions: int
    revenue: float
    commission: float
    conversion_rate: float


class TimeSeriesPoint(BaseModel):
    date: str
    clicks: int
    conversions: int
    revenue: float

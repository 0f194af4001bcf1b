"""Booking funnel schemas - public quote, lead and checkout payloads"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import FREQUENCIES
from ...shared.validators import validate_choice, validate_email, validate_us_phone
from ...utils.sanitization import clean_text


class Addon(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(0, ge=0, le=1000)


class HomeDetails(BaseModel):
    sqft: int = Field(..., gt=0, le=20000)
    bedrooms: int = Field(..., ge=0, le=20)
    bathrooms: float = Field(..., ge=0, le=20)
    frequency: str = "biweekly"

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        return validate_choice(v, FREQUENCIES, "frequency")

    @field_validator("bathrooms")
    @classmethod
    def validate_bathrooms(cls, v):
        if (v * 2) != int(v * 2):
            raise ValueError("bathrooms must be a whole or half number")
        return v


class QuoteRequest(HomeDetails):
    """Price preview; discounts and add-ons here never reach a stored booking"""

    addons: list[Addon] = Field(default_factory=list)
    credit_balance: float = Field(0, ge=0)
    referral_discount: float = Field(0, ge=0)


class QuoteResponse(BaseModel):
    base_price: float
    first_clean_price: float
    recurring_price: float
    addons_price: float
    first_clean_total: float
    total_discounts: float
    final_first_clean_price: float
    deposit_amount: float
    remaining_amount: float
    first_clean_duration: int
    recurring_duration: int
    frequency: str
    frequency_label: str
    frequency_badge: str
    frequency_discount_percent: float
    savings_per_visit: float
    cleaner_count: int


class LeadCreate(HomeDetails):
    """Contact step; prices are computed from the home details alone"""

    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: str
    address: str = Field(..., min_length=5, max_length=500)

    @field_validator("name", "address")
    @classmethod
    def clean_contact_text(cls, v):
        v = clean_text(v, max_length=500)
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v):
        return validate_us_phone(v)


class BookingWindow(BaseModel):
    earliest: date
    latest: date


class LeadResponse(BaseModel):
    public_id: str
    status: str
    service_area: str
    quote: QuoteResponse
    scheduling_url: str
    booking_window: BookingWindow


class FunnelBookingResponse(BaseModel):
    """What the customer sees about their own booking"""

    public_id: str
    name: str
    email: str
    address: Optional[str] = None
    service_area: Optional[str] = None
    sqft: int
    bedrooms: int
    bathrooms: float
    frequency: str
    first_clean_price: Optional[float] = None
    recurring_price: Optional[float] = None
    deposit_amount: Optional[float] = None
    remaining_amount: Optional[float] = None
    status: str
    payment_status: str
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleRequest(BaseModel):
    """Booking details reported by the Cal.com embed"""

    scheduled_date: date
    scheduled_time: Optional[str] = Field(None, max_length=50)
    cal_booking_id: Optional[str] = Field(None, max_length=255)
    cal_booking_url: Optional[str] = Field(None, max_length=500)


class CheckoutResponse(BaseModel):
    checkout_url: str
    session_id: str
    deposit_amount: float
    remaining_amount: float

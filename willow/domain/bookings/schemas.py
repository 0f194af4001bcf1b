"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import BOOKING_STATUSES
from ...shared.validators import validate_choice


class BookingResponse(BaseModel):
    """Full booking record for the admin dashboard"""

    id: int
    public_id: str
    name: str
    email: str
    phone: Optional[str] = None
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
    source: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    cal_booking_id: Optional[str] = None
    cal_booking_url: Optional[str] = None
    cleaner_id: Optional[int] = None
    cleaner_name: Optional[str] = None
    cleaner_notified_at: Optional[datetime] = None
    cleaning_instructions: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    deposit_paid_at: Optional[datetime] = None
    charge_error: Optional[str] = None
    cancellation_fee: Optional[float] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return validate_choice(v, BOOKING_STATUSES, "status")


class AssignCleanerRequest(BaseModel):
    """Manual assignment; cleaner_id of null unassigns"""

    cleaner_id: Optional[int] = None


class AutoAssignResponse(BaseModel):
    success: bool
    booking: BookingResponse
    cleaner_id: int
    cleaner_name: str
    email_queued: bool


class CancelBookingResponse(BaseModel):
    booking: BookingResponse
    fee: float
    reason: str


class ChargeRemainingResponse(BaseModel):
    booking: BookingResponse
    payment_intent_id: Optional[str] = None
    status: str

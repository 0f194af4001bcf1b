"""Booking funnel service - quote, lead capture, scheduling and deposit checkout"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...email_service import deliver_in_background, send_new_lead_notification
from ...models import Booking
from ...services.scheduling import build_scheduling_notes, build_scheduling_url, get_booking_window
from ...services.stripe_service import (
    StripeError,
    create_deposit_checkout_session,
    find_or_create_customer,
)
from ..bookings.repository import OPEN_FUNNEL_STATUSES, BookingRepository
from ..pricing.engine import (
    calculate_cleaning_price,
    calculate_deposit,
    format_frequency,
    format_price,
    get_frequency_badge,
)
from ..pricing.settings import load_cost_settings
from .schemas import HomeDetails, LeadCreate, QuoteRequest, ScheduleRequest

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_AREA = "Fox Valley"

# Address fragment -> service area name
SERVICE_AREA_MATCHES = (
    ("st. charles", "St. Charles"),
    ("st charles", "St. Charles"),
    ("saint charles", "St. Charles"),
    ("geneva", "Geneva"),
    ("batavia", "Batavia"),
    ("campton hills", "Campton Hills"),
    ("wayne", "Wayne"),
    ("elburn", "Elburn"),
)

LEAD_SOURCE = "website_calculator"


def detect_service_area(address: Optional[str]) -> str:
    """Service area named in the address, or the Fox Valley catch-all"""
    lowered = (address or "").lower()
    for fragment, area in SERVICE_AREA_MATCHES:
        if fragment in lowered:
            return area
    return DEFAULT_SERVICE_AREA


def build_quote(
    data: HomeDetails,
    settings: dict,
    addons: Optional[list] = None,
    credit_balance: float = 0,
    referral_discount: float = 0,
) -> dict:
    price = calculate_cleaning_price(
        data.sqft,
        data.bedrooms,
        data.bathrooms,
        data.frequency,
        addons=addons,
        credit_balance=credit_balance,
        referral_discount=referral_discount,
        settings=settings,
    )
    return {
        "base_price": price["base_price"],
        "first_clean_price": price["first_clean_price"],
        "recurring_price": price["recurring_price"],
        "addons_price": price["addons_price"],
        "first_clean_total": price["first_clean_total"],
        "total_discounts": price["total_discounts"],
        "final_first_clean_price": price["final_first_clean_price"],
        "deposit_amount": price["deposit_amount"],
        "remaining_amount": price["remaining_amount"],
        "first_clean_duration": price["first_clean_duration"],
        "recurring_duration": price["recurring_duration"],
        "frequency": data.frequency,
        "frequency_label": format_frequency(data.frequency),
        "frequency_badge": get_frequency_badge(data.frequency, settings),
        "frequency_discount_percent": price["frequency_discount_percent"],
        "savings_per_visit": price["savings_per_visit"],
        "cleaner_count": price["cost_breakdown"]["cleaner_count"],
    }


class FunnelService:
    """Service layer for the public booking funnel"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def quote(self, data: QuoteRequest) -> dict:
        return build_quote(
            data,
            load_cost_settings(self.db),
            addons=[addon.model_dump() for addon in data.addons],
            credit_balance=data.credit_balance,
            referral_discount=data.referral_discount,
        )

    def create_lead(self, data: LeadCreate, background_tasks: BackgroundTasks) -> dict:
        """Store the contact step as a lead; prices are always recomputed here"""
        quote = build_quote(data, load_cost_settings(self.db))
        service_area = detect_service_area(data.address)

        booking = self.repo.create(
            self.db,
            name=data.name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            service_area=service_area,
            sqft=data.sqft,
            bedrooms=data.bedrooms,
            bathrooms=data.bathrooms,
            frequency=data.frequency,
            first_clean_price=quote["final_first_clean_price"],
            recurring_price=quote["recurring_price"],
            deposit_amount=quote["deposit_amount"],
            remaining_amount=quote["remaining_amount"],
            status="lead",
            payment_status="pending",
            source=LEAD_SOURCE,
        )
        logger.info(f"✅ New lead {booking.public_id} ({service_area}, {format_price(quote['final_first_clean_price'])})")

        background_tasks.add_task(
            deliver_in_background,
            send_new_lead_notification,
            name=booking.name,
            email=booking.email,
            phone=booking.phone,
            address=booking.address,
            home_summary=f"{booking.sqft:,} sq ft, {booking.bedrooms} bed, {booking.bathrooms:g} bath",
            quote=f"{format_price(quote['final_first_clean_price'])} first clean, "
            f"{format_price(quote['recurring_price'])} {format_frequency(booking.frequency).lower()}",
        )

        notes = build_scheduling_notes(
            booking.sqft,
            booking.bedrooms,
            booking.bathrooms,
            format_frequency(booking.frequency),
            booking.address,
            quote["final_first_clean_price"],
        )
        return {
            "public_id": booking.public_id,
            "status": booking.status,
            "service_area": service_area,
            "quote": quote,
            "scheduling_url": build_scheduling_url(booking.name, booking.email, notes),
            "booking_window": get_booking_window(),
        }

    def get_booking(self, public_id: str) -> Booking:
        booking = self.repo.get_by_public_id(self.db, public_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def _require_open(self, booking: Booking) -> None:
        if booking.status not in OPEN_FUNNEL_STATUSES:
            raise HTTPException(
                status_code=409, detail=f"Booking can no longer be changed (status: {booking.status})"
            )

    def schedule(self, public_id: str, data: ScheduleRequest) -> Booking:
        booking = self.get_booking(public_id)
        self._require_open(booking)
        window = get_booking_window()
        if not window["earliest"] <= data.scheduled_date <= window["latest"]:
            raise HTTPException(
                status_code=400,
                detail=f"Date must be between {window['earliest']} and {window['latest']}",
            )
        logger.info(f"📅 Booking {public_id} scheduled for {data.scheduled_date} {data.scheduled_time or ''}")
        return self.repo.update(self.db, booking, **data.model_dump(exclude_unset=True))

    async def create_checkout(self, public_id: str) -> dict:
        """Stripe Checkout for the deposit; the card is kept for the remaining balance"""
        booking = self.get_booking(public_id)
        self._require_open(booking)
        if not booking.first_clean_price:
            raise HTTPException(status_code=409, detail="Booking has no price")

        deposit_amount, remaining_amount = calculate_deposit(booking.first_clean_price)
        booking = self.repo.update(
            self.db,
            booking,
            status="payment_initiated",
            deposit_amount=deposit_amount,
            remaining_amount=remaining_amount,
        )

        try:
            customer = await find_or_create_customer(
                booking.email, name=booking.name, phone=booking.phone, address=booking.address
            )
            session = await create_deposit_checkout_session(
                customer_id=customer["id"],
                deposit_amount=deposit_amount,
                remaining_amount=remaining_amount,
                sqft=booking.sqft,
                metadata={
                    "booking_id": str(booking.id),
                    "public_id": booking.public_id,
                    "type": "deposit",
                },
                success_url=f"{FRONTEND_URL}/booking/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{FRONTEND_URL}/booking/{booking.public_id}",
            )
        except StripeError as e:
            logger.error(f"❌ Checkout failed for booking {public_id}: {e}")
            raise HTTPException(status_code=502, detail=f"Payment processing failed: {e}") from e

        self.repo.update(
            self.db,
            booking,
            stripe_customer_id=customer["id"],
            stripe_checkout_session_id=session["id"],
        )
        return {
            "checkout_url": session["url"],
            "session_id": session["id"],
            "deposit_amount": deposit_amount,
            "remaining_amount": remaining_amount,
        }

"""Booking service - admin operations on bookings and leads"""

import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...email_service import deliver_in_background, send_cleaner_assignment_email
from ...models import Booking
from ...services.stripe_service import StripeError, charge_saved_card
from ...utils.csv_export import csv_response
from ..cleaners.service import CleanerService
from ..pricing.engine import calculate_cancellation_fee, format_frequency, format_time_slot
from .repository import BookingRepository
from .schemas import BookingResponse

logger = logging.getLogger(__name__)

BOOKING_FILTERS = ("upcoming", "past", "all")

# A declined balance charge stays chargeable so the admin can retry it
CHARGEABLE_PAYMENT_STATUSES = ("deposit_paid", "charge_failed")

# Appointment start used for cancellation notice when only a slot name is known
SLOT_START_TIMES = {"morning": time(9, 0), "afternoon": time(13, 0)}


def serialize_booking(booking: Booking) -> dict:
    return BookingResponse.model_validate(booking).model_dump(mode="json")


def home_summary(booking: Booking) -> str:
    return (
        f"{booking.sqft:,} sq ft, {booking.bedrooms} bed, {booking.bathrooms:g} bath, "
        f"{format_frequency(booking.frequency)}"
    )


def generate_cleaning_instructions(booking: Booking) -> str:
    """Markdown job sheet attached to a cleaner assignment"""
    service_type = (
        "One-Time Deep Clean"
        if booking.frequency == "onetime"
        else f"{format_frequency(booking.frequency)} cleaning"
    )
    return "\n".join(
        [
            "## Cleaning Details",
            f"- **Customer:** {booking.name}",
            f"- **Address:** {booking.address or ''}",
            f"- **Phone:** {booking.phone or ''}",
            f"- **Email:** {booking.email}",
            "",
            "## Home Specs",
            f"- **Size:** {booking.sqft:,} sq ft",
            f"- **Bedrooms:** {booking.bedrooms}",
            f"- **Bathrooms:** {booking.bathrooms:g}",
            f"- **Service Type:** {service_type}",
            "",
            "## Reminders",
            "- Text customer 15 minutes before arrival",
            "- Use Branch Basics products only",
            "- Take before/after photos if possible",
            "- Lock up when leaving if customer not home",
        ]
    )


def parse_slot_time(scheduled_time: Optional[str]) -> time:
    """Start time for a slot name ('morning') or a clock time ('14:30', '2:30pm')"""
    if not scheduled_time:
        return time(9, 0)
    value = scheduled_time.strip().lower()
    if value in SLOT_START_TIMES:
        return SLOT_START_TIMES[value]
    for fmt in ("%H:%M", "%I:%M%p", "%I%p", "%I:%M %p", "%I %p"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    return time(9, 0)


class BookingService:
    """Service layer for admin booking and lead operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def list_bookings(self, time_filter: str = "upcoming", search: Optional[str] = None) -> list[dict]:
        if time_filter not in BOOKING_FILTERS:
            raise HTTPException(status_code=400, detail=f"filter must be one of: {', '.join(BOOKING_FILTERS)}")
        bookings = self.repo.list_admin_bookings(self.db, time_filter, search)
        return [serialize_booking(b) for b in bookings]

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def update_status(self, booking_id: int, status: str) -> Booking:
        booking = self.get_booking(booking_id)
        updates = {"status": status}
        if status == "cancelled" and not booking.cancelled_at:
            updates["cancelled_at"] = datetime.utcnow()
        logger.info(f"📝 Booking {booking_id} status: {booking.status} → {status}")
        return self.repo.update(self.db, booking, **updates)

    def assign_cleaner(self, booking_id: int, cleaner_id: Optional[int]) -> Booking:
        booking = self.get_booking(booking_id)
        if cleaner_id is not None:
            CleanerService(self.db).get_cleaner(cleaner_id)
        logger.info(f"👤 Booking {booking_id} assigned to cleaner {cleaner_id}")
        return self.repo.update(self.db, booking, cleaner_id=cleaner_id)

    def auto_assign(self, booking_id: int, background_tasks: BackgroundTasks) -> dict:
        """Round-robin assignment; the cleaner is e-mailed in the background"""
        booking = self.get_booking(booking_id)
        if booking.status == "cancelled":
            raise HTTPException(status_code=409, detail="Cannot assign a cancelled booking")

        cleaners = CleanerService(self.db)
        cleaner = cleaners.next_available(booking.scheduled_date)
        if not cleaner:
            logger.warning(f"⚠️ No cleaners available for booking {booking_id} on {booking.scheduled_date}")
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "No cleaners available for this date",
                    "requires_manual_assignment": True,
                },
            )

        booking = self.repo.update(
            self.db,
            booking,
            cleaner_id=cleaner.id,
            cleaning_instructions=generate_cleaning_instructions(booking),
        )
        cleaners.record_assignment(cleaner)

        email_queued = bool(cleaner.email)
        if email_queued:
            background_tasks.add_task(self.notify_cleaner, booking.id)

        logger.info(f"✅ Auto-assigned booking {booking_id} to {cleaner.name}")
        return {
            "success": True,
            "booking": serialize_booking(booking),
            "cleaner_id": cleaner.id,
            "cleaner_name": cleaner.name,
            "email_queued": email_queued,
        }

    async def notify_cleaner(self, booking_id: int) -> bool:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking or not booking.cleaner or not booking.cleaner.email:
            return False

        sent = await deliver_in_background(
            send_cleaner_assignment_email,
            to=booking.cleaner.email,
            cleaner_name=booking.cleaner.name,
            customer_name=booking.name,
            address=booking.address or "",
            scheduled_date=booking.scheduled_date,
            time_slot=format_time_slot(booking.scheduled_time or ""),
            home_summary=home_summary(booking),
            instructions=booking.cleaning_instructions,
        )
        if sent:
            self.repo.update(self.db, booking, cleaner_notified_at=datetime.utcnow())
        return sent

    def cancel_booking(self, booking_id: int, now: Optional[datetime] = None) -> dict:
        """Cancel and report the fee owed under the 48h/24h notice policy"""
        booking = self.get_booking(booking_id)
        if booking.status == "cancelled":
            raise HTTPException(status_code=409, detail="Booking is already cancelled")

        job_price = booking.first_clean_price or 0
        if booking.scheduled_date:
            scheduled_at = datetime.combine(booking.scheduled_date, parse_slot_time(booking.scheduled_time))
            policy = calculate_cancellation_fee(scheduled_at, job_price, now)
        else:
            policy = {"fee": 0, "reason": "Free cancellation (not yet scheduled)", "can_cancel": True}

        booking = self.repo.update(
            self.db,
            booking,
            status="cancelled",
            cancellation_fee=policy["fee"],
            cancelled_at=now or datetime.utcnow(),
        )
        logger.info(f"🚫 Booking {booking_id} cancelled (fee ${policy['fee']})")
        return {"booking": serialize_booking(booking), "fee": policy["fee"], "reason": policy["reason"]}

    async def charge_remaining_balance(self, booking_id: int) -> dict:
        """Charge the saved card for the balance left after the deposit"""
        booking = self.get_booking(booking_id)
        if booking.payment_status not in CHARGEABLE_PAYMENT_STATUSES or not (booking.remaining_amount or 0) > 0:
            raise HTTPException(status_code=409, detail="No remaining balance to charge")
        if not booking.stripe_customer_id:
            raise HTTPException(status_code=409, detail="No Stripe customer on file")

        try:
            intent = await charge_saved_card(
                booking.stripe_customer_id,
                booking.remaining_amount,
                description=f"Willow & Water - Remaining balance for cleaning on {booking.scheduled_date or date.today()}",
                metadata={"type": "remaining_balance", "public_id": booking.public_id},
            )
        except StripeError as e:
            self.repo.update(self.db, booking, payment_status="charge_failed", charge_error=str(e))
            logger.error(f"❌ Remaining balance charge failed for booking {booking_id}: {e}")
            raise HTTPException(status_code=502, detail=f"Charge failed: {e}") from e

        updates = {"stripe_payment_intent_id": intent.get("id"), "final_charge_date": datetime.utcnow()}
        if intent.get("status") == "succeeded":
            updates.update(payment_status="fully_paid", remaining_amount=0, charge_error=None)
        booking = self.repo.update(self.db, booking, **updates)
        return {
            "booking": serialize_booking(booking),
            "payment_intent_id": intent.get("id"),
            "status": intent.get("status", "unknown"),
        }

    def export_bookings_csv(self, time_filter: str = "all", search: Optional[str] = None) -> StreamingResponse:
        bookings = self.repo.list_admin_bookings(self.db, time_filter, search)
        headers = [
            "Date",
            "Time",
            "Customer",
            "Email",
            "Phone",
            "Address",
            "Service Area",
            "Frequency",
            "First Clean",
            "Recurring",
            "Status",
            "Payment Status",
            "Cleaner",
        ]
        rows = [
            [
                b.scheduled_date.isoformat() if b.scheduled_date else "",
                b.scheduled_time,
                b.name,
                b.email,
                b.phone,
                b.address,
                b.service_area,
                format_frequency(b.frequency),
                b.first_clean_price,
                b.recurring_price,
                b.status,
                b.payment_status,
                b.cleaner_name or "Unassigned",
            ]
            for b in bookings
        ]
        return csv_response(f"bookings-{date.today().isoformat()}.csv", headers, rows)

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def list_leads(self, search: Optional[str] = None) -> list[dict]:
        return [serialize_booking(b) for b in self.repo.list_leads(self.db, search)]

    def get_lead(self, lead_id: int) -> Booking:
        booking = self.get_booking(lead_id)
        if booking.status != "lead":
            raise HTTPException(status_code=404, detail="Lead not found")
        return booking

    def convert_lead(self, lead_id: int) -> Booking:
        lead = self.get_lead(lead_id)
        logger.info(f"✅ Lead {lead_id} converted to booking")
        return self.repo.update(self.db, lead, status="confirmed")

    def delete_lead(self, lead_id: int) -> dict:
        lead = self.get_lead(lead_id)
        self.repo.delete(self.db, lead)
        logger.info(f"🗑️ Lead {lead_id} deleted")
        return {"message": "Lead deleted"}

    def export_leads_csv(self, search: Optional[str] = None) -> StreamingResponse:
        leads = self.repo.list_leads(self.db, search)
        headers = [
            "Created",
            "Name",
            "Email",
            "Phone",
            "Address",
            "Sq Ft",
            "Bedrooms",
            "Bathrooms",
            "Frequency",
            "First Clean",
            "Recurring",
        ]
        rows = [
            [
                lead.created_at.strftime("%Y-%m-%d %H:%M") if lead.created_at else "",
                lead.name,
                lead.email,
                lead.phone,
                lead.address,
                lead.sqft,
                lead.bedrooms,
                f"{lead.bathrooms:g}",
                format_frequency(lead.frequency),
                lead.first_clean_price,
                lead.recurring_price,
            ]
            for lead in leads
        ]
        return csv_response(f"leads-{date.today().isoformat()}.csv", headers, rows)

"""
Stripe Webhook Routes
Deposit confirmation and remaining-balance charge results
"""

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import STRIPE_WEBHOOK_SECRET
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..domain.pricing.engine import format_frequency, format_price, format_time_slot
from ..email_service import deliver_in_background, send_booking_confirmation_email
from ..models import Booking
from ..rate_limiter import create_rate_limiter
from ..webhook_security import verify_stripe_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["stripe-webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_stripe",
    use_ip=False,  # Global limit for all webhooks
)


@router.post("/stripe")
async def handle_stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_webhook),
):
    """
    Handle Stripe webhook events
    Supported events: checkout.session.completed, payment_intent.succeeded,
    payment_intent.payment_failed
    """
    if not STRIPE_WEBHOOK_SECRET:
        logger.warning("⚠️ STRIPE_WEBHOOK_SECRET not configured - signature verification skipped")
        body = await request.body()
    else:
        _valid, body = await verify_stripe_webhook(request, STRIPE_WEBHOOK_SECRET, raise_on_failure=True)

    try:
        event = json.loads(body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = event.get("type")
    data = (event.get("data") or {}).get("object") or {}
    logger.info(f"📥 Received Stripe webhook: {event_type}")

    if event_type == "checkout.session.completed":
        booking = handle_checkout_completed(data, db)
        if booking:
            queue_confirmation_email(booking, background_tasks)
    elif event_type == "payment_intent.succeeded":
        handle_payment_succeeded(data, db)
    elif event_type == "payment_intent.payment_failed":
        handle_payment_failed(data, db)
    else:
        logger.debug(f"Unhandled Stripe event type: {event_type}")

    return {"received": True}


def _booking_from_metadata(metadata: dict, db: Session) -> Optional[Booking]:
    public_id = metadata.get("public_id")
    if public_id:
        return BookingRepository.get_by_public_id(db, public_id)
    booking_id = metadata.get("booking_id")
    if booking_id and str(booking_id).isdigit():
        return BookingRepository.get_by_id(db, int(booking_id))
    return None


def handle_checkout_completed(session: dict, db: Session) -> Optional[Booking]:
    """Deposit paid: the booking named in metadata (else the latest open one for the e-mail) is confirmed"""
    booking = _booking_from_metadata(session.get("metadata") or {}, db)
    if not booking and session.get("id"):
        booking = BookingRepository.get_by_checkout_session(db, session["id"])
    if not booking:
        email = session.get("customer_email") or (session.get("customer_details") or {}).get("email")
        if email:
            booking = BookingRepository.get_latest_open_for_email(db, email)

    if not booking:
        logger.warning(f"⚠️ No booking found for checkout session {session.get('id')}")
        return None

    if booking.payment_status in ("deposit_paid", "fully_paid"):
        logger.info(f"ℹ️ Booking {booking.public_id} deposit already recorded")
        return None

    updates = {
        "status": "confirmed",
        "payment_status": "deposit_paid",
        "deposit_paid_at": datetime.utcnow(),
        "stripe_checkout_session_id": session.get("id") or booking.stripe_checkout_session_id,
        "stripe_customer_id": session.get("customer") or booking.stripe_customer_id,
        "stripe_payment_intent_id": session.get("payment_intent") or booking.stripe_payment_intent_id,
    }
    if session.get("amount_total"):
        updates["deposit_amount"] = session["amount_total"] / 100
    booking = BookingRepository.update(db, booking, **updates)
    logger.info(f"✅ Deposit received for booking {booking.public_id}")
    return booking


def handle_payment_succeeded(intent: dict, db: Session) -> Optional[Booking]:
    metadata = intent.get("metadata") or {}
    if metadata.get("type") != "remaining_balance":
        return None

    booking = _booking_from_metadata(metadata, db)
    if not booking:
        logger.warning(f"⚠️ No booking found for payment intent {intent.get('id')}")
        return None

    booking = BookingRepository.update(
        db,
        booking,
        payment_status="fully_paid",
        remaining_amount=0,
        final_charge_date=datetime.utcnow(),
        stripe_payment_intent_id=intent.get("id"),
        charge_error=None,
    )
    logger.info(f"✅ Remaining balance paid for booking {booking.public_id}")
    return booking


def handle_payment_failed(intent: dict, db: Session) -> Optional[Booking]:
    """Only remaining-balance charges are tracked; Checkout handles deposit retries itself"""
    metadata = intent.get("metadata") or {}
    if metadata.get("type") != "remaining_balance":
        return None

    booking = _booking_from_metadata(metadata, db)
    if not booking:
        logger.warning(f"⚠️ No booking found for failed payment intent {intent.get('id')}")
        return None

    error = (intent.get("last_payment_error") or {}).get("message") or "Payment failed"
    booking = BookingRepository.update(
        db,
        booking,
        payment_status="charge_failed",
        charge_error=error,
        stripe_payment_intent_id=intent.get("id"),
    )
    logger.error(f"❌ Remaining balance charge failed for booking {booking.public_id}: {error}")
    return booking


def queue_confirmation_email(booking: Booking, background_tasks: BackgroundTasks) -> None:
    background_tasks.add_task(
        deliver_in_background,
        send_booking_confirmation_email,
        to=booking.email,
        customer_name=booking.name,
        scheduled_date=booking.scheduled_date,
        time_slot=format_time_slot(booking.scheduled_time or "") or "To be scheduled",
        frequency_label=format_frequency(booking.frequency),
        deposit_amount=format_price(booking.deposit_amount),
        remaining_amount=format_price(booking.remaining_amount),
    )

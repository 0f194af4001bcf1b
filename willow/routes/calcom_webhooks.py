"""
Cal.com Webhook Routes
Keeps booking scheduling fields in sync with the Cal.com calendar
"""

import json
import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import CALCOM_WEBHOOK_SECRET
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..models import Booking
from ..rate_limiter import create_rate_limiter
from ..webhook_security import verify_calcom_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["calcom-webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_calcom",
    use_ip=False,  # Global limit for all webhooks
)

BUSINESS_TIMEZONE = "America/Chicago"


@router.post("/calcom")
async def handle_calcom_webhook(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_webhook)
):
    """
    Handle Cal.com webhook events
    Supported events: BOOKING_CREATED, BOOKING_RESCHEDULED, BOOKING_CANCELLED
    """
    if not CALCOM_WEBHOOK_SECRET:
        logger.warning("⚠️ CALCOM_WEBHOOK_SECRET not configured - signature verification skipped")
        body = await request.body()
    else:
        _valid, body = await verify_calcom_webhook(request, CALCOM_WEBHOOK_SECRET, raise_on_failure=True)

    try:
        event = json.loads(body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    trigger = event.get("triggerEvent")
    payload = event.get("payload") or {}
    logger.info(f"📥 Received Cal.com webhook: {trigger}")

    if trigger in ("BOOKING_CREATED", "BOOKING_RESCHEDULED"):
        booking = handle_booking_scheduled(payload, db)
    elif trigger == "BOOKING_CANCELLED":
        booking = handle_booking_cancelled(payload, db)
    else:
        logger.debug(f"Unhandled Cal.com event type: {trigger}")
        return {"status": "ignored"}

    return {"status": "ok", "matched": booking is not None}


def parse_start_time(start_time: str, time_zone: Optional[str] = None) -> datetime:
    """Cal.com start time (ISO 8601, UTC) as a naive local datetime"""
    start = datetime.fromisoformat(start_time.replace("Z", "+00:00"))
    try:
        zone = ZoneInfo(time_zone or BUSINESS_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo(BUSINESS_TIMEZONE)
    if start.tzinfo is not None:
        start = start.astimezone(zone)
    return start.replace(tzinfo=None)


def format_clock_time(value: datetime) -> str:
    """e.g. '9:00 AM'"""
    return value.strftime("%I:%M %p").lstrip("0")


def _attendee(payload: dict) -> dict:
    attendees = payload.get("attendees") or []
    return attendees[0] if attendees else {}


def _find_booking(payload: dict, db: Session) -> Optional[Booking]:
    for uid in (payload.get("rescheduleUid"), payload.get("uid")):
        if uid:
            booking = BookingRepository.get_latest_for_cal_booking(db, uid)
            if booking:
                return booking
    email = _attendee(payload).get("email")
    if email:
        return BookingRepository.get_latest_open_for_email(db, email)
    return None


def handle_booking_scheduled(payload: dict, db: Session) -> Optional[Booking]:
    booking = _find_booking(payload, db)
    if not booking:
        logger.warning(f"⚠️ No booking found for Cal.com booking {payload.get('uid')}")
        return None

    start_time = payload.get("startTime")
    if not start_time:
        logger.error("❌ Missing startTime in Cal.com payload")
        return None

    start = parse_start_time(start_time, _attendee(payload).get("timeZone"))
    uid = payload.get("uid")
    booking = BookingRepository.update(
        db,
        booking,
        scheduled_date=start.date(),
        scheduled_time=format_clock_time(start),
        cal_booking_id=uid,
        cal_booking_url=f"https://cal.com/booking/{uid}" if uid else booking.cal_booking_url,
    )
    logger.info(f"📅 Booking {booking.public_id} scheduled via Cal.com for {start:%Y-%m-%d %H:%M}")
    return booking


def handle_booking_cancelled(payload: dict, db: Session) -> Optional[Booking]:
    """Calendar slot released; the booking stays in the pipeline without a date"""
    uid = payload.get("uid")
    booking = BookingRepository.get_latest_for_cal_booking(db, uid) if uid else None
    if not booking:
        logger.warning(f"⚠️ No booking found for cancelled Cal.com booking {uid}")
        return None

    booking = BookingRepository.update(
        db,
        booking,
        scheduled_date=None,
        scheduled_time=None,
        cal_booking_id=None,
        cal_booking_url=None,
    )
    logger.info(f"🗓️ Cal.com booking {uid} cancelled; scheduling cleared for {booking.public_id}")
    return booking

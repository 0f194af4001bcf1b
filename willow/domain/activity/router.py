"""Activity feed route"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from ...shared.time_ranges import range_start
from ..bookings.repository import BookingRepository
from ..cleaners.repository import CleanerRepository
from .feed import ACTIVITY_TYPES, build_activity_feed, group_by_day

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/activity", tags=["Activity"], dependencies=[Depends(get_current_admin)])

ACTIVITY_RANGES = ("1d", "7d", "30d", "all")


def _booking_row(b) -> dict:
    return {
        "id": b.id,
        "name": b.name,
        "email": b.email,
        "address": b.address,
        "sqft": b.sqft,
        "frequency": b.frequency,
        "status": b.status,
        "first_clean_price": b.first_clean_price,
        "deposit_amount": b.deposit_amount,
        "scheduled_date": b.scheduled_date,
        "cleaner_id": b.cleaner_id,
        "cleaner_name": b.cleaner_name,
        "cleaner_notified_at": b.cleaner_notified_at,
        "deposit_paid_at": b.deposit_paid_at,
        "cancelled_at": b.cancelled_at,
        "reminder_sent_at": b.reminder_sent_at,
        "created_at": b.created_at,
        "updated_at": b.updated_at,
    }


def _cleaner_row(c) -> dict:
    return {"id": c.id, "name": c.name, "email": c.email, "created_at": c.created_at}


@router.get("")
async def activity_feed(
    response: Response,
    range: str = Query("7d"),
    type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Recent business events grouped by day"""
    if range not in ACTIVITY_RANGES:
        raise HTTPException(status_code=400, detail=f"range must be one of: {', '.join(ACTIVITY_RANGES)}")
    if type and type != "all" and type not in ACTIVITY_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown activity type: {type}")

    start = range_start(range)

    def load():
        bookings = [_booking_row(b) for b in BookingRepository.list_created_since(db, start)]
        cleaners = [_cleaner_row(c) for c in CleanerRepository.list_created_since(db, start)]
        events = build_activity_feed(bookings, cleaners, start, type, search)
        return {"total": len(events), "groups": group_by_day(events)}

    return fetch_with_fallback(f"activity:{range}:{type or 'all'}:{search or ''}", load, db=db, response=response)

"""Admin booking and lead routes"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from .schemas import (
    AssignCleanerRequest,
    AutoAssignResponse,
    BookingResponse,
    BookingStatusUpdate,
    CancelBookingResponse,
    ChargeRemainingResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bookings", tags=["Bookings"], dependencies=[Depends(get_current_admin)])
leads_router = APIRouter(prefix="/admin/leads", tags=["Leads"], dependencies=[Depends(get_current_admin)])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================
# Bookings
# ============================================


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    response: Response,
    filter: str = Query("upcoming"),
    search: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Confirmed, completed and in-payment bookings by scheduled date"""
    return fetch_with_fallback(
        f"bookings:{filter}:{search or ''}",
        lambda: service.list_bookings(filter, search),
        db=service.db,
        response=response,
    )


@router.get("/export")
async def export_bookings(
    filter: str = Query("all"),
    search: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    return service.export_bookings_csv(filter, search)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return service.get_booking(booking_id)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
):
    return service.update_status(booking_id, data.status)


@router.post("/{booking_id}/assign", response_model=BookingResponse)
async def assign_cleaner(
    booking_id: int,
    data: AssignCleanerRequest,
    service: BookingService = Depends(get_booking_service),
):
    return service.assign_cleaner(booking_id, data.cleaner_id)


@router.post("/{booking_id}/auto-assign", response_model=AutoAssignResponse)
async def auto_assign_cleaner(
    booking_id: int,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
):
    """Give the booking to the next available cleaner and e-mail them the job"""
    return service.auto_assign(booking_id, background_tasks)


@router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return service.cancel_booking(booking_id)


@router.post("/{booking_id}/charge-remaining", response_model=ChargeRemainingResponse)
async def charge_remaining(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return await service.charge_remaining_balance(booking_id)


# ============================================
# Leads
# ============================================


@leads_router.get("", response_model=list[BookingResponse])
async def list_leads(
    response: Response,
    search: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Funnel leads, newest first"""
    return fetch_with_fallback(
        f"leads:{search or ''}",
        lambda: service.list_leads(search),
        db=service.db,
        response=response,
    )


@leads_router.get("/export")
async def export_leads(
    search: Optional[str] = Query(None), service: BookingService = Depends(get_booking_service)
):
    return service.export_leads_csv(search)


@leads_router.post("/{lead_id}/convert", response_model=BookingResponse)
async def convert_lead(lead_id: int, service: BookingService = Depends(get_booking_service)):
    return service.convert_lead(lead_id)


@leads_router.delete("/{lead_id}")
async def delete_lead(lead_id: int, service: BookingService = Depends(get_booking_service)):
    return service.delete_lead(lead_id)

"""Public booking funnel routes (no authentication, rate limited)"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import (
    CheckoutResponse,
    FunnelBookingResponse,
    LeadCreate,
    LeadResponse,
    QuoteRequest,
    QuoteResponse,
    ScheduleRequest,
)
from .service import FunnelService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking", tags=["Booking"])

rate_limit_quote = create_rate_limiter(limit=60, window_seconds=60, key_prefix="booking_quote")
rate_limit_leads = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="booking_leads")
rate_limit_checkout = create_rate_limiter(limit=20, window_seconds=3600, key_prefix="booking_checkout")


def get_funnel_service(db: Session = Depends(get_db)) -> FunnelService:
    """Dependency injection for FunnelService"""
    return FunnelService(db)


@router.post("/quote", response_model=QuoteResponse)
async def get_quote(
    data: QuoteRequest,
    service: FunnelService = Depends(get_funnel_service),
    _: None = Depends(rate_limit_quote),
):
    """Price a home; nothing is stored"""
    return service.quote(data)


@router.post("/leads", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCreate,
    background_tasks: BackgroundTasks,
    service: FunnelService = Depends(get_funnel_service),
    _: None = Depends(rate_limit_leads),
):
    return service.create_lead(data, background_tasks)


@router.get("/{public_id}", response_model=FunnelBookingResponse)
async def get_booking(public_id: str, service: FunnelService = Depends(get_funnel_service)):
    return service.get_booking(public_id)


@router.post("/{public_id}/schedule", response_model=FunnelBookingResponse)
async def schedule_booking(
    public_id: str,
    data: ScheduleRequest,
    service: FunnelService = Depends(get_funnel_service),
    _: None = Depends(rate_limit_checkout),
):
    return service.schedule(public_id, data)


@router.post("/{public_id}/checkout", response_model=CheckoutResponse)
async def create_checkout(
    public_id: str,
    service: FunnelService = Depends(get_funnel_service),
    _: None = Depends(rate_limit_checkout),
):
    return await service.create_checkout(public_id)

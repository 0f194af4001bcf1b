"""Admin pricing settings routes"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_admin, require_owner
from ...database import get_db
from .engine import validate_price_profitability
from .schemas import (
    PriceValidationRequest,
    PriceValidationResponse,
    PricingSettingsResponse,
    PricingSettingsUpdate,
)
from .settings import get_raw_settings, load_cost_settings, save_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/pricing", tags=["Pricing"], dependencies=[Depends(get_current_admin)])

DERIVED_KEYS = (
    "weekly_total_per_cleaner",
    "per_job_supplies_gas",
    "per_job_equipment",
    "monthly_overhead_total",
    "frequency_discounts",
)


def _settings_response(db: Session, force_refresh: bool = False) -> dict:
    effective = load_cost_settings(db, force_refresh=force_refresh)
    return {
        "settings": get_raw_settings(db),
        "derived": {key: effective[key] for key in DERIVED_KEYS},
    }


@router.get("/settings", response_model=PricingSettingsResponse)
async def get_pricing_settings(db: Session = Depends(get_db)):
    """Stored settings merged over defaults, with the per-job costs they imply"""
    return _settings_response(db)


@router.put("/settings", response_model=PricingSettingsResponse, dependencies=[Depends(require_owner)])
async def update_pricing_settings(data: PricingSettingsUpdate, db: Session = Depends(get_db)):
    save_settings(db, data.settings)
    return _settings_response(db, force_refresh=True)


@router.post("/validate", response_model=PriceValidationResponse)
async def validate_price(data: PriceValidationRequest, db: Session = Depends(get_db)):
    """Check a hand-picked price against the cost of the job"""
    return validate_price_profitability(
        data.price,
        data.sqft,
        data.bedrooms,
        data.bathrooms,
        is_first_clean=data.is_first_clean,
        settings=load_cost_settings(db),
    )

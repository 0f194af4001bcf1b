"""Pricing settings schemas"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from .engine import DEFAULT_COST_SETTINGS

PERCENT_KEYS = {
    "payroll_burden_percent",
    "target_margin_percent",
    "weekly_discount",
    "biweekly_discount",
    "monthly_discount",
}


class PricingSettingsUpdate(BaseModel):
    """Partial update; only known setting keys are accepted"""

    settings: dict[str, Any]

    @field_validator("settings")
    @classmethod
    def validate_settings(cls, v):
        unknown = sorted(set(v) - set(DEFAULT_COST_SETTINGS))
        if unknown:
            raise ValueError(f"Unknown pricing settings: {', '.join(unknown)}")

        cleaned = {}
        for key, value in v.items():
            try:
                number = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{key} must be a number") from e
            if number < 0:
                raise ValueError(f"{key} cannot be negative")
            if key in PERCENT_KEYS and number >= 1:
                raise ValueError(f"{key} must be a fraction below 1 (e.g. 0.45)")
            cleaned[key] = number
        return cleaned


class PricingSettingsResponse(BaseModel):
    settings: dict[str, Any]
    derived: dict[str, Any]


class PriceValidationRequest(BaseModel):
    price: float = Field(..., gt=0)
    sqft: int = Field(..., gt=0, le=20000)
    bedrooms: int = Field(..., ge=0, le=20)
    bathrooms: float = Field(..., ge=0, le=20)
    is_first_clean: bool = False


class PriceValidationResponse(BaseModel):
    is_valid: bool
    is_profitable: bool
    cost: float
    profit: float
    margin: float
    minimum_price: float
    recommended_price: float

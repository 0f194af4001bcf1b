"""
Profit-based pricing for Willow & Water.

Every quote is derived from the true cost of the job:
- Labor (loaded hourly rate x hours x cleaners)
- Supplies & gas (weekly allocation per cleaner spread over weekly jobs)
- Equipment (annual cost amortized per job)
- Overhead (monthly fixed costs / monthly job volume)

    price = total cost / (1 - target margin)

All functions are pure; `settings` is the dict produced by
`build_settings()` (see settings.py for the database-backed loader).
"""

import math
from datetime import datetime
from typing import Optional

DEPOSIT_PERCENTAGE = 0.20
MIN_ACCEPTABLE_MARGIN = 0.40
RECOMMENDED_MARGIN = 0.45
DEFAULT_JOBS_PER_MONTH = 36
LATE_CANCELLATION_FEE = 25

DEFAULT_COST_SETTINGS = {
    # Labor
    "base_hourly_rate": 26.00,
    "payroll_burden_percent": 0.154,
    "loaded_hourly_rate": 30.00,
    "solo_cleaner_max_sqft": 1999,
    # Weekly costs per cleaner
    "weekly_supplies_cost": 24.50,
    "weekly_gas_cost": 50.00,
    "weekly_stipend_per_cleaner": 0,
    "expected_jobs_per_week": 9,
    # Equipment amortization
    "annual_equipment_cost": 750,
    "expected_jobs_per_year": 450,
    # Monthly overhead
    "monthly_marketing": 250,
    "monthly_admin": 250,
    "monthly_phone": 20,
    "monthly_website": 5,
    "monthly_insurance": 75,
    "monthly_overhead_total": 600,
    # Pricing
    "target_margin_percent": 0.45,
    "minimum_price": 115,
    "first_clean_hours_multiplier": 1.5,
    "organic_cleaning_addon": 20,
    # Duration
    "base_minutes_per_500_sqft": 30,
    "extra_bathroom_minutes": 15,
    "extra_bedroom_minutes": 10,
    "included_bathrooms": 2,
    "included_bedrooms": 3,
    # Frequency discounts
    "weekly_discount": 0.15,
    "biweekly_discount": 0.10,
    "monthly_discount": 0.05,
}

FREQUENCY_LABELS = {
    "weekly": "Weekly",
    "biweekly": "Bi-Weekly",
    "monthly": "Monthly",
    "onetime": "One-Time",
}

TIME_SLOTS = {
    "morning": "Morning (9am - 12pm)",
    "afternoon": "Afternoon (1pm - 5pm)",
}

TIME_SLOTS_SHORT = {
    "morning": "9am - 12pm",
    "afternoon": "1pm - 5pm",
}

# Visits per month used for recurring revenue estimates
VISITS_PER_MONTH = {"weekly": 4, "biweekly": 2, "monthly": 1}


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def _setting(raw: dict, key: str):
    # Zero or missing values fall back to the default, except where zero is meaningful
    value = raw.get(key)
    return value if value else DEFAULT_COST_SETTINGS[key]


def build_settings(raw: Optional[dict] = None) -> dict:
    """Merge raw key/value overrides with defaults and add the derived per-job costs."""
    raw = {**DEFAULT_COST_SETTINGS, **(raw or {})}

    weekly_supplies = _setting(raw, "weekly_supplies_cost")
    weekly_gas = _setting(raw, "weekly_gas_cost")
    weekly_stipend = raw.get("weekly_stipend_per_cleaner") or 0
    weekly_total = weekly_supplies + weekly_gas + weekly_stipend
    jobs_per_week = _setting(raw, "expected_jobs_per_week")
    jobs_per_year = _setting(raw, "expected_jobs_per_year")
    annual_equipment = _setting(raw, "annual_equipment_cost")

    overhead_parts = sum(
        _setting(raw, key)
        for key in (
            "monthly_marketing",
            "monthly_admin",
            "monthly_phone",
            "monthly_website",
            "monthly_insurance",
        )
    )

    return {
        "base_hourly_rate": _setting(raw, "base_hourly_rate"),
        "payroll_burden_percent": _setting(raw, "payroll_burden_percent"),
        "loaded_hourly_rate": _setting(raw, "loaded_hourly_rate"),
        "solo_cleaner_max_sqft": _setting(raw, "solo_cleaner_max_sqft"),
        "weekly_supplies_cost": weekly_supplies,
        "weekly_gas_cost": weekly_gas,
        "weekly_stipend_per_cleaner": weekly_stipend,
        "weekly_total_per_cleaner": weekly_total,
        "expected_jobs_per_week": jobs_per_week,
        "per_job_supplies_gas": round2(weekly_total / jobs_per_week),
        "annual_equipment_cost": annual_equipment,
        "expected_jobs_per_year": jobs_per_year,
        "per_job_equipment": round2(annual_equipment / jobs_per_year),
        "monthly_marketing": _setting(raw, "monthly_marketing"),
        "monthly_admin": _setting(raw, "monthly_admin"),
        "monthly_phone": _setting(raw, "monthly_phone"),
        "monthly_website": _setting(raw, "monthly_website"),
        "monthly_insurance": _setting(raw, "monthly_insurance"),
        "monthly_overhead_total": raw.get("monthly_overhead_total") or overhead_parts,
        "target_margin_percent": _setting(raw, "target_margin_percent"),
        "minimum_price": _setting(raw, "minimum_price"),
        "first_clean_hours_multiplier": _setting(raw, "first_clean_hours_multiplier"),
        "organic_cleaning_addon": _setting(raw, "organic_cleaning_addon"),
        "base_minutes_per_500_sqft": _setting(raw, "base_minutes_per_500_sqft"),
        "extra_bathroom_minutes": _setting(raw, "extra_bathroom_minutes"),
        "extra_bedroom_minutes": _setting(raw, "extra_bedroom_minutes"),
        "included_bathrooms": _setting(raw, "included_bathrooms"),
        "included_bedrooms": _setting(raw, "included_bedrooms"),
        "frequency_discounts": {
            "weekly": _setting(raw, "weekly_discount"),
            "biweekly": _setting(raw, "biweekly_discount"),
            "monthly": _setting(raw, "monthly_discount"),
            "onetime": 0,
        },
    }


DEFAULT_SETTINGS = build_settings()


# ============================================================================
# DURATION & STAFFING
# ============================================================================


def calculate_duration_hours(
    sqft: int,
    bedrooms: int,
    bathrooms: float,
    is_first_clean: bool = False,
    settings: Optional[dict] = None,
) -> float:
    """Cleaning duration in hours, rounded up to the next quarter hour."""
    s = settings or DEFAULT_SETTINGS

    minutes = math.ceil(sqft / 500) * s["base_minutes_per_500_sqft"]
    minutes += max(0, bathrooms - s["included_bathrooms"]) * s["extra_bathroom_minutes"]
    minutes += max(0, bedrooms - s["included_bedrooms"]) * s["extra_bedroom_minutes"]

    if is_first_clean:
        minutes = math.ceil(minutes * s["first_clean_hours_multiplier"])

    minutes = math.ceil(minutes / 15) * 15
    return minutes / 60


def get_cleaner_count(sqft: int, settings: Optional[dict] = None) -> int:
    s = settings or DEFAULT_SETTINGS
    return 2 if sqft > s["solo_cleaner_max_sqft"] else 1


# ============================================================================
# COST & PRICE
# ============================================================================


def calculate_job_cost(
    sqft: int,
    bedrooms: int,
    bathrooms: float,
    is_first_clean: bool = False,
    overhead_jobs_per_month: int = DEFAULT_JOBS_PER_MONTH,
    settings: Optional[dict] = None,
) -> dict:
    """Full cost breakdown for a single job."""
    s = settings or DEFAULT_SETTINGS
    cleaner_count = get_cleaner_count(sqft, s)
    duration_hours = calculate_duration_hours(sqft, bedrooms, bathrooms, is_first_clean, s)

    labor_cost = duration_hours * s["loaded_hourly_rate"] * cleaner_count
    supplies_gas_cost = s["per_job_supplies_gas"] * cleaner_count
    equipment_cost = s["per_job_equipment"] * cleaner_count
    overhead_cost = s["monthly_overhead_total"] / max(overhead_jobs_per_month, 1)
    total_cost = labor_cost + supplies_gas_cost + equipment_cost + overhead_cost

    return {
        "duration_hours": duration_hours,
        "cleaner_count": cleaner_count,
        "labor_cost": round2(labor_cost),
        "supplies_gas_cost": round2(supplies_gas_cost),
        "equipment_cost": round2(equipment_cost),
        "overhead_cost": round2(overhead_cost),
        "total_cost": round2(total_cost),
    }


def calculate_price_from_cost(
    total_cost: float, target_margin: Optional[float] = None, settings: Optional[dict] = None
) -> int:
    s = settings or DEFAULT_SETTINGS
    margin = target_margin if target_margin is not None else s["target_margin_percent"]
    return math.ceil(total_cost / (1 - margin))


def calculate_profitable_pricing(
    sqft: int,
    bedrooms: int,
    bathrooms: float,
    frequency: str = "onetime",
    overhead_jobs_per_month: int = DEFAULT_JOBS_PER_MONTH,
    target_margin: Optional[float] = None,
    settings: Optional[dict] = None,
) -> dict:
    """First-clean and recurring prices with their cost breakdowns and realized margins."""
    s = settings or DEFAULT_SETTINGS
    margin = target_margin if target_margin is not None else s["target_margin_percent"]

    first_cost = calculate_job_cost(
        sqft, bedrooms, bathrooms, True, overhead_jobs_per_month, s
    )
    recurring_cost = calculate_job_cost(
        sqft, bedrooms, bathrooms, False, overhead_jobs_per_month, s
    )

    first_clean_price = calculate_price_from_cost(first_cost["total_cost"], margin, s)
    recurring_base_price = calculate_price_from_cost(recurring_cost["total_cost"], margin, s)

    frequency_discount = s["frequency_discounts"].get(frequency, 0)
    recurring_price = math.ceil(recurring_base_price * (1 - frequency_discount))

    # Minimum price floor
    first_clean_price = max(first_clean_price, s["minimum_price"])
    recurring_price = max(recurring_price, s["minimum_price"])

    first_profit = first_clean_price - first_cost["total_cost"]
    recurring_profit = recurring_price - recurring_cost["total_cost"]

    return {
        "first_clean": {
            "price": first_clean_price,
            **first_cost,
            "profit": round2(first_profit),
            "margin": round2(first_profit / first_clean_price * 100),
        },
        "recurring": {
            "price": recurring_price,
            "base_price": recurring_base_price,
            "frequency_discount": round2(frequency_discount * 100),
            **recurring_cost,
            "profit": round2(recurring_profit),
            "margin": round2(recurring_profit / recurring_price * 100),
        },
        "frequency": frequency,
        "cleaner_count": first_cost["cleaner_count"],
        "target_margin": round2(margin * 100),
        "minimum_price": s["minimum_price"],
        "first_clean_price": first_clean_price,
        "recurring_price": recurring_price,
        "first_clean_duration": round_half_up(first_cost["duration_hours"] * 60),
        "recurring_duration": round_half_up(recurring_cost["duration_hours"] * 60),
    }


def calculate_cleaning_price(
    sqft: int,
    bedrooms: int,
    bathrooms: float,
    frequency: str,
    addons: Optional[list] = None,
    credit_balance: float = 0,
    referral_discount: float = 0,
    settings: Optional[dict] = None,
) -> dict:
    """
    Customer-facing quote: prices plus add-ons, discounts and the deposit split.

    Credit is capped at the first-clean total and the final price never drops
    below the minimum price.
    """
    s = settings or DEFAULT_SETTINGS
    addons = addons or []
    pricing = calculate_profitable_pricing(sqft, bedrooms, bathrooms, frequency, settings=s)

    addons_price = sum(addon.get("price") or 0 for addon in addons)
    first_clean_total = pricing["first_clean_price"] + addons_price

    total_discounts = referral_discount + min(credit_balance, first_clean_total)
    final_first_clean_price = max(s["minimum_price"], first_clean_total - total_discounts)

    deposit_amount = round_half_up(final_first_clean_price * DEPOSIT_PERCENTAGE)
    remaining_amount = final_first_clean_price - deposit_amount

    return {
        "base_price": pricing["recurring"]["base_price"],
        "first_clean_price": pricing["first_clean_price"],
        "recurring_price": pricing["recurring_price"],
        "addons_price": addons_price,
        "addons": addons,
        "first_clean_total": first_clean_total,
        "referral_discount": referral_discount,
        "credit_applied": min(credit_balance, first_clean_total - referral_discount),
        "total_discounts": total_discounts,
        "final_first_clean_price": final_first_clean_price,
        "deposit_amount": deposit_amount,
        "remaining_amount": remaining_amount,
        "first_clean_duration": pricing["first_clean_duration"],
        "recurring_duration": pricing["recurring_duration"],
        "frequency": frequency,
        "frequency_discount": pricing["recurring"]["frequency_discount"] / 100,
        "frequency_discount_percent": pricing["recurring"]["frequency_discount"],
        "savings_per_visit": pricing["first_clean_price"] - pricing["recurring_price"],
        "cost_breakdown": {
            "first_clean": pricing["first_clean"],
            "recurring": pricing["recurring"],
            "cleaner_count": pricing["cleaner_count"],
            "target_margin": pricing["target_margin"],
        },
    }


def calculate_deposit(price: float) -> tuple:
    """Split a first-clean price into (deposit, remaining)."""
    deposit = round_half_up(price * DEPOSIT_PERCENTAGE)
    return deposit, price - deposit


def calculate_base_price(sqft: int, bedrooms: int, bathrooms: float) -> float:
    """Flat-rate price from the original rate card ($40 per 500 sqft plus extra rooms)."""
    price = math.ceil(sqft / 500) * 40
    price += max(0, bathrooms - 2) * 15
    price += max(0, bedrooms - 3) * 10
    return price


# ============================================================================
# POLICIES & ADMIN HELPERS
# ============================================================================


def calculate_cancellation_fee(
    scheduled_at: datetime, job_price: float, now: Optional[datetime] = None
) -> dict:
    now = now or datetime.utcnow()
    hours_until_job = (scheduled_at - now).total_seconds() / 3600

    if hours_until_job >= 48:
        return {"fee": 0, "reason": "Free cancellation (48+ hours notice)", "can_cancel": True}
    if hours_until_job >= 24:
        return {
            "fee": LATE_CANCELLATION_FEE,
            "reason": "$25 late cancellation fee (24-48 hours notice)",
            "can_cancel": True,
        }
    return {
        "fee": job_price,
        "reason": "Full charge (less than 24 hours notice)",
        "can_cancel": True,
    }


def calculate_overhead_per_job(jobs_last_month: int, settings: Optional[dict] = None) -> float:
    s = settings or DEFAULT_SETTINGS
    return round2(s["monthly_overhead_total"] / max(jobs_last_month, 1))


def validate_price_profitability(
    price: float,
    sqft: int,
    bedrooms: int,
    bathrooms: float,
    is_first_clean: bool = False,
    settings: Optional[dict] = None,
) -> dict:
    """Check a manually chosen price against the job's cost."""
    s = settings or DEFAULT_SETTINGS
    cost = calculate_job_cost(sqft, bedrooms, bathrooms, is_first_clean, settings=s)
    profit = price - cost["total_cost"]
    margin = profit / price if price else 0

    return {
        "is_valid": margin >= MIN_ACCEPTABLE_MARGIN,
        "is_profitable": profit > 0,
        "cost": cost["total_cost"],
        "profit": round2(profit),
        "margin": round2(margin * 100),
        "minimum_price": calculate_price_from_cost(cost["total_cost"], MIN_ACCEPTABLE_MARGIN, s),
        "recommended_price": calculate_price_from_cost(cost["total_cost"], RECOMMENDED_MARGIN, s),
    }


def estimate_monthly_recurring_revenue(bookings: list) -> float:
    """Weekly x4, biweekly x2, monthly x1 over active recurring bookings."""
    total = 0.0
    for booking in bookings:
        if booking.get("status") not in ("confirmed", "completed"):
            continue
        visits = VISITS_PER_MONTH.get(booking.get("frequency"))
        if visits:
            total += (booking.get("recurring_price") or 0) * visits
    return total


# ============================================================================
# FORMATTING
# ============================================================================


def format_price(price: Optional[float]) -> str:
    if price is None:
        return "$0"
    return f"${round_half_up(price):,}"


def format_percent(value: float) -> str:
    return f"{round_half_up(value)}%"


def format_duration(minutes: float) -> str:
    total = round_half_up(minutes)
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins} min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def format_duration_hours(hours: float) -> str:
    return format_duration(hours * 60)


def format_frequency(frequency: str) -> str:
    return FREQUENCY_LABELS.get(frequency, frequency)


def get_frequency_badge(frequency: str, settings: Optional[dict] = None) -> str:
    s = settings or DEFAULT_SETTINGS
    discounts = s["frequency_discounts"]
    badges = {
        "weekly": f"{round_half_up(discounts['weekly'] * 100)}% off",
        "biweekly": "Most Popular",
        "monthly": f"{round_half_up(discounts['monthly'] * 100)}% off",
        "onetime": "Deep Clean",
    }
    return badges.get(frequency, "")


def format_time_slot(slot: str, short: bool = False) -> str:
    slots = TIME_SLOTS_SHORT if short else TIME_SLOTS
    return slots.get(slot, slot)

"""
Cal.com scheduling embed helpers

The calendar itself is hosted by Cal.com; this module builds the prefilled
embed link and the booking window shown alongside it.
"""

from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote, urlencode

from ..config import CALCOM_LINK

CALCOM_BASE_URL = "https://cal.com"

WORKING_DAYS = (0, 1, 2, 3, 4)  # Monday - Friday
MIN_DAYS_AHEAD = 7
MAX_DAYS_AHEAD = 60


def build_scheduling_notes(
    sqft: int, bedrooms: int, bathrooms: float, frequency: str, address: Optional[str], price: float
) -> str:
    bathrooms_label = f"{bathrooms:g}"
    return "\n".join(
        [
            f"Home: {sqft:,} sq ft, {bedrooms} bed, {bathrooms_label} bath",
            f"Frequency: {frequency}",
            f"Address: {address or 'Not provided'}",
            f"Quote: ${price:g}/visit",
        ]
    )


def build_scheduling_url(name: str, email: str, notes: str, link: Optional[str] = None) -> str:
    """Cal.com booking page prefilled with the customer's details"""
    query = urlencode({"name": name, "email": email, "notes": notes, "theme": "light"}, quote_via=quote)
    return f"{CALCOM_BASE_URL}/{link or CALCOM_LINK}?{query}"


def booking_page_url(link: Optional[str] = None) -> str:
    return f"{CALCOM_BASE_URL}/{link or CALCOM_LINK}"


def _next_working_day(day: date) -> date:
    while day.weekday() not in WORKING_DAYS:
        day += timedelta(days=1)
    return day


def get_booking_window(today: Optional[date] = None) -> dict:
    """Earliest (one week out, next weekday) and latest bookable dates"""
    today = today or date.today()
    earliest = _next_working_day(today + timedelta(days=MIN_DAYS_AHEAD))
    latest = today + timedelta(days=MAX_DAYS_AHEAD)
    return {"earliest": earliest, "latest": latest}

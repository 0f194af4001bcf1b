"""Address autocomplete proxy.

Queries OpenStreetMap Nominatim for US street addresses and reshapes results
for the booking form. Proxying keeps the Nominatim User-Agent requirement and
rate limits on the server, and lets results be cached in Redis.
"""

import logging
import os
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from ..cache import cache
from ..config import NOMINATIM_URL, NOMINATIM_USER_AGENT
from ..rate_limiter import create_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])

rate_limit_autocomplete = create_rate_limiter(
    limit=int(os.getenv("GEOCODING_AUTOCOMPLETE_RPM", "60")),
    window_seconds=60,
    key_prefix="geocode_autocomplete",
    use_ip=True,
)

CACHE_SECONDS = int(os.getenv("GEOCODING_AUTOCOMPLETE_CACHE_SECONDS", "3600"))
NOMINATIM_TIMEOUT_SECONDS = 8.0


class AddressSuggestion(BaseModel):
    text: str
    street_line: str
    city: str
    state: str
    zipcode: str


class AutocompleteResponse(BaseModel):
    suggestions: list[AddressSuggestion]


def parse_nominatim_result(item: dict) -> Optional[dict]:
    """Map one Nominatim search hit to a suggestion; None when it has no street"""
    address = item.get("address") or {}
    road = address.get("road")
    if not road:
        return None

    street_line = f"{address['house_number']} {road}" if address.get("house_number") else road
    city = address.get("city") or address.get("town") or address.get("village") or address.get("hamlet") or ""
    state_code = address.get("ISO3166-2-lvl4", "")
    state = state_code.split("-", 1)[1] if state_code.startswith("US-") else address.get("state", "")
    zipcode = (address.get("postcode") or "").split("-")[0]

    text = ", ".join(part for part in (street_line, city, f"{state} {zipcode}".strip()) if part)
    return {"text": text, "street_line": street_line, "city": city, "state": state, "zipcode": zipcode}


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    request: Request,
    search: str = Query(""),
    max_results: int = Query(5),
    _: None = Depends(rate_limit_autocomplete),
):
    search = (search or "").strip()
    if len(search) < 3:
        return {"suggestions": []}

    max_results = max(1, min(max_results, 10))
    cache_key = f"geo:auto:us:{max_results}:{search.lower()}"

    cached = cache.get(cache_key)
    if cached is not None:
        return {"suggestions": cached}

    params = {
        "q": search,
        "format": "json",
        "addressdetails": 1,
        "limit": str(max_results),
        "countrycodes": "us",
        "dedupe": 1,
    }
    headers = {
        "User-Agent": NOMINATIM_USER_AGENT,
        "Accept": "application/json",
        "Referer": request.headers.get("Origin") or request.headers.get("Referer") or "",
    }

    try:
        async with httpx.AsyncClient(timeout=NOMINATIM_TIMEOUT_SECONDS) as client:
            resp = await client.get(f"{NOMINATIM_URL.rstrip('/')}/search", params=params, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"❌ Nominatim request failed: {e}")
        raise HTTPException(status_code=502, detail="Geocoding provider unavailable") from e

    if resp.status_code >= 400:
        logger.warning(f"⚠️ Nominatim error {resp.status_code}: {resp.text[:200]}")
        raise HTTPException(status_code=502, detail="Geocoding provider error")

    suggestions = [s for s in (parse_nominatim_result(item) for item in resp.json()) if s]
    cache.set(cache_key, suggestions, ttl=CACHE_SECONDS)
    return {"suggestions": suggestions}

"""Database-backed pricing settings with a short in-process cache."""

import logging
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import PricingSetting
from .engine import DEFAULT_COST_SETTINGS, build_settings

logger = logging.getLogger(__name__)

# Short TTL so admin edits show up quickly
CACHE_DURATION_SECONDS = 60

_settings_cache: Optional[dict] = None
_cache_timestamp: Optional[float] = None


def _coerce(value):
    # Values saved from form inputs may arrive as numeric strings
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def get_raw_settings(db: Session) -> dict:
    """Stored overrides merged over the defaults, without derived values."""
    rows = db.query(PricingSetting).all()
    overrides = {row.key: _coerce(row.value) for row in rows}
    return {**DEFAULT_COST_SETTINGS, **overrides}


def load_cost_settings(db: Session, force_refresh: bool = False) -> dict:
    """Pricing settings for quoting; defaults are used if the database is unavailable."""
    global _settings_cache, _cache_timestamp

    if (
        not force_refresh
        and _settings_cache is not None
        and _cache_timestamp is not None
        and time.monotonic() - _cache_timestamp < CACHE_DURATION_SECONDS
    ):
        return _settings_cache

    try:
        settings = build_settings(get_raw_settings(db))
    except SQLAlchemyError as e:
        logger.warning(f"⚠️ Failed to fetch pricing settings, using defaults: {e}")
        return build_settings()

    _settings_cache = settings
    _cache_timestamp = time.monotonic()
    return settings


def save_settings(db: Session, values: dict) -> dict:
    """Upsert setting keys and invalidate the cache."""
    existing = {row.key: row for row in db.query(PricingSetting).all()}
    for key, value in values.items():
        if key in existing:
            existing[key].value = value
        else:
            db.add(PricingSetting(key=key, value=value))
    db.commit()
    clear_settings_cache()
    logger.info(f"✅ Pricing settings updated: {', '.join(sorted(values))}")
    return get_raw_settings(db)


def clear_settings_cache():
    global _settings_cache, _cache_timestamp
    _settings_cache = None
    _cache_timestamp = None

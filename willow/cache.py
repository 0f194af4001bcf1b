"""
Redis caching utilities

Besides plain TTL caching (address lookups), the cache keeps a last-known-good
snapshot of admin list and report reads. When the database errors, the
snapshot is served instead and the response is marked stale.
"""

import json
import logging
from typing import Any, Callable, Optional

import redis
from fastapi import HTTPException, Response
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import SNAPSHOT_TTL_SECONDS
from .rate_limiter import get_redis_client_or_none

logger = logging.getLogger(__name__)

STALE_HEADER = "X-Data-Stale"


class Cache:
    """Redis cache wrapper with JSON serialization"""

    def _get_client(self) -> Optional[redis.Redis]:
        return get_redis_client_or_none()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(jsonable_encoder(value)))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


# Global cache instance
cache = Cache()


def fetch_with_fallback(
    key: str,
    loader: Callable[[], Any],
    db: Optional[Session] = None,
    response: Optional[Response] = None,
) -> Any:
    """
    Run `loader` and snapshot its result under `snapshot:{key}`.

    On a database error the last snapshot is returned and, when `response` is
    given, the `X-Data-Stale` header is set. Without a snapshot the request
    fails with 503.
    """
    snapshot_key = f"snapshot:{key}"
    try:
        data = loader()
    except SQLAlchemyError as e:
        logger.error(f"❌ Database error loading {key}: {e}")
        if db is not None:
            db.rollback()
        snapshot = cache.get(snapshot_key)
        if snapshot is None:
            raise HTTPException(
                status_code=503, detail="Data store temporarily unavailable"
            ) from e
        logger.warning(f"⚠️ Serving cached snapshot for {key}")
        if response is not None:
            response.headers[STALE_HEADER] = "true"
        return snapshot

    cache.set(snapshot_key, data, ttl=SNAPSHOT_TTL_SECONDS)
    return data

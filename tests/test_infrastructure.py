import json
import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

from base import ApiTestCase
from fastapi import HTTPException, Response
from sqlalchemy.exc import OperationalError

from willow import rate_limiter
from willow.cache import STALE_HEADER, Cache, cache, fetch_with_fallback
from willow.config import FRONTEND_URL
from willow.domain.bookings.service import BookingService
from willow.utils.csv_export import build_csv


def failing_loader(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is down"))


class FakeStore:
    """Dict-backed stand-in for the Redis cache wrapper"""

    def __init__(self):
        self.values = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ttl=3600):
        self.values[key] = value
        return True


class TestFetchWithFallback(unittest.TestCase):
    def setUp(self):
        self.store = FakeStore()
        patcher_get = patch.object(cache, "get", side_effect=self.store.get)
        patcher_set = patch.object(cache, "set", side_effect=self.store.set)
        patcher_get.start()
        patcher_set.start()
        self.addCleanup(patcher_get.stop)
        self.addCleanup(patcher_set.stop)

    def test_success_stores_snapshot(self):
        response = Response()
        data = fetch_with_fallback("cleaners:all", lambda: [{"id": 1}], response=response)
        self.assertEqual(data, [{"id": 1}])
        self.assertEqual(self.store.values["snapshot:cleaners:all"], [{"id": 1}])
        self.assertNotIn(STALE_HEADER, response.headers)

    def test_database_error_serves_snapshot(self):
        self.store.values["snapshot:cleaners:all"] = [{"id": 1}]
        response = Response()
        data = fetch_with_fallback("cleaners:all", failing_loader, response=response)
        self.assertEqual(data, [{"id": 1}])
        self.assertEqual(response.headers[STALE_HEADER], "true")

    def test_database_error_without_snapshot(self):
        with self.assertRaises(HTTPException) as ctx:
            fetch_with_fallback("cleaners:all", failing_loader)
        self.assertEqual(ctx.exception.status_code, 503)


class TestStaleApiResponses(ApiTestCase):
    def test_bookings_list_marked_stale(self):
        headers = self.auth_headers()
        booking = self.create_booking(status="confirmed")
        store = FakeStore()
        with patch.object(cache, "get", side_effect=store.get), patch.object(cache, "set", side_effect=store.set):
            fresh = self.client.get("/admin/bookings?filter=all", headers=headers)
            self.assertNotIn(STALE_HEADER.lower(), {k.lower() for k in fresh.headers})

            with patch.object(BookingService, "list_bookings", side_effect=failing_loader):
                stale = self.client.get("/admin/bookings?filter=all", headers=headers)
                self.assertEqual(stale.status_code, 200)
                self.assertEqual(stale.headers[STALE_HEADER], "true")
                self.assertEqual([b["id"] for b in stale.json()], [booking.id])

                missing = self.client.get("/admin/bookings?filter=past", headers=headers)
                self.assertEqual(missing.status_code, 503)


class TestCacheSerialization(unittest.TestCase):
    def test_datetimes_are_stored_as_iso(self):
        client = MagicMock()
        with patch("willow.cache.get_redis_client_or_none", return_value=client):
            self.assertTrue(Cache().set("snapshot:activity", [{"timestamp": datetime(2026, 10, 19, 12, 0)}]))
        stored = json.loads(client.setex.call_args.args[2])
        self.assertEqual(stored, [{"timestamp": "2026-10-19T12:00:00"}])


class TestRateLimiter(unittest.TestCase):
    def setUp(self):
        rate_limiter.memory_cache.clear()

    def test_memory_counting(self):
        results = [rate_limiter.check_rate_limit("test:ip", 3, 60)[0] for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])


class TestRateLimitedEndpoint(ApiTestCase):
    def test_lead_endpoint_returns_429(self):
        rate_limiter.memory_cache.clear()
        with patch.object(rate_limiter, "RATE_LIMIT_ENABLED", True), patch.object(
            rate_limiter, "get_redis_client_or_none", return_value=None
        ):
            statuses = [
                self.client.post("/booking/leads", json={}).status_code for _ in range(11)
            ]
        rate_limiter.memory_cache.clear()
        self.assertEqual(statuses[:10], [422] * 10)
        self.assertEqual(statuses[10], 429)


class TestAppShell(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})

    def test_security_headers(self):
        response = self.client.get("/")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")
        self.assertIn("Content-Security-Policy", response.headers)

    def test_cors_allows_frontend_url(self):
        response = self.client.options(
            "/booking/quote",
            headers={"Origin": FRONTEND_URL, "Access-Control-Request-Method": "POST"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], FRONTEND_URL)

    def test_redis_health_reports_unavailable(self):
        response = self.client.get("/health/redis")
        self.assertEqual(response.json()["status"], "unhealthy")

    def test_csv_builder_blanks_none(self):
        self.assertEqual(build_csv(["A", "B"], [[1, None]]), "A,B\r\n1,\r\n")


if __name__ == "__main__":
    unittest.main()

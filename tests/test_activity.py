import unittest
from datetime import date, datetime

from base import ApiTestCase

from willow.domain.activity.feed import booking_events, build_activity_feed, group_by_day


def booking(**overrides):
    values = {
        "id": 7,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "address": "123 Main St",
        "sqft": 1500,
        "frequency": "biweekly",
        "status": "lead",
        "first_clean_price": 172,
        "deposit_amount": 34,
        "created_at": datetime(2025, 6, 2, 9, 0),
        "updated_at": datetime(2025, 6, 2, 9, 0),
    }
    values.update(overrides)
    return values


class TestActivityFeed(unittest.TestCase):
    def test_lead_has_only_created_event(self):
        events = booking_events(booking())
        self.assertEqual([e["type"] for e in events], ["booking_created"])
        self.assertEqual(events[0]["description"], "1,500 sq ft • Bi-Weekly")
        self.assertEqual(events[0]["amount"], 172)

    def test_completed_booking_events(self):
        events = booking_events(
            booking(
                status="completed",
                cleaner_id=3,
                cleaner_name="Maria Lopez",
                scheduled_date=date(2025, 6, 16),
                deposit_paid_at=datetime(2025, 6, 3, 12, 0),
                reminder_sent_at=datetime(2025, 6, 15, 15, 0),
                updated_at=datetime(2025, 6, 16, 14, 0),
            )
        )
        types = {e["type"] for e in events}
        self.assertEqual(
            types,
            {
                "booking_created",
                "booking_confirmed",
                "booking_completed",
                "cleaner_assigned",
                "payment_received",
                "reminder_sent",
            },
        )
        assigned = next(e for e in events if e["type"] == "cleaner_assigned")
        self.assertEqual(assigned["title"], "Maria Lopez assigned to Jane Doe")
        self.assertEqual(assigned["description"], "06/16/2025")

    def test_cancelled_uses_cancelled_at(self):
        cancelled_at = datetime(2025, 6, 5, 8, 0)
        events = booking_events(booking(status="cancelled", cancelled_at=cancelled_at))
        cancelled = next(e for e in events if e["type"] == "booking_cancelled")
        self.assertEqual(cancelled["timestamp"], cancelled_at)

    def test_feed_filters_and_sorts(self):
        bookings = [
            booking(id=1, name="Old", created_at=datetime(2025, 5, 1)),
            booking(id=2, name="Recent", status="confirmed", updated_at=datetime(2025, 6, 4)),
        ]
        cleaners = [{"id": 1, "name": "Maria", "email": "m@example.com", "created_at": datetime(2025, 6, 3)}]
        events = build_activity_feed(bookings, cleaners, start=datetime(2025, 6, 1))
        self.assertNotIn("Old", " ".join(e["title"] for e in events))
        timestamps = [e["timestamp"] for e in events]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))

        only_team = build_activity_feed(bookings, cleaners, activity_type="cleaner_added")
        self.assertEqual([e["title"] for e in only_team], ["Maria added to team"])

        searched = build_activity_feed(bookings, cleaners, search="recent")
        self.assertTrue(searched)
        self.assertTrue(all("Recent" in e["title"] for e in searched))

    def test_group_by_day(self):
        events = build_activity_feed([booking(status="confirmed", updated_at=datetime(2025, 6, 3, 10, 0))], [])
        groups = group_by_day(events)
        self.assertEqual([g["date"] for g in groups], ["Tuesday, June 3, 2025", "Monday, June 2, 2025"])


class TestActivityApi(ApiTestCase):
    def test_feed_endpoint(self):
        headers = self.auth_headers()
        self.create_cleaner()
        self.create_booking(status="confirmed")
        response = self.client.get("/admin/activity?range=7d", headers=headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        types = {a["type"] for group in data["groups"] for a in group["activities"]}
        self.assertIn("cleaner_added", types)
        self.assertIn("booking_confirmed", types)
        self.assertEqual(data["total"], sum(len(g["activities"]) for g in data["groups"]))

    def test_rejects_unknown_range_and_type(self):
        headers = self.auth_headers()
        self.assertEqual(self.client.get("/admin/activity?range=90d", headers=headers).status_code, 400)
        self.assertEqual(self.client.get("/admin/activity?type=party", headers=headers).status_code, 400)


if __name__ == "__main__":
    unittest.main()

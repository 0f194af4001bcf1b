import csv
import io
import unittest
from datetime import date, datetime, time, timedelta
from unittest.mock import AsyncMock, patch

from base import ApiTestCase, next_weekday

from willow.domain.bookings.service import (
    BookingService,
    generate_cleaning_instructions,
    parse_slot_time,
)
from willow.models import Booking
from willow.services.stripe_service import StripeError


class TestBookingHelpers(unittest.TestCase):
    def test_parse_slot_time(self):
        self.assertEqual(parse_slot_time("morning"), time(9, 0))
        self.assertEqual(parse_slot_time("Afternoon"), time(13, 0))
        self.assertEqual(parse_slot_time("2:30 PM"), time(14, 30))
        self.assertEqual(parse_slot_time("14:30"), time(14, 30))
        self.assertEqual(parse_slot_time(None), time(9, 0))
        self.assertEqual(parse_slot_time("whenever"), time(9, 0))

    def test_cleaning_instructions(self):
        booking = Booking(
            name="Jane Doe",
            email="jane@example.com",
            phone="+16305550123",
            address="123 Main St",
            sqft=2100,
            bedrooms=4,
            bathrooms=2.5,
            frequency="onetime",
        )
        text = generate_cleaning_instructions(booking)
        self.assertIn("## Cleaning Details", text)
        self.assertIn("- **Size:** 2,100 sq ft", text)
        self.assertIn("- **Bathrooms:** 2.5", text)
        self.assertIn("One-Time Deep Clean", text)


class TestBookingsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()

    def test_requires_auth(self):
        response = self.client.get("/admin/bookings")
        self.assertIn(response.status_code, (401, 403))

    def test_list_filters(self):
        today = date.today()
        upcoming = self.create_booking(status="confirmed", scheduled_date=today + timedelta(days=3))
        past = self.create_booking(status="completed", scheduled_date=today - timedelta(days=3))
        unscheduled = self.create_booking(status="payment_initiated")
        self.create_booking(status="lead")

        ids = lambda resp: {b["id"] for b in resp.json()}  # noqa: E731
        self.assertEqual(
            ids(self.client.get("/admin/bookings", headers=self.headers)), {upcoming.id, unscheduled.id}
        )
        self.assertEqual(
            ids(self.client.get("/admin/bookings?filter=past", headers=self.headers)), {past.id}
        )
        self.assertEqual(
            ids(self.client.get("/admin/bookings?filter=all", headers=self.headers)),
            {upcoming.id, past.id, unscheduled.id},
        )

    def test_invalid_filter(self):
        response = self.client.get("/admin/bookings?filter=tomorrow", headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_search(self):
        self.create_booking(status="confirmed", name="Jane Doe")
        other = self.create_booking(status="confirmed", name="Bob Smith", email="bob@example.com")
        response = self.client.get("/admin/bookings?filter=all&search=bob", headers=self.headers)
        self.assertEqual([b["id"] for b in response.json()], [other.id])

    def test_get_booking(self):
        booking = self.create_booking(status="confirmed")
        response = self.client.get(f"/admin/bookings/{booking.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["public_id"], booking.public_id)
        self.assertEqual(self.client.get("/admin/bookings/9999", headers=self.headers).status_code, 404)

    def test_update_status(self):
        booking = self.create_booking(status="confirmed")
        response = self.client.patch(
            f"/admin/bookings/{booking.id}/status", json={"status": "completed"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(booking).status, "completed")

        bad = self.client.patch(
            f"/admin/bookings/{booking.id}/status", json={"status": "archived"}, headers=self.headers
        )
        self.assertEqual(bad.status_code, 422)

    def test_cancel_via_status_sets_timestamp(self):
        booking = self.create_booking(status="confirmed")
        self.client.patch(
            f"/admin/bookings/{booking.id}/status", json={"status": "cancelled"}, headers=self.headers
        )
        self.assertIsNotNone(self.reload(booking).cancelled_at)

    def test_manual_assign(self):
        booking = self.create_booking(status="confirmed")
        cleaner = self.create_cleaner()
        response = self.client.post(
            f"/admin/bookings/{booking.id}/assign", json={"cleaner_id": cleaner.id}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["cleaner_name"], "Maria Lopez")

        unassign = self.client.post(
            f"/admin/bookings/{booking.id}/assign", json={"cleaner_id": None}, headers=self.headers
        )
        self.assertIsNone(unassign.json()["cleaner_id"])

        missing = self.client.post(
            f"/admin/bookings/{booking.id}/assign", json={"cleaner_id": 9999}, headers=self.headers
        )
        self.assertEqual(missing.status_code, 404)


class TestAutoAssign(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()
        self.monday = next_weekday(0)

    def test_round_robin_prefers_least_recent(self):
        busy = self.create_cleaner(name="Ana Busy", last_assigned_at=datetime(2025, 6, 1), total_assignments=3)
        fresh = self.create_cleaner(name="Bea Fresh", email="bea@example.com")
        booking = self.create_booking(status="confirmed", scheduled_date=self.monday)

        response = self.client.post(f"/admin/bookings/{booking.id}/auto-assign", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["cleaner_id"], fresh.id)
        self.assertTrue(data["email_queued"])
        self.assertIn("## Home Specs", data["booking"]["cleaning_instructions"])

        fresh = self.reload(fresh)
        self.assertEqual(fresh.total_assignments, 1)
        self.assertIsNotNone(fresh.last_assigned_at)
        self.assertEqual(self.reload(busy).total_assignments, 3)

        second = self.create_booking(status="confirmed", scheduled_date=self.monday)
        response = self.client.post(f"/admin/bookings/{second.id}/auto-assign", headers=self.headers)
        self.assertEqual(response.json()["cleaner_id"], busy.id)

    def test_skips_unavailable_and_inactive(self):
        self.create_cleaner(name="Weekend Only", available_days=["saturday", "sunday"])
        self.create_cleaner(name="On Leave", status="on_leave")
        available = self.create_cleaner(name="Cara Weekday", email=None)
        booking = self.create_booking(status="confirmed", scheduled_date=self.monday)

        response = self.client.post(f"/admin/bookings/{booking.id}/auto-assign", headers=self.headers)
        self.assertEqual(response.json()["cleaner_id"], available.id)
        self.assertFalse(response.json()["email_queued"])

    def test_no_available_cleaner(self):
        self.create_cleaner(available_days=["saturday"])
        booking = self.create_booking(status="confirmed", scheduled_date=self.monday)
        response = self.client.post(f"/admin/bookings/{booking.id}/auto-assign", headers=self.headers)
        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.json()["detail"]["requires_manual_assignment"])
        self.assertIsNone(self.reload(booking).cleaner_id)

    def test_cancelled_booking_cannot_be_assigned(self):
        self.create_cleaner()
        booking = self.create_booking(status="cancelled", scheduled_date=self.monday)
        response = self.client.post(f"/admin/bookings/{booking.id}/auto-assign", headers=self.headers)
        self.assertEqual(response.status_code, 409)


class TestCancellation(ApiTestCase):
    def test_fee_follows_notice_period(self):
        service = BookingService(self.db)
        scheduled = date(2025, 6, 10)

        free = self.create_booking(status="confirmed", scheduled_date=scheduled, scheduled_time="morning")
        result = service.cancel_booking(free.id, now=datetime(2025, 6, 7, 8, 0))
        self.assertEqual(result["fee"], 0)

        late = self.create_booking(status="confirmed", scheduled_date=scheduled, scheduled_time="afternoon")
        result = service.cancel_booking(late.id, now=datetime(2025, 6, 9, 8, 0))
        self.assertEqual(result["fee"], 25)

        same_day = self.create_booking(status="confirmed", scheduled_date=scheduled, scheduled_time="9:00 AM")
        result = service.cancel_booking(same_day.id, now=datetime(2025, 6, 9, 20, 0))
        self.assertEqual(result["fee"], 172)
        self.assertEqual(self.reload(same_day).cancellation_fee, 172)

    def test_cancel_endpoint(self):
        headers = self.auth_headers()
        booking = self.create_booking(status="confirmed", scheduled_date=date.today() + timedelta(days=10))
        response = self.client.post(f"/admin/bookings/{booking.id}/cancel", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["fee"], 0)
        self.assertEqual(response.json()["booking"]["status"], "cancelled")

        again = self.client.post(f"/admin/bookings/{booking.id}/cancel", headers=headers)
        self.assertEqual(again.status_code, 409)

    def test_unscheduled_booking_cancels_free(self):
        booking = self.create_booking(status="payment_initiated")
        result = BookingService(self.db).cancel_booking(booking.id)
        self.assertEqual(result["fee"], 0)


class TestChargeRemaining(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()

    @patch("willow.domain.bookings.service.charge_saved_card", new_callable=AsyncMock)
    def test_successful_charge(self, mock_charge):
        mock_charge.return_value = {"id": "pi_rem", "status": "succeeded"}
        booking = self.create_booking(
            status="completed", payment_status="deposit_paid", stripe_customer_id="cus_1"
        )
        response = self.client.post(f"/admin/bookings/{booking.id}/charge-remaining", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "succeeded")

        args, kwargs = mock_charge.call_args
        self.assertEqual(args, ("cus_1", 138))
        self.assertEqual(kwargs["metadata"], {"type": "remaining_balance", "public_id": booking.public_id})

        booking = self.reload(booking)
        self.assertEqual(booking.payment_status, "fully_paid")
        self.assertEqual(booking.remaining_amount, 0)
        self.assertEqual(booking.stripe_payment_intent_id, "pi_rem")

    @patch("willow.domain.bookings.service.charge_saved_card", new_callable=AsyncMock)
    def test_failed_charge(self, mock_charge):
        mock_charge.side_effect = StripeError("Your card was declined.", code="card_declined")
        booking = self.create_booking(
            status="completed", payment_status="deposit_paid", stripe_customer_id="cus_1"
        )
        response = self.client.post(f"/admin/bookings/{booking.id}/charge-remaining", headers=self.headers)
        self.assertEqual(response.status_code, 502)
        booking = self.reload(booking)
        self.assertEqual(booking.payment_status, "charge_failed")
        self.assertEqual(booking.charge_error, "Your card was declined.")

    @patch("willow.domain.bookings.service.charge_saved_card", new_callable=AsyncMock)
    def test_declined_charge_can_be_retried(self, mock_charge):
        mock_charge.side_effect = StripeError("Your card was declined.", code="card_declined")
        booking = self.create_booking(
            status="completed", payment_status="deposit_paid", stripe_customer_id="cus_1"
        )
        url = f"/admin/bookings/{booking.id}/charge-remaining"
        self.assertEqual(self.client.post(url, headers=self.headers).status_code, 502)

        mock_charge.side_effect = None
        mock_charge.return_value = {"id": "pi_retry", "status": "succeeded"}
        retry = self.client.post(url, headers=self.headers)
        self.assertEqual(retry.status_code, 200)
        self.assertEqual(mock_charge.call_count, 2)

        booking = self.reload(booking)
        self.assertEqual(booking.payment_status, "fully_paid")
        self.assertEqual(booking.remaining_amount, 0)
        self.assertIsNone(booking.charge_error)

    def test_nothing_to_charge(self):
        pending = self.create_booking(status="confirmed", payment_status="pending", stripe_customer_id="cus_1")
        no_customer = self.create_booking(status="completed", payment_status="deposit_paid")
        for booking in (pending, no_customer):
            response = self.client.post(f"/admin/bookings/{booking.id}/charge-remaining", headers=self.headers)
            self.assertEqual(response.status_code, 409)


class TestLeadsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()

    def test_list_only_leads(self):
        lead = self.create_booking(status="lead")
        self.create_booking(status="confirmed")
        response = self.client.get("/admin/leads", headers=self.headers)
        self.assertEqual([b["id"] for b in response.json()], [lead.id])

    def test_convert_lead(self):
        lead = self.create_booking(status="lead")
        response = self.client.post(f"/admin/leads/{lead.id}/convert", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(lead).status, "confirmed")

        again = self.client.post(f"/admin/leads/{lead.id}/convert", headers=self.headers)
        self.assertEqual(again.status_code, 404)

    def test_delete_lead(self):
        lead = self.create_booking(status="lead")
        booking = self.create_booking(status="confirmed")
        self.assertEqual(self.client.delete(f"/admin/leads/{lead.id}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f"/admin/leads/{booking.id}", headers=self.headers).status_code, 404)
        self.db.expire_all()
        self.assertEqual(self.db.query(Booking).count(), 1)

    def test_export_leads_csv(self):
        self.create_booking(status="lead")
        response = self.client.get("/admin/leads/export", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/csv", response.headers["content-type"])
        self.assertIn(f"leads-{date.today().isoformat()}.csv", response.headers["content-disposition"])
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(len(rows), 2)


class TestBookingsExport(ApiTestCase):
    def test_export_bookings_csv(self):
        cleaner = self.create_cleaner()
        self.create_booking(status="confirmed", scheduled_date=date(2025, 6, 16), cleaner_id=cleaner.id)
        self.create_booking(status="completed", scheduled_date=date(2025, 6, 17))
        response = self.client.get("/admin/bookings/export", headers=self.auth_headers())
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(rows[0][0], "Date")
        self.assertEqual(rows[0][-1], "Cleaner")
        self.assertEqual([r[-1] for r in rows[1:]], ["Maria Lopez", "Unassigned"])
        self.assertEqual(rows[1][7], "Bi-Weekly")


if __name__ == "__main__":
    unittest.main()

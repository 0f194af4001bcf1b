import json
import time
import unittest
from datetime import date, datetime

from base import ApiTestCase

from willow.routes.calcom_webhooks import format_clock_time, parse_start_time
from willow.webhook_security import create_webhook_signature, verify_timestamp

STRIPE_SECRET = "whsec_test"
CALCOM_SECRET = "cal_test_secret"


class TestSignatureHelpers(unittest.TestCase):
    def test_timestamp_window(self):
        self.assertTrue(verify_timestamp(str(int(time.time()))))
        self.assertFalse(verify_timestamp(str(int(time.time()) - 3600)))
        self.assertFalse(verify_timestamp("yesterday"))

    def test_stripe_header_format(self):
        header = create_webhook_signature(STRIPE_SECRET, b"{}", provider="stripe", timestamp=1700000000)
        self.assertTrue(header.startswith("t=1700000000,v1="))

    def test_calcom_start_time_in_local_zone(self):
        start = parse_start_time("2025-06-16T14:00:00Z", "America/Chicago")
        self.assertEqual(start, datetime(2025, 6, 16, 9, 0))
        self.assertEqual(format_clock_time(start), "9:00 AM")

    def test_unknown_zone_uses_business_zone(self):
        start = parse_start_time("2025-01-15T19:30:00Z", "Not/AZone")
        self.assertEqual(start, datetime(2025, 1, 15, 13, 30))


class TestStripeWebhook(ApiTestCase):
    def post_stripe(self, event: dict, secret: str = STRIPE_SECRET):
        body = json.dumps(event).encode()
        headers = {
            "Stripe-Signature": create_webhook_signature(secret, body, provider="stripe"),
            "Content-Type": "application/json",
        }
        return self.client.post("/webhooks/stripe", content=body, headers=headers)

    def checkout_event(self, **session):
        return {"type": "checkout.session.completed", "data": {"object": session}}

    def test_rejects_bad_signature(self):
        response = self.post_stripe(self.checkout_event(id="cs_1"), secret="whsec_wrong")
        self.assertEqual(response.status_code, 401)

    def test_rejects_missing_signature(self):
        response = self.client.post("/webhooks/stripe", content=b"{}")
        self.assertEqual(response.status_code, 401)

    def test_checkout_completed_confirms_booking(self):
        booking = self.create_booking(status="payment_initiated")
        response = self.post_stripe(
            self.checkout_event(
                id="cs_test_1",
                customer="cus_1",
                payment_intent="pi_1",
                amount_total=3400,
                metadata={"public_id": booking.public_id, "type": "deposit"},
            )
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True})

        booking = self.reload(booking)
        self.assertEqual(booking.status, "confirmed")
        self.assertEqual(booking.payment_status, "deposit_paid")
        self.assertEqual(booking.deposit_amount, 34)
        self.assertEqual(booking.stripe_customer_id, "cus_1")
        self.assertIsNotNone(booking.deposit_paid_at)

    def test_checkout_completed_falls_back_to_email(self):
        older = self.create_booking(status="lead")
        newer = self.create_booking(status="payment_initiated")
        response = self.post_stripe(
            self.checkout_event(id="cs_test_2", customer_details={"email": "JANE@example.com"})
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(newer).status, "confirmed")
        self.assertEqual(self.reload(older).status, "lead")

    def test_checkout_completed_is_idempotent(self):
        paid_at = datetime(2025, 6, 1, 12, 0)
        booking = self.create_booking(
            status="confirmed", payment_status="deposit_paid", deposit_paid_at=paid_at
        )
        response = self.post_stripe(
            self.checkout_event(id="cs_again", metadata={"public_id": booking.public_id})
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(booking).deposit_paid_at, paid_at)

    def test_unmatched_checkout_is_acknowledged(self):
        response = self.post_stripe(self.checkout_event(id="cs_unknown"))
        self.assertEqual(response.status_code, 200)

    def test_remaining_balance_succeeded(self):
        booking = self.create_booking(status="completed", payment_status="deposit_paid")
        response = self.post_stripe(
            {
                "type": "payment_intent.succeeded",
                "data": {
                    "object": {
                        "id": "pi_balance",
                        "metadata": {"type": "remaining_balance", "public_id": booking.public_id},
                    }
                },
            }
        )
        self.assertEqual(response.status_code, 200)
        booking = self.reload(booking)
        self.assertEqual(booking.payment_status, "fully_paid")
        self.assertEqual(booking.remaining_amount, 0)

    def test_remaining_balance_failed(self):
        booking = self.create_booking(status="completed", payment_status="deposit_paid")
        self.post_stripe(
            {
                "type": "payment_intent.payment_failed",
                "data": {
                    "object": {
                        "id": "pi_balance",
                        "metadata": {"type": "remaining_balance", "public_id": booking.public_id},
                        "last_payment_error": {"message": "Your card was declined."},
                    }
                },
            }
        )
        booking = self.reload(booking)
        self.assertEqual(booking.payment_status, "charge_failed")
        self.assertEqual(booking.charge_error, "Your card was declined.")

    def test_deposit_intent_events_are_ignored(self):
        booking = self.create_booking(status="payment_initiated")
        self.post_stripe(
            {
                "type": "payment_intent.payment_failed",
                "data": {"object": {"id": "pi_dep", "metadata": {"public_id": booking.public_id}}},
            }
        )
        self.assertEqual(self.reload(booking).payment_status, "pending")


class TestCalcomWebhook(ApiTestCase):
    def post_calcom(self, event: dict, secret: str = CALCOM_SECRET):
        body = json.dumps(event).encode()
        headers = {
            "X-Cal-Signature-256": create_webhook_signature(secret, body, provider="calcom"),
            "Content-Type": "application/json",
        }
        return self.client.post("/webhooks/calcom", content=body, headers=headers)

    def test_rejects_bad_signature(self):
        response = self.post_calcom({"triggerEvent": "BOOKING_CREATED"}, secret="nope")
        self.assertEqual(response.status_code, 401)

    def test_booking_created_matches_by_email(self):
        booking = self.create_booking()
        response = self.post_calcom(
            {
                "triggerEvent": "BOOKING_CREATED",
                "payload": {
                    "uid": "cal_abc",
                    "startTime": "2025-06-16T14:00:00Z",
                    "attendees": [{"email": "jane@example.com", "timeZone": "America/Chicago"}],
                },
            }
        )
        self.assertEqual(response.json(), {"status": "ok", "matched": True})

        booking = self.reload(booking)
        self.assertEqual(booking.scheduled_date, date(2025, 6, 16))
        self.assertEqual(booking.scheduled_time, "9:00 AM")
        self.assertEqual(booking.cal_booking_id, "cal_abc")
        self.assertEqual(booking.cal_booking_url, "https://cal.com/booking/cal_abc")

    def test_reschedule_matches_previous_uid(self):
        booking = self.create_booking(
            status="confirmed", cal_booking_id="cal_old", scheduled_date=date(2025, 6, 16)
        )
        response = self.post_calcom(
            {
                "triggerEvent": "BOOKING_RESCHEDULED",
                "payload": {"uid": "cal_new", "rescheduleUid": "cal_old", "startTime": "2025-06-18T19:00:00Z"},
            }
        )
        self.assertTrue(response.json()["matched"])
        booking = self.reload(booking)
        self.assertEqual(booking.scheduled_date, date(2025, 6, 18))
        self.assertEqual(booking.scheduled_time, "2:00 PM")
        self.assertEqual(booking.cal_booking_id, "cal_new")

    def test_cancel_clears_schedule(self):
        booking = self.create_booking(
            status="confirmed", cal_booking_id="cal_abc", scheduled_date=date(2025, 6, 16), scheduled_time="9:00 AM"
        )
        response = self.post_calcom({"triggerEvent": "BOOKING_CANCELLED", "payload": {"uid": "cal_abc"}})
        self.assertTrue(response.json()["matched"])
        booking = self.reload(booking)
        self.assertIsNone(booking.scheduled_date)
        self.assertIsNone(booking.cal_booking_id)
        self.assertEqual(booking.status, "confirmed")

    def test_unknown_trigger_is_ignored(self):
        response = self.post_calcom({"triggerEvent": "MEETING_ENDED", "payload": {}})
        self.assertEqual(response.json(), {"status": "ignored"})

    def test_unmatched_booking(self):
        response = self.post_calcom(
            {
                "triggerEvent": "BOOKING_CREATED",
                "payload": {"uid": "cal_x", "startTime": "2025-06-16T14:00:00Z", "attendees": [{"email": "x@y.com"}]},
            }
        )
        self.assertEqual(response.json(), {"status": "ok", "matched": False})


if __name__ == "__main__":
    unittest.main()

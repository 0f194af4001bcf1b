import csv
import io
import unittest
from datetime import date, datetime, timedelta

from base import ApiTestCase

from willow.domain.reports.reducers import (
    areas_report,
    bookings_report,
    cleaners_report,
    customers_report,
    dashboard_summary,
    monthly_recurring_revenue,
    report_csv_rows,
    revenue_report,
)
from willow.models import InventoryItem


def record(**overrides):
    values = {
        "id": 1,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "status": "confirmed",
        "frequency": "biweekly",
        "first_clean_price": 172,
        "recurring_price": 118,
        "deposit_amount": 34,
        "service_area": "Geneva",
        "scheduled_date": None,
        "cleaner_id": None,
        "created_at": datetime(2025, 6, 2, 10, 0),
    }
    values.update(overrides)
    return values


class TestReportReducers(unittest.TestCase):
    def test_revenue_report(self):
        bookings = [
            record(id=1),
            record(id=2, frequency="weekly", first_clean_price=200, recurring_price=100, created_at=datetime(2025, 5, 20)),
            record(id=3, status="lead", first_clean_price=999),
            record(id=4, status="completed", frequency="onetime", first_clean_price=131),
        ]
        report = revenue_report(bookings)
        self.assertEqual(report["total_revenue"], 503)
        self.assertEqual(report["confirmed_count"], 3)
        self.assertEqual(report["by_frequency"]["biweekly"], {"count": 1, "revenue": 172})
        self.assertEqual(list(report["by_month"].items()), [("May 25", 200), ("Jun 25", 303)])
        # 118 x 2 + 100 x 4
        self.assertEqual(report["monthly_recurring"], 636)

    def test_monthly_recurring_ignores_leads(self):
        self.assertEqual(monthly_recurring_revenue([record(status="lead")]), 0)

    def test_bookings_report(self):
        bookings = [
            record(id=1, scheduled_date=date(2025, 6, 16)),
            record(id=2, status="lead"),
            record(id=3, status="cancelled", scheduled_date=date(2025, 6, 15)),
            record(id=4, status="completed", scheduled_date=date(2025, 6, 16)),
        ]
        report = bookings_report(bookings)
        self.assertEqual(report["total"], 4)
        self.assertEqual(report["status_counts"], {"confirmed": 1, "lead": 1, "cancelled": 1, "completed": 1})
        self.assertEqual(report["conversion_rate"], 50.0)
        self.assertEqual(list(report["by_day_of_week"])[0], "Sun")
        self.assertEqual(report["by_day_of_week"]["Mon"], 2)
        self.assertEqual(report["by_day_of_week"]["Sun"], 1)

    def test_empty_bookings_report(self):
        self.assertEqual(bookings_report([])["conversion_rate"], 0)

    def test_customers_report_uses_first_ever_booking(self):
        start = datetime(2025, 6, 1)
        old = record(id=1, email="old@example.com", created_at=datetime(2025, 3, 1))
        in_range = [
            record(id=2, email="old@example.com", first_clean_price=118),
            record(id=3, email="new@example.com", name="New Customer", first_clean_price=300),
        ]
        report = customers_report(in_range, start, [old] + in_range)
        self.assertEqual(report["total_customers"], 2)
        self.assertEqual(report["new_customers"], 1)
        self.assertEqual(report["repeat_rate"], 0)
        self.assertEqual(report["avg_lifetime_value"], 209)
        self.assertEqual(report["top_customers"][0]["email"], "new@example.com")

    def test_cleaners_report(self):
        cleaners = [
            {"id": 1, "name": "Maria", "status": "active"},
            {"id": 2, "name": "Ana", "status": "on_leave"},
        ]
        bookings = [
            record(id=1, cleaner_id=2),
            record(id=2, cleaner_id=2),
            record(id=3),
            record(id=4, status="cancelled"),
        ]
        report = cleaners_report(bookings, cleaners)
        self.assertEqual(report["cleaner_stats"][0], {"id": 2, "name": "Ana", "assignments": 2, "revenue": 344})
        self.assertEqual(report["unassigned"], 1)
        self.assertEqual(report["active_cleaners"], 1)

    def test_areas_report(self):
        bookings = [
            record(id=1, service_area="Geneva"),
            record(id=2, service_area="Batavia", first_clean_price=400),
            record(id=3, service_area=None),
            record(id=4, status="lead", service_area="Elburn"),
        ]
        areas = areas_report(bookings)
        self.assertEqual([a["area"] for a in areas], ["Batavia", "Geneva", "Unknown"])

    def test_csv_rows(self):
        headers, rows = report_csv_rows("areas", [{"area": "Geneva", "count": 2, "revenue": 344}])
        self.assertEqual(headers, ["Service Area", "Bookings", "Revenue"])
        self.assertEqual(rows, [["Geneva", 2, 344]])
        with self.assertRaises(ValueError):
            report_csv_rows("payroll", {})

    def test_dashboard_summary(self):
        today = date(2025, 6, 10)
        bookings = [
            record(id=1, scheduled_date=date(2025, 6, 12), created_at=datetime(2025, 6, 3)),
            record(id=2, scheduled_date=date(2025, 6, 13), cleaner_id=1, created_at=datetime(2025, 5, 3)),
            record(id=3, status="lead"),
            record(id=4, scheduled_date=date(2025, 6, 1)),
        ]
        summary = dashboard_summary(bookings, [{"id": 1, "name": "Maria", "status": "active"}], 2, today)
        self.assertEqual(summary["open_leads"], 1)
        self.assertEqual(summary["upcoming_bookings"], 2)
        self.assertEqual(summary["unassigned_upcoming"], 1)
        self.assertEqual(summary["revenue_this_month"], 344)
        self.assertEqual(summary["active_cleaners"], 1)
        self.assertEqual(summary["low_stock_items"], 2)


class TestReportsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()

    def test_revenue_report_endpoint(self):
        self.create_booking(status="confirmed")
        self.create_booking(status="lead")
        response = self.client.get("/admin/reports/revenue?range=30d", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_revenue"], 172)

    def test_unknown_report_and_range(self):
        self.assertEqual(self.client.get("/admin/reports/payroll", headers=self.headers).status_code, 404)
        self.assertEqual(
            self.client.get("/admin/reports/revenue?range=decade", headers=self.headers).status_code, 400
        )

    def test_every_report_type_loads(self):
        cleaner = self.create_cleaner()
        self.create_booking(status="confirmed", cleaner_id=cleaner.id)
        for report_type in ("revenue", "bookings", "customers", "cleaners", "areas"):
            response = self.client.get(f"/admin/reports/{report_type}?range=all", headers=self.headers)
            self.assertEqual(response.status_code, 200, report_type)

    def test_report_export(self):
        self.create_booking(status="confirmed")
        response = self.client.get("/admin/reports/areas/export?range=all", headers=self.headers)
        self.assertIn("areas-report-", response.headers["content-disposition"])
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(rows[1], ["Geneva", "1", "172.0"])

    def test_dashboard(self):
        cleaner = self.create_cleaner()
        self.create_booking(status="lead")
        self.create_booking(status="confirmed", scheduled_date=date.today() + timedelta(days=5))
        self.create_booking(
            status="confirmed", scheduled_date=date.today() + timedelta(days=6), cleaner_id=cleaner.id
        )
        self.db.add(InventoryItem(name="Gloves", quantity=1, reorder_threshold=5, status="low_stock"))
        self.db.commit()

        response = self.client.get("/admin/dashboard", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["open_leads"], 1)
        self.assertEqual(data["upcoming_bookings"], 2)
        self.assertEqual(data["unassigned_upcoming"], 1)
        self.assertEqual(data["active_cleaners"], 1)
        self.assertEqual(data["low_stock_items"], 1)
        self.assertEqual(data["monthly_recurring_revenue"], 472)


if __name__ == "__main__":
    unittest.main()

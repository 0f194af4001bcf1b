"""
Report calculations over plain booking/cleaner records.

Every function takes lists of dicts (as produced by `booking_record` and
`cleaner_record`) so reports can be computed and tested without a database.
"""

from datetime import date, datetime
from typing import Optional

from ..pricing.engine import VISITS_PER_MONTH, round2

REVENUE_STATUSES = ("confirmed", "completed")
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
REPORT_WEEKDAY_ORDER = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
REPORT_TYPES = ("revenue", "bookings", "customers", "cleaners", "areas")


def booking_record(booking) -> dict:
    return {
        "id": booking.id,
        "name": booking.name,
        "email": booking.email,
        "status": booking.status or "lead",
        "payment_status": booking.payment_status,
        "frequency": booking.frequency,
        "first_clean_price": booking.first_clean_price or 0,
        "recurring_price": booking.recurring_price or 0,
        "deposit_amount": booking.deposit_amount or 0,
        "service_area": booking.service_area,
        "scheduled_date": booking.scheduled_date,
        "cleaner_id": booking.cleaner_id,
        "cleaner_name": booking.cleaner_name,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
    }


def cleaner_record(cleaner) -> dict:
    return {
        "id": cleaner.id,
        "name": cleaner.name,
        "status": cleaner.status,
        "created_at": cleaner.created_at,
    }


def _revenue_bookings(bookings: list[dict]) -> list[dict]:
    return [b for b in bookings if b.get("status") in REVENUE_STATUSES]


def monthly_recurring_revenue(bookings: list[dict]) -> float:
    """Recurring price x visits per month over confirmed/completed recurring plans"""
    total = 0.0
    for b in _revenue_bookings(bookings):
        visits = VISITS_PER_MONTH.get(b.get("frequency"))
        if visits:
            total += (b.get("recurring_price") or 0) * visits
    return round2(total)


def revenue_report(bookings: list[dict]) -> dict:
    confirmed = _revenue_bookings(bookings)

    by_frequency: dict[str, dict] = {}
    for b in confirmed:
        freq = b.get("frequency") or "onetime"
        entry = by_frequency.setdefault(freq, {"count": 0, "revenue": 0})
        entry["count"] += 1
        entry["revenue"] += b.get("first_clean_price") or 0

    by_month: dict[str, float] = {}
    dated = sorted((b for b in confirmed if b.get("created_at")), key=lambda b: b["created_at"])
    for b in dated:
        label = b["created_at"].strftime("%b %y")
        by_month[label] = by_month.get(label, 0) + (b.get("first_clean_price") or 0)

    return {
        "total_revenue": round2(sum(b.get("first_clean_price") or 0 for b in confirmed)),
        "by_frequency": by_frequency,
        "by_month": by_month,
        "monthly_recurring": monthly_recurring_revenue(bookings),
        "confirmed_count": len(confirmed),
    }


def bookings_report(bookings: list[dict]) -> dict:
    status_counts: dict[str, int] = {}
    for b in bookings:
        status = b.get("status") or "lead"
        status_counts[status] = status_counts.get(status, 0) + 1

    converted = status_counts.get("confirmed", 0) + status_counts.get("completed", 0)
    conversion_rate = round(converted / len(bookings) * 100, 1) if bookings else 0

    by_day_of_week = {label: 0 for label in REPORT_WEEKDAY_ORDER}
    for b in bookings:
        scheduled = b.get("scheduled_date")
        if scheduled:
            by_day_of_week[WEEKDAY_LABELS[scheduled.weekday()]] += 1

    return {
        "total": len(bookings),
        "status_counts": status_counts,
        "conversion_rate": conversion_rate,
        "by_day_of_week": by_day_of_week,
    }


def customers_report(
    bookings: list[dict], start: Optional[datetime], all_bookings: Optional[list[dict]] = None
) -> dict:
    """
    Customers keyed by e-mail. A customer is new when their earliest booking
    ever (from `all_bookings`, default `bookings`) falls inside the range.
    """
    first_seen: dict[str, datetime] = {}
    for b in all_bookings if all_bookings is not None else bookings:
        email, created = b.get("email"), b.get("created_at")
        if email and created and (email not in first_seen or created < first_seen[email]):
            first_seen[email] = created

    customers: dict[str, dict] = {}
    for b in bookings:
        email = b.get("email")
        if not email:
            continue
        entry = customers.setdefault(
            email,
            {"email": email, "name": b.get("name"), "bookings": 0, "spent": 0, "first_booking": first_seen.get(email)},
        )
        entry["bookings"] += 1
        entry["spent"] += b.get("first_clean_price") or 0

    values = list(customers.values())
    new_customers = [
        c for c in values if c["first_booking"] and (start is None or c["first_booking"] >= start)
    ]
    repeat_customers = [c for c in values if c["bookings"] > 1]
    total = len(values)

    return {
        "total_customers": total,
        "new_customers": len(new_customers),
        "repeat_rate": round(len(repeat_customers) / total * 100, 1) if total else 0,
        "avg_lifetime_value": round2(sum(c["spent"] for c in values) / total) if total else 0,
        "top_customers": sorted(values, key=lambda c: c["spent"], reverse=True)[:5],
    }


def cleaners_report(bookings: list[dict], cleaners: list[dict]) -> dict:
    stats = {c["id"]: {"id": c["id"], "name": c["name"], "assignments": 0, "revenue": 0} for c in cleaners}
    for b in bookings:
        entry = stats.get(b.get("cleaner_id"))
        if entry:
            entry["assignments"] += 1
            entry["revenue"] += b.get("first_clean_price") or 0

    return {
        "cleaner_stats": sorted(stats.values(), key=lambda s: s["assignments"], reverse=True),
        "unassigned": sum(1 for b in bookings if not b.get("cleaner_id") and b.get("status") != "cancelled"),
        "active_cleaners": sum(1 for c in cleaners if c.get("status") == "active"),
    }


def areas_report(bookings: list[dict]) -> list[dict]:
    by_area: dict[str, dict] = {}
    for b in _revenue_bookings(bookings):
        area = b.get("service_area") or "Unknown"
        entry = by_area.setdefault(area, {"area": area, "count": 0, "revenue": 0})
        entry["count"] += 1
        entry["revenue"] += b.get("first_clean_price") or 0
    return sorted(by_area.values(), key=lambda a: a["revenue"], reverse=True)


def report_csv_rows(report_type: str, report) -> tuple[list[str], list[list]]:
    """Header and rows for a report's CSV export"""
    if report_type == "revenue":
        rows = [
            ["Total Revenue", report["total_revenue"]],
            ["Confirmed Bookings", report["confirmed_count"]],
            ["Monthly Recurring", report["monthly_recurring"]],
        ]
        rows += [[f"{freq} Revenue", data["revenue"]] for freq, data in report["by_frequency"].items()]
        return ["Metric", "Value"], rows
    if report_type == "bookings":
        return ["Status", "Count"], [[status, count] for status, count in report["status_counts"].items()]
    if report_type == "customers":
        return ["Name", "Email", "Bookings", "Total Spent"], [
            [c["name"], c["email"], c["bookings"], c["spent"]] for c in report["top_customers"]
        ]
    if report_type == "cleaners":
        return ["Cleaner", "Assignments", "Revenue"], [
            [c["name"], c["assignments"], c["revenue"]] for c in report["cleaner_stats"]
        ]
    if report_type == "areas":
        return ["Service Area", "Bookings", "Revenue"], [[a["area"], a["count"], a["revenue"]] for a in report]
    raise ValueError(f"Unknown report type: {report_type}")


def dashboard_summary(
    bookings: list[dict], cleaners: list[dict], low_stock_count: int, today: date
) -> dict:
    """Headline numbers for the admin landing page (bookings are all-time)"""
    month_start = datetime(today.year, today.month, 1)
    revenue_this_month = sum(
        b.get("first_clean_price") or 0
        for b in _revenue_bookings(bookings)
        if b.get("created_at") and b["created_at"] >= month_start
    )
    upcoming = [
        b
        for b in bookings
        if b.get("status") == "confirmed" and b.get("scheduled_date") and b["scheduled_date"] >= today
    ]
    return {
        "open_leads": sum(1 for b in bookings if b.get("status") == "lead"),
        "upcoming_bookings": len(upcoming),
        "unassigned_upcoming": sum(1 for b in upcoming if not b.get("cleaner_id")),
        "revenue_this_month": round2(revenue_this_month),
        "monthly_recurring_revenue": monthly_recurring_revenue(bookings),
        "active_cleaners": sum(1 for c in cleaners if c.get("status") == "active"),
        "low_stock_items": low_stock_count,
    }

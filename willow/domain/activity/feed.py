"""
Activity feed derived from booking and cleaner rows.

Nothing is stored: each event is inferred from a record's current state and
timestamps, so the feed reflects the latest status rather than full history.
"""

from datetime import datetime
from typing import Optional

from ..pricing.engine import format_frequency

ACTIVITY_TYPES = {
    "booking_created": "New Booking",
    "booking_confirmed": "Booking Confirmed",
    "booking_completed": "Cleaning Completed",
    "booking_cancelled": "Booking Cancelled",
    "payment_received": "Payment Received",
    "cleaner_assigned": "Cleaner Assigned",
    "reminder_sent": "Reminder Sent",
    "cleaner_added": "Team Member Added",
}


def _event(id: str, type: str, title: str, description, timestamp, related_id: int, related_type: str, amount=None) -> dict:
    return {
        "id": id,
        "type": type,
        "label": ACTIVITY_TYPES[type],
        "title": title,
        "description": description,
        "amount": amount,
        "timestamp": timestamp,
        "related_id": related_id,
        "related_type": related_type,
    }


def booking_events(booking: dict) -> list[dict]:
    bid, name = booking["id"], booking.get("name")
    created = booking.get("created_at")
    touched = booking.get("updated_at") or created
    status = booking.get("status")
    sqft = booking.get("sqft")

    events = [
        _event(
            f"{bid}-created",
            "booking_created",
            f"New booking from {name}",
            f"{sqft:,} sq ft • {format_frequency(booking.get('frequency') or 'onetime')}" if sqft else "N/A",
            created,
            bid,
            "booking",
            amount=booking.get("first_clean_price"),
        )
    ]

    if status in ("confirmed", "completed"):
        events.append(
            _event(
                f"{bid}-confirmed",
                "booking_confirmed",
                f"Booking confirmed for {name}",
                booking.get("address"),
                booking.get("deposit_paid_at") or touched,
                bid,
                "booking",
            )
        )
    if status == "completed":
        events.append(
            _event(f"{bid}-completed", "booking_completed", f"Cleaning completed for {name}", booking.get("address"), touched, bid, "booking")
        )
    if status == "cancelled":
        events.append(
            _event(
                f"{bid}-cancelled",
                "booking_cancelled",
                f"Booking cancelled for {name}",
                booking.get("address"),
                booking.get("cancelled_at") or touched,
                bid,
                "booking",
            )
        )

    if booking.get("cleaner_id"):
        scheduled = booking.get("scheduled_date")
        events.append(
            _event(
                f"{bid}-assigned",
                "cleaner_assigned",
                f"{booking.get('cleaner_name') or 'Cleaner'} assigned to {name}",
                scheduled.strftime("%m/%d/%Y") if scheduled else "Not scheduled",
                booking.get("cleaner_notified_at") or touched,
                bid,
                "booking",
            )
        )

    if status in ("confirmed", "completed") and booking.get("deposit_amount"):
        events.append(
            _event(
                f"{bid}-payment",
                "payment_received",
                f"Deposit received from {name}",
                "20% deposit",
                booking.get("deposit_paid_at") or touched,
                bid,
                "booking",
                amount=booking.get("deposit_amount"),
            )
        )

    if booking.get("reminder_sent_at"):
        events.append(
            _event(
                f"{bid}-reminder",
                "reminder_sent",
                f"Reminder sent to {name}",
                booking.get("email"),
                booking["reminder_sent_at"],
                bid,
                "booking",
            )
        )
    return events


def cleaner_events(cleaner: dict) -> list[dict]:
    return [
        _event(
            f"cleaner-{cleaner['id']}-created",
            "cleaner_added",
            f"{cleaner.get('name')} added to team",
            cleaner.get("email"),
            cleaner.get("created_at"),
            cleaner["id"],
            "cleaner",
        )
    ]


def build_activity_feed(
    bookings: list[dict],
    cleaners: list[dict],
    start: Optional[datetime] = None,
    activity_type: Optional[str] = None,
    search: Optional[str] = None,
) -> list[dict]:
    """Events for records created since `start`, newest first"""
    events = []
    for booking in bookings:
        created = booking.get("created_at")
        if created and (start is None or created >= start):
            events.extend(booking_events(booking))
    for cleaner in cleaners:
        created = cleaner.get("created_at")
        if created and (start is None or created >= start):
            events.extend(cleaner_events(cleaner))

    if activity_type and activity_type != "all":
        events = [e for e in events if e["type"] == activity_type]
    if search:
        query = search.lower()
        events = [
            e
            for e in events
            if query in e["title"].lower() or query in (e.get("description") or "").lower()
        ]

    return sorted(events, key=lambda e: e["timestamp"] or datetime.min, reverse=True)


def group_by_day(events: list[dict]) -> list[dict]:
    """[{date: 'Monday, March 3, 2025', activities: [...]}] in feed order"""
    groups: dict[str, list] = {}
    for event in events:
        ts = event["timestamp"]
        label = f"{ts.strftime('%A, %B')} {ts.day}, {ts.year}" if ts else "Unknown date"
        groups.setdefault(label, []).append(event)
    return [{"date": label, "activities": items} for label, items in groups.items()]

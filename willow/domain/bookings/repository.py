"""Booking repository - Database operations for bookings and leads"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking

# Statuses shown on the admin bookings screen
ADMIN_BOOKING_STATUSES = ("confirmed", "completed", "payment_initiated")
OPEN_FUNNEL_STATUSES = ("lead", "payment_initiated")


def apply_search(query, search: Optional[str]):
    """Case-insensitive match on name, email and address; substring match on phone"""
    if not search:
        return query
    term = f"%{search.strip()}%"
    return query.filter(
        or_(
            Booking.name.ilike(term),
            Booking.email.ilike(term),
            Booking.address.ilike(term),
            Booking.phone.contains(search.strip()),
        )
    )


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.cleaner))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.public_id == public_id).first()

    @staticmethod
    def get_by_checkout_session(db: Session, session_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.stripe_checkout_session_id == session_id).first()

    @staticmethod
    def get_latest_open_for_email(db: Session, email: str) -> Optional[Booking]:
        """Most recent lead/payment_initiated booking for a customer email"""
        return (
            db.query(Booking)
            .filter(Booking.email == email.lower(), Booking.status.in_(OPEN_FUNNEL_STATUSES))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .first()
        )

    @staticmethod
    def get_latest_for_cal_booking(db: Session, cal_booking_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.cal_booking_id == cal_booking_id)
            .order_by(Booking.id.desc())
            .first()
        )

    @staticmethod
    def list_admin_bookings(
        db: Session, time_filter: str = "upcoming", search: Optional[str] = None, today: Optional[date] = None
    ) -> list[Booking]:
        today = today or date.today()
        query = (
            db.query(Booking)
            .options(joinedload(Booking.cleaner))
            .filter(Booking.status.in_(ADMIN_BOOKING_STATUSES))
        )
        if time_filter == "upcoming":
            query = query.filter(
                or_(Booking.scheduled_date.is_(None), Booking.scheduled_date >= today)
            )
        elif time_filter == "past":
            query = query.filter(Booking.scheduled_date < today)

        query = apply_search(query, search)
        return query.order_by(Booking.scheduled_date.asc(), Booking.id.asc()).all()

    @staticmethod
    def list_leads(db: Session, search: Optional[str] = None) -> list[Booking]:
        query = db.query(Booking).filter(Booking.status == "lead")
        query = apply_search(query, search)
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def list_created_since(db: Session, since: Optional[datetime]) -> list[Booking]:
        """All bookings created on/after `since` (all time when None)"""
        query = db.query(Booking).options(joinedload(Booking.cleaner))
        if since is not None:
            query = query.filter(Booking.created_at >= since)
        return query.order_by(Booking.created_at.desc()).all()

    @staticmethod
    def list_scheduled_on(db: Session, day: date, statuses: tuple) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.cleaner))
            .filter(Booking.scheduled_date == day, Booking.status.in_(statuses))
            .all()
        )

    @staticmethod
    def list_scheduled_between(
        db: Session, start: date, end: date, statuses: tuple, cleaner_id: Optional[int] = None
    ) -> list[Booking]:
        query = db.query(Booking).filter(
            Booking.scheduled_date >= start,
            Booking.scheduled_date <= end,
            Booking.status.in_(statuses),
        )
        if cleaner_id is not None:
            query = query.filter(Booking.cleaner_id == cleaner_id)
        return query.order_by(Booking.scheduled_date.asc(), Booking.scheduled_time.asc()).all()

    @staticmethod
    def create(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update(db: Session, booking: Booking, **updates) -> Booking:
        """Apply updates as given; None clears a field"""
        for key, value in updates.items():
            if hasattr(booking, key):
                setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

"""Expense repository - Database operations for business expenses"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Booking, Expense

REVENUE_STATUSES = ("confirmed", "completed")


class ExpenseRepository:
    """Repository for expense database operations"""

    @staticmethod
    def list_expenses(
        db: Session,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Expense]:
        query = db.query(Expense)
        if start is not None:
            query = query.filter(Expense.date >= start)
        if end is not None:
            query = query.filter(Expense.date <= end)
        if category and category != "all":
            query = query.filter(Expense.category == category)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(Expense.description.ilike(term), Expense.vendor.ilike(term)))
        return query.order_by(Expense.date.desc(), Expense.id.desc()).all()

    @staticmethod
    def list_revenue_bookings(db: Session) -> list[Booking]:
        return db.query(Booking).filter(Booking.status.in_(REVENUE_STATUSES)).all()

    @staticmethod
    def get_by_id(db: Session, expense_id: int) -> Optional[Expense]:
        return db.query(Expense).filter(Expense.id == expense_id).first()

    @staticmethod
    def create(db: Session, **expense_data) -> Expense:
        expense = Expense(**expense_data)
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense

    @staticmethod
    def update(db: Session, expense: Expense, **updates) -> Expense:
        for key, value in updates.items():
            if hasattr(expense, key):
                setattr(expense, key, value)
        db.commit()
        db.refresh(expense)
        return expense

    @staticmethod
    def delete(db: Session, expense: Expense) -> None:
        db.delete(expense)
        db.commit()

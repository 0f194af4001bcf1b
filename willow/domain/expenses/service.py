"""Expense service - bookkeeping and profit summary"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models import Expense
from ...shared.time_ranges import in_range, range_start
from ...utils.csv_export import csv_response
from ..pricing.engine import round2
from .repository import ExpenseRepository
from .schemas import ExpenseCreate, ExpenseResponse, ExpenseUpdate

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = ("vendor", "notes", "receipt_url")


def summarize_expenses(expenses: list[dict], revenue_bookings: list[dict], start: Optional[datetime], end: datetime) -> dict:
    """
    Totals for already-filtered expenses against booking revenue in the same window.

    Revenue is the first-clean price of confirmed/completed bookings created in
    the window. Margin is a percentage to one decimal, 0 without revenue.
    """
    total_expenses = sum(e.get("amount") or 0 for e in expenses)
    total_revenue = sum(
        b.get("first_clean_price") or 0
        for b in revenue_bookings
        if in_range(b.get("created_at"), start, end)
    )

    by_category: dict[str, float] = {}
    for e in expenses:
        category = e.get("category") or "other"
        by_category[category] = round2(by_category.get(category, 0) + (e.get("amount") or 0))

    profit = total_revenue - total_expenses
    profit_margin = round(profit / total_revenue * 100, 1) if total_revenue > 0 else 0

    return {
        "total_expenses": round2(total_expenses),
        "total_revenue": round2(total_revenue),
        "profit": round2(profit),
        "profit_margin": profit_margin,
        "by_category": by_category,
        "count": len(expenses),
    }


class ExpenseService:
    """Service layer for expenses"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ExpenseRepository()

    def _window(self, time_range: str) -> tuple:
        try:
            start = range_start(time_range)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return start, datetime.utcnow()

    def _filtered(self, time_range: str, category: Optional[str], search: Optional[str]) -> list[Expense]:
        start, end = self._window(time_range)
        return self.repo.list_expenses(
            self.db,
            start=start.date() if start else None,
            end=end.date(),
            category=category,
            search=search,
        )

    def list_expenses(
        self, time_range: str = "all", category: Optional[str] = None, search: Optional[str] = None
    ) -> list[dict]:
        return [
            ExpenseResponse.model_validate(e).model_dump(mode="json")
            for e in self._filtered(time_range, category, search)
        ]

    def summary(
        self, time_range: str = "30d", category: Optional[str] = None, search: Optional[str] = None
    ) -> dict:
        start, end = self._window(time_range)
        expenses = [{"amount": e.amount, "category": e.category} for e in self._filtered(time_range, category, search)]
        bookings = [
            {"first_clean_price": b.first_clean_price, "created_at": b.created_at}
            for b in self.repo.list_revenue_bookings(self.db)
        ]
        return {"range": time_range, **summarize_expenses(expenses, bookings, start, end)}

    def get_expense(self, expense_id: int) -> Expense:
        expense = self.repo.get_by_id(self.db, expense_id)
        if not expense:
            raise HTTPException(status_code=404, detail="Expense not found")
        return expense

    def create_expense(self, data: ExpenseCreate) -> Expense:
        expense = self.repo.create(self.db, **data.model_dump())
        logger.info(f"💸 Expense recorded: {expense.description} ${expense.amount:.2f}")
        return expense

    def update_expense(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = self.get_expense(expense_id)
        updates = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        return self.repo.update(self.db, expense, **updates)

    def delete_expense(self, expense_id: int) -> dict:
        expense = self.get_expense(expense_id)
        self.repo.delete(self.db, expense)
        logger.info(f"🗑️ Expense removed: {expense_id}")
        return {"message": "Expense deleted"}

    def export_csv(
        self, time_range: str = "all", category: Optional[str] = None, search: Optional[str] = None
    ) -> StreamingResponse:
        headers = ["Date", "Description", "Category", "Vendor", "Amount", "Notes"]
        rows = [
            [e.date.isoformat(), e.description, e.category, e.vendor, e.amount, e.notes]
            for e in self._filtered(time_range, category, search)
        ]
        return csv_response(f"expenses-{date.today().isoformat()}.csv", headers, rows)

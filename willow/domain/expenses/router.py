"""Expense router - admin bookkeeping"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from .schemas import ExpenseCreate, ExpenseResponse, ExpenseSummary, ExpenseUpdate
from .service import ExpenseService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/expenses", tags=["Expenses"], dependencies=[Depends(get_current_admin)])


def get_expense_service(db: Session = Depends(get_db)) -> ExpenseService:
    """Dependency injection for ExpenseService"""
    return ExpenseService(db)


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses(
    response: Response,
    range: str = Query("all"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: ExpenseService = Depends(get_expense_service),
):
    """Expenses, newest first"""
    return fetch_with_fallback(
        f"expenses:{range}:{category or 'all'}:{search or ''}",
        lambda: service.list_expenses(range, category, search),
        db=service.db,
        response=response,
    )


@router.get("/summary", response_model=ExpenseSummary)
async def expense_summary(
    response: Response,
    range: str = Query("30d"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: ExpenseService = Depends(get_expense_service),
):
    return fetch_with_fallback(
        f"expenses-summary:{range}:{category or 'all'}:{search or ''}",
        lambda: service.summary(range, category, search),
        db=service.db,
        response=response,
    )


@router.get("/export")
async def export_expenses(
    range: str = Query("all"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: ExpenseService = Depends(get_expense_service),
):
    return service.export_csv(range, category, search)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(expense_id: int, service: ExpenseService = Depends(get_expense_service)):
    return service.get_expense(expense_id)


@router.post("", response_model=ExpenseResponse, status_code=201)
async def create_expense(data: ExpenseCreate, service: ExpenseService = Depends(get_expense_service)):
    return service.create_expense(data)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int, data: ExpenseUpdate, service: ExpenseService = Depends(get_expense_service)
):
    return service.update_expense(expense_id, data)


@router.delete("/{expense_id}")
async def delete_expense(expense_id: int, service: ExpenseService = Depends(get_expense_service)):
    return service.delete_expense(expense_id)

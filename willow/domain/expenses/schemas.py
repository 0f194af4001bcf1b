"""Expense domain schemas"""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import EXPENSE_CATEGORIES
from ...shared.validators import validate_choice
from ...utils.sanitization import clean_text


class ExpenseBase(BaseModel):
    @field_validator("category", check_fields=False)
    @classmethod
    def validate_category(cls, v):
        return validate_choice(v, EXPENSE_CATEGORIES, "category")

    @field_validator("description", "vendor", check_fields=False)
    @classmethod
    def clean_fields(cls, v):
        return clean_text(v, max_length=500)


class ExpenseCreate(ExpenseBase):
    description: str = Field(..., min_length=1, max_length=500)
    amount: float = Field(..., gt=0)
    category: str = "supplies"
    date: date_type
    vendor: Optional[str] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseUpdate(ExpenseBase):
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[str] = None
    date: Optional[date_type] = None
    vendor: Optional[str] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: int
    description: str
    amount: float
    category: str
    date: date_type
    vendor: Optional[str] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseSummary(BaseModel):
    range: str
    total_expenses: float
    total_revenue: float
    profit: float
    profit_margin: float
    by_category: dict[str, float]
    count: int

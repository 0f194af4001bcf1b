"""Inventory domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import INVENTORY_CATEGORIES
from ...shared.validators import validate_choice


class InventoryItemBase(BaseModel):
    @field_validator("category", check_fields=False)
    @classmethod
    def validate_category(cls, v):
        return validate_choice(v, INVENTORY_CATEGORIES, "category")

    @field_validator("purchase_url", check_fields=False)
    @classmethod
    def validate_url(cls, v):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("purchase_url must be an http(s) link")
        return v


class InventoryItemCreate(InventoryItemBase):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = "supplies"
    quantity: int = Field(0, ge=0)
    unit: str = "units"
    reorder_threshold: int = Field(5, ge=0)
    reorder_quantity: int = Field(10, ge=0)
    purchase_url: Optional[str] = None
    cost_per_unit: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class InventoryItemUpdate(InventoryItemBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    reorder_threshold: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    purchase_url: Optional[str] = None
    cost_per_unit: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class QuantityAdjustment(BaseModel):
    """Relative change, e.g. -1 after a job or +reorder_quantity after restocking"""

    delta: int


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    category: str
    quantity: int
    unit: Optional[str] = None
    reorder_threshold: int
    reorder_quantity: int
    purchase_url: Optional[str] = None
    cost_per_unit: Optional[float] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

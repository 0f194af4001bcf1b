"""Inventory service - stock levels and reorder status"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models import InventoryItem
from ...utils.csv_export import csv_response
from .repository import InventoryRepository
from .schemas import InventoryItemCreate, InventoryItemResponse, InventoryItemUpdate

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = ("purchase_url", "cost_per_unit", "notes")


def stock_status(quantity: int, reorder_threshold: int) -> str:
    if quantity <= 0:
        return "out_of_stock"
    if quantity <= reorder_threshold:
        return "low_stock"
    return "in_stock"


class InventoryService:
    """Service layer for inventory items"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InventoryRepository()

    def list_items(self, search: Optional[str] = None, category: Optional[str] = None) -> list[dict]:
        return [
            InventoryItemResponse.model_validate(item).model_dump(mode="json")
            for item in self.repo.list_items(self.db, search, category)
        ]

    def list_low_stock(self) -> list[InventoryItem]:
        return self.repo.list_low_stock(self.db)

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.repo.get_by_id(self.db, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Inventory item not found")
        return item

    def create_item(self, data: InventoryItemCreate) -> InventoryItem:
        values = data.model_dump()
        values["status"] = stock_status(values["quantity"], values["reorder_threshold"])
        item = self.repo.create(self.db, **values)
        logger.info(f"✅ Inventory item added: {item.name} ({item.quantity} {item.unit})")
        return item

    def update_item(self, item_id: int, data: InventoryItemUpdate) -> InventoryItem:
        item = self.get_item(item_id)
        updates = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        quantity = updates.get("quantity", item.quantity)
        threshold = updates.get("reorder_threshold", item.reorder_threshold)
        updates["status"] = stock_status(quantity, threshold)
        return self.repo.update(self.db, item, **updates)

    def adjust_quantity(self, item_id: int, delta: int) -> InventoryItem:
        """Apply a relative change; stock never goes below zero"""
        item = self.get_item(item_id)
        quantity = max(0, item.quantity + delta)
        status = stock_status(quantity, item.reorder_threshold)
        if status != item.status and status != "in_stock":
            logger.warning(f"⚠️ {item.name} is now {status.replace('_', ' ')} ({quantity} left)")
        return self.repo.update(self.db, item, quantity=quantity, status=status)

    def delete_item(self, item_id: int) -> dict:
        item = self.get_item(item_id)
        self.repo.delete(self.db, item)
        logger.info(f"🗑️ Inventory item removed: {item_id}")
        return {"message": "Inventory item deleted"}

    def export_csv(self, search: Optional[str] = None, category: Optional[str] = None) -> StreamingResponse:
        items = self.repo.list_items(self.db, search, category)
        headers = [
            "Name",
            "Category",
            "Quantity",
            "Unit",
            "Reorder At",
            "Reorder Quantity",
            "Cost Per Unit",
            "Status",
            "Purchase URL",
        ]
        rows = [
            [
                item.name,
                item.category,
                item.quantity,
                item.unit,
                item.reorder_threshold,
                item.reorder_quantity,
                item.cost_per_unit,
                item.status,
                item.purchase_url,
            ]
            for item in items
        ]
        return csv_response(f"inventory-{date.today().isoformat()}.csv", headers, rows)

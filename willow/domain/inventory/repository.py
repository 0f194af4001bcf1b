"""Inventory repository - Database operations for supply stock"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import InventoryItem

LOW_STATUSES = ("low_stock", "out_of_stock")


class InventoryRepository:
    """Repository for inventory database operations"""

    @staticmethod
    def list_items(
        db: Session, search: Optional[str] = None, category: Optional[str] = None
    ) -> list[InventoryItem]:
        query = db.query(InventoryItem)
        if category and category != "all":
            query = query.filter(InventoryItem.category == category)
        if search:
            query = query.filter(InventoryItem.name.ilike(f"%{search.strip()}%"))
        return query.order_by(InventoryItem.status.asc(), InventoryItem.name.asc()).all()

    @staticmethod
    def list_low_stock(db: Session) -> list[InventoryItem]:
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.status.in_(LOW_STATUSES))
            .order_by(InventoryItem.quantity.asc(), InventoryItem.name.asc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, item_id: int) -> Optional[InventoryItem]:
        return db.query(InventoryItem).filter(InventoryItem.id == item_id).first()

    @staticmethod
    def create(db: Session, **item_data) -> InventoryItem:
        item = InventoryItem(**item_data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update(db: Session, item: InventoryItem, **updates) -> InventoryItem:
        for key, value in updates.items():
            if hasattr(item, key):
                setattr(item, key, value)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete(db: Session, item: InventoryItem) -> None:
        db.delete(item)
        db.commit()

"""Cleaner repository - Database operations for the cleaner roster"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Cleaner


class CleanerRepository:
    """Repository for cleaner database operations"""

    @staticmethod
    def list_cleaners(db: Session, status: Optional[str] = None) -> list[Cleaner]:
        query = db.query(Cleaner)
        if status:
            query = query.filter(Cleaner.status == status)
        return query.order_by(Cleaner.name.asc()).all()

    @staticmethod
    def list_created_since(db: Session, since: Optional[datetime]) -> list[Cleaner]:
        query = db.query(Cleaner)
        if since is not None:
            query = query.filter(Cleaner.created_at >= since)
        return query.all()

    @staticmethod
    def get_by_id(db: Session, cleaner_id: int) -> Optional[Cleaner]:
        return db.query(Cleaner).filter(Cleaner.id == cleaner_id).first()

    @staticmethod
    def create(db: Session, **cleaner_data) -> Cleaner:
        cleaner = Cleaner(**cleaner_data)
        db.add(cleaner)
        db.commit()
        db.refresh(cleaner)
        return cleaner

    @staticmethod
    def update(db: Session, cleaner: Cleaner, **updates) -> Cleaner:
        for key, value in updates.items():
            if value is not None and hasattr(cleaner, key):
                setattr(cleaner, key, value)
        db.commit()
        db.refresh(cleaner)
        return cleaner

    @staticmethod
    def delete(db: Session, cleaner: Cleaner) -> None:
        db.delete(cleaner)
        db.commit()

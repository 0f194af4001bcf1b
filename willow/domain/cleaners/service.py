"""Cleaner service - roster management and round-robin assignment"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import WEEKDAYS, Cleaner
from .repository import CleanerRepository
from .schemas import CleanerCreate, CleanerResponse, CleanerUpdate

logger = logging.getLogger(__name__)


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def pick_round_robin(cleaners: list[Cleaner], day: Optional[date]) -> Optional[Cleaner]:
    """
    Active cleaner available on `day` who was assigned least recently.

    Never-assigned cleaners go first; ties keep roster order. When the
    booking has no date yet, availability is not checked.
    """
    candidates = [c for c in cleaners if c.status == "active"]
    if day is not None:
        weekday = weekday_name(day)
        candidates = [c for c in candidates if weekday in (c.available_days or [])]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda c: (c.last_assigned_at is not None, c.last_assigned_at or datetime.min),
    )


class CleanerService:
    """Service layer for the cleaner roster"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CleanerRepository()

    def list_cleaners(self, status: Optional[str] = None) -> list[dict]:
        return [
            CleanerResponse.model_validate(c).model_dump(mode="json")
            for c in self.repo.list_cleaners(self.db, status)
        ]

    def get_cleaner(self, cleaner_id: int) -> Cleaner:
        cleaner = self.repo.get_by_id(self.db, cleaner_id)
        if not cleaner:
            raise HTTPException(status_code=404, detail="Cleaner not found")
        return cleaner

    def summary(self) -> dict:
        cleaners = self.repo.list_cleaners(self.db)
        counts = {status: 0 for status in ("active", "inactive", "on_leave")}
        for c in cleaners:
            counts[c.status] = counts.get(c.status, 0) + 1
        return {"total": len(cleaners), **counts}

    def create_cleaner(self, data: CleanerCreate) -> Cleaner:
        cleaner = self.repo.create(self.db, **data.model_dump())
        logger.info(f"✅ Cleaner added: {cleaner.name} (id={cleaner.id})")
        return cleaner

    def update_cleaner(self, cleaner_id: int, data: CleanerUpdate) -> Cleaner:
        cleaner = self.get_cleaner(cleaner_id)
        return self.repo.update(self.db, cleaner, **data.model_dump(exclude_unset=True))

    def delete_cleaner(self, cleaner_id: int) -> dict:
        cleaner = self.get_cleaner(cleaner_id)
        self.repo.delete(self.db, cleaner)
        logger.info(f"🗑️ Cleaner removed: {cleaner_id}")
        return {"message": "Cleaner deleted"}

    def next_available(self, day: Optional[date]) -> Optional[Cleaner]:
        return pick_round_robin(self.repo.list_cleaners(self.db, status="active"), day)

    def record_assignment(self, cleaner: Cleaner) -> Cleaner:
        """Bump round-robin counters after a booking is given to this cleaner"""
        cleaner.total_assignments = (cleaner.total_assignments or 0) + 1
        cleaner.last_assigned_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(cleaner)
        return cleaner

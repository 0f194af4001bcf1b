"""Cleaner router - admin roster endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from .schemas import CleanerCreate, CleanerResponse, CleanerSummary, CleanerUpdate
from .service import CleanerService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/cleaners", tags=["Cleaners"], dependencies=[Depends(get_current_admin)]
)


def get_cleaner_service(db: Session = Depends(get_db)) -> CleanerService:
    """Dependency injection for CleanerService"""
    return CleanerService(db)


@router.get("", response_model=list[CleanerResponse])
async def list_cleaners(
    response: Response,
    status: Optional[str] = Query(None),
    service: CleanerService = Depends(get_cleaner_service),
):
    """Roster ordered by name"""
    return fetch_with_fallback(
        f"cleaners:{status or 'all'}",
        lambda: service.list_cleaners(status),
        db=service.db,
        response=response,
    )


@router.get("/summary", response_model=CleanerSummary)
async def cleaner_summary(service: CleanerService = Depends(get_cleaner_service)):
    return service.summary()


@router.get("/{cleaner_id}", response_model=CleanerResponse)
async def get_cleaner(cleaner_id: int, service: CleanerService = Depends(get_cleaner_service)):
    return service.get_cleaner(cleaner_id)


@router.post("", response_model=CleanerResponse, status_code=201)
async def create_cleaner(
    data: CleanerCreate, service: CleanerService = Depends(get_cleaner_service)
):
    return service.create_cleaner(data)


@router.patch("/{cleaner_id}", response_model=CleanerResponse)
async def update_cleaner(
    cleaner_id: int, data: CleanerUpdate, service: CleanerService = Depends(get_cleaner_service)
):
    return service.update_cleaner(cleaner_id, data)


@router.delete("/{cleaner_id}")
async def delete_cleaner(cleaner_id: int, service: CleanerService = Depends(get_cleaner_service)):
    return service.delete_cleaner(cleaner_id)

"""Report and dashboard routes"""

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from .service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Reports"], dependencies=[Depends(get_current_admin)])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    """Dependency injection for ReportService"""
    return ReportService(db)


@router.get("/dashboard")
async def dashboard(response: Response, service: ReportService = Depends(get_report_service)):
    """Open leads, upcoming work, revenue, team and stock at a glance"""
    return fetch_with_fallback("dashboard", service.dashboard, db=service.db, response=response)


@router.get("/reports/{report_type}")
async def get_report(
    report_type: str,
    response: Response,
    range: str = Query("30d"),
    service: ReportService = Depends(get_report_service),
):
    return fetch_with_fallback(
        f"reports:{report_type}:{range}",
        lambda: service.build_report(report_type, range),
        db=service.db,
        response=response,
    )


@router.get("/reports/{report_type}/export")
async def export_report(
    report_type: str,
    range: str = Query("30d"),
    service: ReportService = Depends(get_report_service),
):
    return service.export_report(report_type, range)

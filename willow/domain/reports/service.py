"""Report service - loads records and runs the report reducers"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...shared.time_ranges import range_start
from ...utils.csv_export import csv_response
from ..bookings.repository import BookingRepository
from ..cleaners.repository import CleanerRepository
from ..inventory.repository import InventoryRepository
from .reducers import (
    REPORT_TYPES,
    areas_report,
    booking_record,
    bookings_report,
    cleaner_record,
    cleaners_report,
    customers_report,
    dashboard_summary,
    report_csv_rows,
    revenue_report,
)

logger = logging.getLogger(__name__)


class ReportService:
    """Service layer for reports and the dashboard"""

    def __init__(self, db: Session):
        self.db = db

    def _start(self, time_range: str) -> Optional[datetime]:
        try:
            return range_start(time_range)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    def build_report(self, report_type: str, time_range: str = "30d"):
        if report_type not in REPORT_TYPES:
            raise HTTPException(status_code=404, detail=f"Unknown report: {report_type}")
        start = self._start(time_range)
        bookings = [booking_record(b) for b in BookingRepository.list_created_since(self.db, start)]

        if report_type == "revenue":
            return revenue_report(bookings)
        if report_type == "bookings":
            return bookings_report(bookings)
        if report_type == "customers":
            all_bookings = [booking_record(b) for b in BookingRepository.list_created_since(self.db, None)]
            return customers_report(bookings, start, all_bookings)
        if report_type == "cleaners":
            cleaners = [cleaner_record(c) for c in CleanerRepository.list_cleaners(self.db)]
            return cleaners_report(bookings, cleaners)
        return areas_report(bookings)

    def export_report(self, report_type: str, time_range: str = "30d") -> StreamingResponse:
        report = self.build_report(report_type, time_range)
        headers, rows = report_csv_rows(report_type, report)
        return csv_response(f"{report_type}-report-{date.today().isoformat()}.csv", headers, rows)

    def dashboard(self, today: Optional[date] = None) -> dict:
        bookings = [booking_record(b) for b in BookingRepository.list_created_since(self.db, None)]
        cleaners = [cleaner_record(c) for c in CleanerRepository.list_cleaners(self.db)]
        low_stock = len(InventoryRepository.list_low_stock(self.db))
        return dashboard_summary(bookings, cleaners, low_stock, today or date.today())

import csv
import logging
from io import StringIO
from typing import Iterable

from fastapi.responses import StreamingResponse

logger = logging.getLogger(__name__)


def build_csv(headers: list[str], rows: Iterable[list]) -> str:
    """Render rows as CSV text; None becomes an empty cell"""
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return output.getvalue()


def csv_response(filename: str, headers: list[str], rows: Iterable[list]) -> StreamingResponse:
    content = build_csv(headers, rows)
    logger.info(f"✅ CSV export: {filename}")
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Cache-Control": "no-cache",
        },
    )

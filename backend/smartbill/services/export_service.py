# Overview: Serialize analytics rows to CSV or Excel workbooks for download.

from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from smartbill.errors import ValidationError
from smartbill.time_utils import to_utc_z

EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
COLUMN_WIDTH = 20


def _csv_value(value):
    if isinstance(value, datetime):
        return to_utc_z(value)
    if value is None:
        return ""
    return value


def _xlsx_value(value):
    # openpyxl writes Decimal as text; amounts must stay numeric in the sheet
    if isinstance(value, Decimal):
        return float(value)
    return value


def rows_to_csv(rows: list[dict]) -> str:
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    for row in rows:
        writer.writerow({k: _csv_value(v) for k, v in row.items()})
    return buffer.getvalue()


def rows_to_xlsx(rows: list[dict], *, title: str = "Analytics Data") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title

    if rows:
        headers = list(rows[0].keys())
        sheet.append(headers)
        for idx in range(1, len(headers) + 1):
            sheet.column_dimensions[get_column_letter(idx)].width = COLUMN_WIDTH
        for row in rows:
            sheet.append([_xlsx_value(row[h]) for h in headers])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_rows(rows: list[dict], fmt: str) -> tuple[bytes, str, str]:
    """
    Render rows in the requested format.

    Returns (body, mimetype, file extension).
    """
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError("format must be csv or xlsx")
    if fmt == "xlsx":
        return rows_to_xlsx(rows), EXPORT_FORMATS[fmt], fmt
    return rows_to_csv(rows).encode("utf-8"), EXPORT_FORMATS[fmt], fmt

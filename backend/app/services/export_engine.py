"""
Export Engine — BOQ Excel deliverable.

Writes the priced BOQ (one sheet) with project and client header rows.
Unit price and total always come from the items' authoritative fields.
Output saved to DOWNLOAD_DIR and the path returned for FileResponse.
"""
import logging
import os
import uuid
from typing import Any, Iterable, List, Optional

import xlsxwriter

from app.config import CURRENCY, DOWNLOAD_DIR, EXPORT_FILE_NAME
from app.models.boq_models import BOQItem

logger = logging.getLogger("bsr-export")

EXPORT_COLUMNS: List[str] = [
    "S.No.",
    "Description of Work",
    "Unit",
    "Quantity",
    "Manpower",
    f"Unit Price ({CURRENCY})",
    f"Total Amount ({CURRENCY})",
]

# Column widths in characters: S.No./labels, description/values, unit, qty, manpower, rate, amount
COLUMN_WIDTHS: List[int] = [15, 60, 10, 10, 25, 15, 15]


def _ensure_dir(directory: str) -> None:
    os.makedirs(directory, exist_ok=True)


def build_export_rows(items: Iterable[BOQItem]) -> List[List[Any]]:
    """Body rows in export column order; S.No. is 1-based list position."""
    return [
        [
            index,
            item.description,
            item.unit,
            item.quantity,
            item.manpower,
            item.unit_price,
            item.total,
        ]
        for index, item in enumerate(items, start=1)
    ]


def write_boq_workbook(
    items: Iterable[BOQItem],
    project_name: str,
    client_name: str,
    file_name: str = EXPORT_FILE_NAME,
    directory: Optional[str] = None,
) -> str:
    """
    Write ``<file_name>_<8 hex>.xlsx`` and return its path.

    Each call gets its own file, so concurrent exports never share a path.

    Layout:
        Project Name: | <project>
        Client Name:  | <client>
        (blank)
        header row
        one row per item
    """
    out_dir = directory or DOWNLOAD_DIR
    _ensure_dir(out_dir)
    path = os.path.join(out_dir, f"{file_name}_{uuid.uuid4().hex[:8]}.xlsx")
    rows = build_export_rows(items)

    workbook = xlsxwriter.Workbook(path)
    try:
        sheet = workbook.add_worksheet("BOQ")
        bold = workbook.add_format({"bold": True})
        header_fmt = workbook.add_format({"bold": True, "bg_color": "#DCE6F1", "border": 1})
        money_fmt = workbook.add_format({"num_format": "#,##0.00"})

        sheet.write(0, 0, "Project Name:", bold)
        sheet.write(0, 1, project_name)
        sheet.write(1, 0, "Client Name:", bold)
        sheet.write(1, 1, client_name)

        header_row = 3
        sheet.write_row(header_row, 0, EXPORT_COLUMNS, header_fmt)
        for offset, row in enumerate(rows, start=1):
            r = header_row + offset
            sheet.write_row(r, 0, row[:5])
            sheet.write_number(r, 5, row[5], money_fmt)
            sheet.write_number(r, 6, row[6], money_fmt)

        for col, width in enumerate(COLUMN_WIDTHS):
            sheet.set_column(col, col, width)
    finally:
        workbook.close()

    logger.info(f"BOQ export written: {path} ({len(rows)} items)")
    return path

# =================================================================
#   NPC Smart Report - Excel Exports
# =================================================================

import io
import datetime
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

REPORT_HEADERS = [
    "Title", "Representative", "Class", "Status", "Date", "Time",
    "Items Checked", "Total Items", "Flagged Items"
]


def build_reports_workbook(reports, sheet_title="Reports"):
    """
    Builds an in-memory .xlsx with one row per report.

    Returns:
        io.BytesIO positioned at the start of the file.
    """
    wb = Workbook()
    ws = wb.active
    # Excel caps sheet titles at 31 characters
    ws.title = sheet_title[:31]

    ws.append(REPORT_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal='center')

    for report in reports:
        ws.append([
            report.title,
            report.representative,
            report.class_name,
            report.status.capitalize(),
            report.date,
            report.time,
            report.items_checked,
            report.total_items,
            report.flagged_items
        ])

    for column, width in zip('ABCDEFGHI', (36, 22, 22, 12, 14, 10, 14, 12, 14)):
        ws.column_dimensions[column].width = width

    in_memory_file = io.BytesIO()
    wb.save(in_memory_file)
    in_memory_file.seek(0)

    logger.info(f"[EXPORT] Workbook '{ws.title}' built - Rows: {len(reports)}")
    return in_memory_file


def export_filename(prefix):
    return f"{prefix}_{datetime.date.today()}.xlsx"

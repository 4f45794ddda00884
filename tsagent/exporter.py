"""
Spreadsheet, CSV and text exports of a timesheet
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .models import TimesheetEntry, TimesheetSummary, round_hours

logger = logging.getLogger(__name__)

HEADERS = ['Date', 'Work Content', 'Hours Spent', 'Remaining Hours']
COLUMN_WIDTHS = [12, 40, 12, 12]
HEADER_FILL = PatternFill(start_color='E3F2FD', end_color='E3F2FD', fill_type='solid')
SHEET_TITLE = 'Timesheet'


class ExportError(Exception):
    """Raised when a timesheet cannot be exported"""
    pass


def default_filename(extension: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"timesheet_{now.strftime('%Y%m%d_%H%M%S')}.{extension}"


def summary_rows(entries: List[TimesheetEntry]) -> List[Tuple[str, str]]:
    summary = TimesheetSummary.from_entries(entries)
    return [
        ('Total hours', f"{round_hours(summary.total_hours)} hours"),
        ('Work days', f"{summary.total_days} days"),
        ('Average hours per day', f"{round_hours(summary.average_hours_per_day)} hours"),
    ]


def validate_export_data(entries: List[TimesheetEntry]) -> Tuple[bool, Optional[str]]:
    if not entries:
        return False, "No data to export"

    for entry in entries:
        if not entry.date or not entry.work_content:
            return False, "Incomplete data, check the date and work content of every row"
        if not isinstance(entry.hours_spent, (int, float)) or entry.hours_spent < 0:
            return False, "Invalid hours value"

    return True, None


def _check(entries: List[TimesheetEntry]) -> None:
    ok, message = validate_export_data(entries)
    if not ok:
        raise ExportError(message)


def export_to_excel(entries: List[TimesheetEntry], path: str) -> Path:
    """Write the timesheet and its summary to an .xlsx workbook"""
    _check(entries)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(HEADERS)
    for col_idx, width in enumerate(COLUMN_WIDTHS, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for entry in entries:
        ws.append([entry.date, entry.work_content, entry.hours_spent, entry.remaining_hours])

    ws.append([])
    ws.append(['Summary'])
    ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
    for label, value in summary_rows(entries):
        ws.append([label, value])

    output = Path(path)
    try:
        wb.save(output)
    except OSError as e:
        raise ExportError(f"Failed to write Excel file {output}: {e}")

    logger.info(f"Exported {len(entries)} entries to {output}")
    return output


def export_to_csv(entries: List[TimesheetEntry], path: str) -> Path:
    """Write a UTF-8 CSV with BOM so spreadsheet apps pick the right encoding"""
    _check(entries)

    output = Path(path)
    try:
        with open(output, 'w', encoding='utf-8-sig', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(HEADERS)
            for entry in entries:
                writer.writerow([entry.date, entry.work_content, entry.hours_spent, entry.remaining_hours])

            writer.writerow([])
            writer = csv.writer(f, quoting=csv.QUOTE_ALL)
            writer.writerow(['Summary', '', '', ''])
            for label, value in summary_rows(entries):
                writer.writerow([label, value, '', ''])
    except OSError as e:
        raise ExportError(f"Failed to write CSV file {output}: {e}")

    logger.info(f"Exported {len(entries)} entries to {output}")
    return output


def format_as_text(entries: List[TimesheetEntry], generated_at: Optional[datetime] = None) -> str:
    separator = '-' * 100
    generated_at = generated_at or datetime.now()

    lines = [
        'Timesheet Report',
        separator,
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        separator,
        '\t\t'.join(HEADERS),
        separator,
    ]
    for entry in entries:
        lines.append('\t\t'.join([
            entry.date,
            entry.work_content,
            f"{entry.hours_spent}h",
            f"{entry.remaining_hours}h",
        ]))
    lines.append(separator)
    lines.append('')
    lines.append('Summary:')
    lines.extend(f"{label}: {value}" for label, value in summary_rows(entries))
    lines.append('')
    lines.append(separator)

    return '\n'.join(lines) + '\n'


def export_to_text(entries: List[TimesheetEntry], path: str) -> Path:
    _check(entries)

    output = Path(path)
    try:
        output.write_text(format_as_text(entries), encoding='utf-8')
    except OSError as e:
        raise ExportError(f"Failed to write text file {output}: {e}")

    logger.info(f"Exported {len(entries)} entries to {output}")
    return output


def format_clipboard_text(entries: List[TimesheetEntry]) -> str:
    """Tab-separated table that pastes cleanly into a spreadsheet"""
    lines = ['\t'.join(HEADERS)]
    for entry in entries:
        lines.append('\t'.join([
            entry.date,
            entry.work_content,
            f"{entry.hours_spent}h",
            f"{entry.remaining_hours}h",
        ]))
    lines.append('')
    lines.append('Summary:')
    lines.extend(f"{label}: {value}" for label, value in summary_rows(entries))
    return '\n'.join(lines) + '\n'


def generate_preview(entries: List[TimesheetEntry], max_rows: int = 5) -> str:
    lines = [' | '.join(HEADERS), '-' * 50]
    for entry in entries[:max_rows]:
        content = entry.work_content
        if len(content) > 20:
            content = content[:20] + '...'
        lines.append(' | '.join([entry.date[5:], content, f"{entry.hours_spent}h", f"{entry.remaining_hours}h"]))

    if len(entries) > max_rows:
        lines.append(f"... {len(entries) - max_rows} more rows")

    return '\n'.join(lines)


EXPORTERS = {
    'xlsx': export_to_excel,
    'csv': export_to_csv,
    'txt': export_to_text,
}


def export_entries(entries: List[TimesheetEntry], fmt: str, path: Optional[str] = None) -> Path:
    exporter = EXPORTERS.get(fmt)
    if exporter is None:
        raise ExportError(f"Unsupported export format: {fmt}")
    return exporter(entries, path or default_filename(fmt))

"""Checksheet payload -> .xlsx bytes, one worksheet per frequency."""

from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from typing import Callable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.datavalidation import DataValidation

from docgen.core.errors import RenderFailure
from docgen.core.models import ChecksheetItem, ChecksheetPayload
from docgen.services import ooxml
from docgen.services.merge_service import normalize_frequency

logger = logging.getLogger(__name__)

TITLE = "MAINTENANCE INSPECTION CHECKSHEET"
HEADERS = [
    "№",
    "Item Name",
    "Inspection Point",
    "Frequency",
    "Expected Status",
    "Notes",
    "Source Reference",
    "Actual Status",
]
COLUMN_WIDTHS = [6, 25, 40, 15, 22, 30, 35, 16]
STATUS_CHOICES = ["Pass", "Fail", "Issue", "N/A"]
HEADER_ROW = 4
FIRST_DATA_ROW = 5

# (frequency, sheet name, tab colour)
SHEETS = [
    ("daily", "Daily", "FFC7CE"),
    ("weekly", "Weekly", "FFEB9C"),
    ("monthly", "Monthly", "C6EFCE"),
    ("quarterly", "Quarterly", "D9E1F2"),
    ("annually", "Annually", "C6E0F4"),
    ("other", "Other", "E7E6E6"),
]
ALL_ITEMS = ("all", "All Items", "4472C4")
SHEET_NAMES = {key: name for key, name, _ in SHEETS}
CITATIONS_SHEET = "Source Citations"

_THIN = Side(style="thin", color="CCCCCC")
_BORDER = Border(top=_THIN, left=_THIN, bottom=_THIN, right=_THIN)
_HEADER_FILL = PatternFill("solid", fgColor="4472C4")
_TITLE_FILL = PatternFill("solid", fgColor="1F4E78")
_STRIPE_FILL = PatternFill("solid", fgColor="F8F9FA")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def source_reference(item: ChecksheetItem) -> str:
    if item.source and "page" in item.source.lower():
        return item.source
    if item.source_page not in (None, ""):
        return f"{item.source or 'Document'}, Page {item.source_page}"
    if item.source:
        return item.source
    return "Unknown"


def group_by_frequency(items: list[ChecksheetItem]) -> dict[str, list[ChecksheetItem]]:
    groups: dict[str, list[ChecksheetItem]] = {key: [] for key, _, _ in SHEETS}
    for item in items:
        groups[normalize_frequency(item.frequency)].append(item)
    return groups


def _generated_label(now: datetime) -> str:
    return ooxml.as_naive_utc(now).strftime("%B %d, %Y %H:%M UTC")


def _frequency_sheet(wb: Workbook, name: str, color: str, items: list[ChecksheetItem], now: datetime):
    ws = wb.create_sheet(title=name)
    ws.sheet_properties.tabColor = color
    last_col = len(HEADERS)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=last_col)
    title = ws.cell(row=1, column=1, value=TITLE)
    title.font = Font(name="Calibri", bold=True, size=18, color="FFFFFF")
    title.fill = _TITLE_FILL
    title.alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[1].height = 35

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=last_col)
    meta = ws.cell(row=2, column=1, value=f"{name} Frequency | Generated: {_generated_label(now)}")
    meta.font = Font(italic=True, size=10, color="666666")
    meta.alignment = Alignment(horizontal="center")
    # row 3 stays blank

    for col, (header, width) in enumerate(zip(HEADERS, COLUMN_WIDTHS), 1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=header)
        cell.font = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = _BORDER
        ws.column_dimensions[cell.column_letter].width = width
    ws.row_dimensions[HEADER_ROW].height = 30

    for i, item in enumerate(items):
        row = FIRST_DATA_ROW + i
        values = [
            i + 1,
            item.item_name,
            item.inspection_point,
            SHEET_NAMES.get(normalize_frequency(item.frequency), "Other"),
            item.expected_status,
            item.notes,
            source_reference(item),
            "",
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = _BORDER
            cell.alignment = Alignment(vertical="top", wrap_text=True)
            if i % 2 == 0:
                cell.fill = _STRIPE_FILL
        ws.cell(row=row, column=1).alignment = Alignment(horizontal="center", vertical="top")
        ws.cell(row=row, column=4).fill = PatternFill("solid", fgColor=color)
        ws.cell(row=row, column=7).font = Font(size=9, italic=True, color="666666")

    last_data_row = FIRST_DATA_ROW + len(items) - 1
    if items:
        dv = DataValidation(
            type="list",
            formula1='"' + ",".join(STATUS_CHOICES) + '"',
            allow_blank=True,
            showErrorMessage=True,
            errorTitle="Invalid Entry",
            error="Please select from the dropdown list",
        )
        ws.add_data_validation(dv)
        dv.add(f"H{FIRST_DATA_ROW}:H{last_data_row}")

    ws.auto_filter.ref = f"A{HEADER_ROW}:H{HEADER_ROW}"
    ws.freeze_panes = f"A{FIRST_DATA_ROW}"

    note_row = max(last_data_row, HEADER_ROW) + 2
    ws.merge_cells(start_row=note_row, start_column=1, end_row=note_row, end_column=last_col)
    note = ws.cell(
        row=note_row,
        column=1,
        value=(
            'Instructions: fill in the "Actual Status" column during inspection using the dropdown '
            f"({' / '.join(STATUS_CHOICES)}). This sheet contains {name.lower()} inspection items."
        ),
    )
    note.font = Font(italic=True, size=9, color="666666")
    note.alignment = Alignment(horizontal="center", wrap_text=True)


def _citation_sheet(wb: Workbook, sources: list[str]):
    ws = wb.create_sheet(title=CITATIONS_SHEET)
    ws.sheet_properties.tabColor = "95B3D7"
    ws.merge_cells("A1:B1")
    title = ws.cell(row=1, column=1, value="SOURCE DOCUMENT REFERENCES")
    title.font = Font(name="Calibri", bold=True, size=16, color="1F4E78")
    title.alignment = Alignment(horizontal="center", vertical="center")
    ws.merge_cells("A2:B2")
    ws.cell(row=2, column=1, value="All checksheet items are extracted from the following source documents:").font = Font(
        italic=True, size=11
    )
    for col, header in enumerate(["#", "Source Reference"], 1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=header)
        cell.font = Font(bold=True, size=11)
        cell.fill = PatternFill("solid", fgColor="D9E1F2")
        cell.border = _BORDER
    for i, source in enumerate(sources, 1):
        for col, value in enumerate([i, source], 1):
            cell = ws.cell(row=HEADER_ROW + i, column=col, value=value)
            cell.border = _BORDER
            cell.alignment = Alignment(vertical="top", wrap_text=True)
    ws.column_dimensions["A"].width = 5
    ws.column_dimensions["B"].width = 80


def render_checksheet(payload: ChecksheetPayload, clock: Callable[[], datetime] = utcnow) -> bytes:
    """Render the checksheet workbook.

    Output bytes depend only on `payload` and the time returned by `clock`.
    """
    now = clock()
    try:
        wb = Workbook()
        wb.remove(wb.active)
        groups = group_by_frequency(payload.items)
        for key, name, color in SHEETS:
            if groups[key]:
                _frequency_sheet(wb, name, color, groups[key], now)
        if not wb.worksheets:
            _, name, color = ALL_ITEMS
            _frequency_sheet(wb, name, color, payload.items, now)
        if payload.metadata.sources:
            _citation_sheet(wb, payload.metadata.sources)

        stamp = ooxml.as_naive_utc(now)
        wb.properties.creator = "DocGen"
        wb.properties.title = "Maintenance Inspection Checksheet"
        wb.properties.created = stamp
        wb.properties.modified = stamp

        buf = io.BytesIO()
        wb.save(buf)
        data = ooxml.normalize(buf.getvalue(), now)
    except Exception as e:
        logger.exception("checksheet rendering failed")
        raise RenderFailure(f"Failed to generate Excel file: {e}") from e

    logger.info(
        "rendered checksheet: %d items, sheets=%s, %d bytes",
        len(payload.items),
        [ws.title for ws in wb.worksheets],
        len(data),
    )
    return data

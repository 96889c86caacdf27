"""Tests for the checksheet workbook renderer."""

import io
from datetime import datetime, timezone

from openpyxl import load_workbook

from docgen.core.models import ChecksheetItem, ChecksheetMetadata, ChecksheetPayload
from docgen.services.excel_service import (
    CITATIONS_SHEET,
    FIRST_DATA_ROW,
    HEADER_ROW,
    HEADERS,
    render_checksheet,
    source_reference,
)

FIXED = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


def _clock():
    return FIXED


def _item(name, frequency, **kw):
    return ChecksheetItem(item_name=name, inspection_point=f"{name} point", frequency=frequency, **kw)


def _payload():
    return ChecksheetPayload(
        items=[
            _item("Oil Level", "weekly", expected_status="2-4 L", source="manual.pdf", source_page=11),
            _item("Belt Tension", "monthly"),
            _item("Leak Check", "daily", source="manual.pdf, Page 3"),
            _item("Gearbox Noise", "weekly"),
            _item("Housekeeping", "other"),
        ],
        metadata=ChecksheetMetadata(sources=["manual.pdf, Page 11", "manual.pdf, Page 3"]),
    )


def _load(data):
    return load_workbook(io.BytesIO(data))


def test_one_sheet_per_non_empty_frequency_in_fixed_order():
    wb = _load(render_checksheet(_payload(), clock=_clock))
    assert wb.sheetnames == ["Daily", "Weekly", "Monthly", "Other", CITATIONS_SHEET]


def test_every_item_lands_on_exactly_one_sheet():
    payload = _payload()
    wb = _load(render_checksheet(payload, clock=_clock))
    names = []
    for ws in wb.worksheets:
        if ws.title == CITATIONS_SHEET:
            continue
        row = FIRST_DATA_ROW
        while isinstance(ws.cell(row=row, column=1).value, int):
            names.append((ws.title, ws.cell(row=row, column=2).value))
            row += 1
    assert sorted(n for _, n in names) == sorted(i.item_name for i in payload.items)
    assert ("Weekly", "Oil Level") in names
    assert ("Weekly", "Gearbox Noise") in names


def test_weekly_sheet_layout():
    wb = _load(render_checksheet(_payload(), clock=_clock))
    ws = wb["Weekly"]

    assert ws.cell(row=1, column=1).value == "MAINTENANCE INSPECTION CHECKSHEET"
    assert ws.cell(row=2, column=1).value.startswith("Weekly Frequency | Generated: March 01, 2024")
    assert [ws.cell(row=HEADER_ROW, column=c).value for c in range(1, 9)] == HEADERS
    first = [ws.cell(row=FIRST_DATA_ROW, column=c).value for c in range(1, 6)]
    assert first == [1, "Oil Level", "Oil Level point", "Weekly", "2-4 L"]
    assert ws.cell(row=FIRST_DATA_ROW, column=7).value == "manual.pdf, Page 11"
    assert ws.freeze_panes == f"A{FIRST_DATA_ROW}"
    assert ws.auto_filter.ref == f"A{HEADER_ROW}:H{HEADER_ROW}"
    validations = ws.data_validations.dataValidation
    assert len(validations) == 1
    assert validations[0].formula1 == '"Pass,Fail,Issue,N/A"'
    # instructions row two below the last data row
    assert ws.cell(row=FIRST_DATA_ROW + 3, column=1).value.startswith("Instructions:")


def test_citation_sheet_lists_sources():
    wb = _load(render_checksheet(_payload(), clock=_clock))
    ws = wb[CITATIONS_SHEET]
    assert ws.cell(row=1, column=1).value == "SOURCE DOCUMENT REFERENCES"
    assert ws.cell(row=HEADER_ROW + 1, column=2).value == "manual.pdf, Page 11"
    assert ws.cell(row=HEADER_ROW + 2, column=2).value == "manual.pdf, Page 3"


def test_empty_payload_gets_all_items_sheet():
    wb = _load(render_checksheet(ChecksheetPayload(items=[]), clock=_clock))
    assert wb.sheetnames == ["All Items"]


def test_render_is_deterministic_for_fixed_clock():
    assert render_checksheet(_payload(), clock=_clock) == render_checksheet(_payload(), clock=_clock)


def test_source_reference_formats():
    assert source_reference(_item("a", "daily", source="m.pdf", source_page=4)) == "m.pdf, Page 4"
    assert source_reference(_item("a", "daily", source="m.pdf, page 4")) == "m.pdf, page 4"
    assert source_reference(_item("a", "daily", source_page=2)) == "Document, Page 2"
    assert source_reference(_item("a", "daily", source="m.pdf")) == "m.pdf"
    assert source_reference(_item("a", "daily")) == "Unknown"

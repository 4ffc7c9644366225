"""Tests for calendar exports and the conflict digest."""

import csv
from datetime import date, datetime, timezone
from io import BytesIO, StringIO

import pytest
from openpyxl import load_workbook

from core.config import EXPORT_HEADERS
from core.validation import detect_conflicts
from services.reports import (
    conflict_pairs,
    conflicts_by_staff,
    events_to_csv,
    events_to_excel,
    events_to_pdf,
    format_conflicts_for_email,
    format_date_display,
)

DAY = date(2025, 11, 10)


def at(hour, minute=0):
    return datetime(2025, 11, 10, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def conflicting_events(booking_event):
    events = [
        booking_event("A", at(9), at(10), ["S1"], title="Jane Doe - Personal Care"),
        booking_event("B", at(9, 30), at(10, 30), ["S1"], title="John Smith - Companionship"),
        booking_event("C", at(12), at(13), ["S2"], title="Mary Jones - Meals"),
    ]
    return detect_conflicts(events)


def test_format_date_display_has_no_padding():
    assert format_date_display(date(2025, 1, 5)) == "5/1/2025"


def test_csv_header_and_rows(conflicting_events):
    rows = list(csv.reader(StringIO(events_to_csv(conflicting_events))))

    assert rows[0] == EXPORT_HEADERS
    assert len(rows) == 4
    first = dict(zip(rows[0], rows[1]))
    assert first["Title"] == "Jane Doe - Personal Care"
    assert first["Date"] == "10/11/2025"
    assert first["Start"] == "09:00"
    assert first["Carers"] == "Carer S1"
    assert first["Conflicts"] == "John Smith - Companionship"


def test_csv_quotes_commas_and_collapses_newlines(booking_event):
    event = booking_event("A", at(9), at(10), ["S1"], title='Visit, "urgent"\nsecond line')

    text = events_to_csv([event])

    assert '"Visit, ""urgent"" second line"' in text
    rows = list(csv.reader(StringIO(text)))
    assert rows[1][0] == 'Visit, "urgent" second line'


def test_pdf_is_generated(conflicting_events):
    content = events_to_pdf(conflicting_events, "Rota & Conflicts <Week>", DAY, DAY)
    assert content.startswith(b"%PDF")


def test_pdf_without_events():
    assert events_to_pdf([], "Empty", DAY, DAY).startswith(b"%PDF")


def test_excel_has_events_and_conflicts_sheets(conflicting_events):
    wb = load_workbook(BytesIO(events_to_excel(conflicting_events)))

    assert wb.sheetnames == ["Calendar Events", "Conflicts"]
    events_ws = wb["Calendar Events"]
    assert [c.value for c in events_ws[1]] == EXPORT_HEADERS
    assert events_ws["A1"].font.bold
    assert events_ws.max_row == 4

    conflicts_ws = wb["Conflicts"]
    assert conflicts_ws["A2"].value == "Carer S1"
    assert conflicts_ws["B2"].value == "Jane Doe - Personal Care"
    assert conflicts_ws["E2"].value == "John Smith - Companionship"
    assert conflicts_ws.max_row == 2


def test_conflict_pairs_listed_once(conflicting_events):
    pairs = conflict_pairs(conflicting_events)
    assert [(a["id"], b["id"]) for a, b in pairs] == [("A", "B")]


def test_conflicts_grouped_by_staff_name(conflicting_events):
    grouped = conflicts_by_staff(conflicting_events)
    assert list(grouped) == ["Carer S1"]


def test_email_digest_lists_conflicts(conflicting_events):
    body = format_conflicts_for_email(conflicting_events, DAY, DAY)

    assert body.startswith("Rota Conflict Report - 10/11/2025 to 10/11/2025")
    assert "Conflicts Found:" in body
    assert "Carer S1:" in body
    assert "Jane Doe - Personal Care (09:00-10:00) overlaps John Smith - Companionship (09:30-10:30)" in body


def test_email_digest_without_conflicts(booking_event):
    events = detect_conflicts([booking_event("A", at(9), at(10), ["S1"])])
    assert format_conflicts_for_email(events, DAY, DAY).endswith("No conflicts found.")
    assert format_conflicts_for_email([], DAY, DAY).endswith("No events found for this period.")

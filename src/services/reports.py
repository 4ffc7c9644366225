"""
Calendar exports: CSV, PDF and Excel, plus the plain-text conflict digest.
"""

import csv
from collections import defaultdict
from datetime import date, datetime, timezone
from io import BytesIO, StringIO
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.config import EXPORT_HEADERS
from models.events import CalendarEvent


def format_date_display(d: date) -> str:
    """Format date as D/M/YYYY (platform-safe, no zero-padding)."""
    return f"{d.day}/{d.month}/{d.year}"


def format_time(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def client_name(event: CalendarEvent) -> str:
    for participant in event["participants"]:
        if participant["role"] == "client":
            return participant["name"]
    return ""


def carer_names(event: CalendarEvent) -> list[str]:
    return [p["name"] for p in event["participants"] if p["role"] in ("carer", "staff")]


def event_row(event: CalendarEvent, titles_by_id: dict[str, str]) -> list[str]:
    """One export row, matching EXPORT_HEADERS."""
    conflicts = "; ".join(titles_by_id.get(i, i) for i in event["conflicts_with"])
    return [
        event["title"],
        event["type"],
        format_date_display(event["start_time"].date()),
        format_time(event["start_time"]),
        format_time(event["end_time"]),
        event["status"],
        event["branch_name"],
        client_name(event),
        ", ".join(carer_names(event)),
        " ".join((event["location"] or "").split()),
        event["priority"],
        conflicts,
    ]


def _rows(events: list[CalendarEvent]) -> list[list[str]]:
    titles_by_id = {e["id"]: e["title"] for e in events}
    return [event_row(e, titles_by_id) for e in events]


# =============================================================================
# CSV
# =============================================================================


def events_to_csv(events: list[CalendarEvent]) -> str:
    """Comma-delimited text; fields with commas, quotes or newlines are quoted."""
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in _rows(events):
        writer.writerow([" ".join(str(value).splitlines()) for value in row])
    return buffer.getvalue()


# =============================================================================
# PDF
# =============================================================================


def _pdf_footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.drawString(15 * mm, 10 * mm, "Organization Calendar")
    canvas.drawRightString(doc.pagesize[0] - 15 * mm, 10 * mm, f"Page {doc.page}")
    canvas.restoreState()


def events_to_pdf(
    events: list[CalendarEvent], title: str, start_date: date, end_date: date
) -> bytes:
    """
    Multi-section PDF report.

    Header (title, range, generation date), an events table, and a section
    listing the conflicting pairs. Every page carries a numbered footer.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=18 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"].clone("cell", fontSize=7, leading=8)

    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(
            f"{format_date_display(start_date)} - {format_date_display(end_date)}",
            styles["Heading3"],
        ),
        Paragraph(
            f"Generated: {datetime.now(timezone.utc).strftime('%d/%m/%Y %H:%M')} UTC",
            styles["Normal"],
        ),
        Spacer(1, 6 * mm),
        Paragraph("Events", styles["Heading2"]),
    ]

    if events:
        data = [EXPORT_HEADERS] + [
            [Paragraph(escape(str(value)), cell_style) for value in row] for row in _rows(events)
        ]
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 7),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F0F0F0")),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        story.append(table)
    else:
        story.append(Paragraph("No events found for this period.", styles["Normal"]))

    story.append(Spacer(1, 6 * mm))
    story.append(Paragraph("Conflicts", styles["Heading2"]))
    pairs = conflict_pairs(events)
    if pairs:
        for first, second in pairs:
            story.append(
                Paragraph(
                    escape(
                        f"{first['title']} ({format_time(first['start_time'])}-{format_time(first['end_time'])})"
                        f" overlaps {second['title']} ({format_time(second['start_time'])}-"
                        f"{format_time(second['end_time'])})"
                    ),
                    styles["Normal"],
                )
            )
    else:
        story.append(Paragraph("No conflicts detected.", styles["Normal"]))

    doc.build(story, onFirstPage=_pdf_footer, onLaterPages=_pdf_footer)
    return buffer.getvalue()


# =============================================================================
# EXCEL
# =============================================================================


def write_excel_events_sheet(ws, events: list[CalendarEvent]):
    """Write the event detail sheet with bold headers."""
    for col_idx, header in enumerate(EXPORT_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    for row_idx, row in enumerate(_rows(events), start=2):
        for col_idx, value in enumerate(row, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    for col_idx in range(1, len(EXPORT_HEADERS) + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = 18


def write_excel_conflicts_sheet(ws, events: list[CalendarEvent]):
    headers = ["Staff", "Event", "Start", "End", "Conflicts With"]
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    row_idx = 2
    for staff_name, entries in conflicts_by_staff(events).items():
        for event, other in entries:
            ws.cell(row=row_idx, column=1, value=staff_name)
            ws.cell(row=row_idx, column=2, value=event["title"])
            ws.cell(row=row_idx, column=3, value=event["start_time"].strftime("%d/%m/%Y %H:%M"))
            ws.cell(row=row_idx, column=4, value=event["end_time"].strftime("%d/%m/%Y %H:%M"))
            ws.cell(row=row_idx, column=5, value=other["title"])
            row_idx += 1


def events_to_excel(events: list[CalendarEvent]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Calendar Events"
    write_excel_events_sheet(ws, events)
    write_excel_conflicts_sheet(wb.create_sheet("Conflicts"), events)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# =============================================================================
# CONFLICT DIGEST
# =============================================================================


def conflict_pairs(events: list[CalendarEvent]) -> list[tuple[CalendarEvent, CalendarEvent]]:
    """Each conflicting pair once, in event order."""
    by_id = {e["id"]: e for e in events}
    seen = set()
    pairs = []
    for event in events:
        for other_id in event["conflicts_with"]:
            key = frozenset((event["id"], other_id))
            if key in seen or other_id not in by_id:
                continue
            seen.add(key)
            pairs.append((event, by_id[other_id]))
    return pairs


def conflicts_by_staff(events: list[CalendarEvent]) -> dict[str, list[tuple[CalendarEvent, CalendarEvent]]]:
    """Staff name -> (event, conflicting event) for every shared staff member."""
    names: dict[str, str] = {}
    for event in events:
        for p in event["participants"]:
            if p["id"] in event["staff_ids"]:
                names[p["id"]] = p["name"]

    grouped: dict[str, list] = defaultdict(list)
    for first, second in conflict_pairs(events):
        for staff_id in sorted(set(first["staff_ids"]) & set(second["staff_ids"])):
            grouped[names.get(staff_id, staff_id)].append((first, second))
    return dict(sorted(grouped.items()))


def format_conflicts_for_email(events: list[CalendarEvent], start_date: date, end_date: date) -> str:
    """Plain-text rota conflict digest grouped by staff member."""
    lines = [
        f"Rota Conflict Report - {format_date_display(start_date)} to {format_date_display(end_date)}",
        "",
    ]

    grouped = conflicts_by_staff(events)
    if grouped:
        lines.append("Conflicts Found:")
        lines.append("")
        for staff_name, entries in grouped.items():
            lines.append(f"{staff_name}:")
            for first, second in entries:
                lines.append(
                    f"  - {format_date_display(first['start_time'].date())}: "
                    f"{first['title']} ({format_time(first['start_time'])}-{format_time(first['end_time'])})"
                    f" overlaps {second['title']} ({format_time(second['start_time'])}-"
                    f"{format_time(second['end_time'])})"
                )
            lines.append("")
    elif events:
        lines.append("No conflicts found.")
    else:
        lines.append("No events found for this period.")

    return "\n".join(lines)

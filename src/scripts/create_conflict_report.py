#!/usr/bin/env python3
"""
Create the rota conflict report for an organization.

Fetches the merged calendar for the period, marks staff conflicts, exports
the calendar (PDF, CSV or Excel) and emails the conflict digest with the
export attached.

Usage:
    python src/scripts/create_conflict_report.py --organization-id ORG --date 2025-11-07 --view-type weekly
"""

import argparse
import asyncio
import sys
import traceback
from datetime import date, datetime, timezone
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import OUTPUT_DIR, VIEW_TYPES
from core.validation import count_conflict_pairs
from services.calendar import CalendarQuery, fetch_organization_calendar
from services.email import send_conflict_report_email, send_error_email
from services.reports import events_to_csv, events_to_excel, events_to_pdf

REPORT_FORMATS = ("pdf", "csv", "xlsx")


def parse_date(date_str: str | None) -> date:
    if date_str:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    return datetime.now(timezone.utc).date()


def write_report(events: list[dict], start_date: date, end_date: date, report_format: str) -> Path:
    """Export the calendar to OUTPUT_DIR/reports/conflicts."""
    output_dir = OUTPUT_DIR / "reports" / "conflicts"
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"rota-conflicts-{start_date.isoformat()}-{end_date.isoformat()}.{report_format}"

    if report_format == "pdf":
        output_path.write_bytes(events_to_pdf(events, "Rota Conflict Report", start_date, end_date))
    elif report_format == "csv":
        output_path.write_text(events_to_csv(events), encoding="utf-8")
    else:
        output_path.write_bytes(events_to_excel(events))

    print(f"Saved report to: {output_path}")
    return output_path


# =============================================================================
# MAIN
# =============================================================================


async def main(
    organization_id: str,
    as_of_date_str: str | None = None,
    view_type: str = "weekly",
    report_format: str = "pdf",
):
    """Main entry point."""
    try:
        # 1. Fetch and merge all event sources
        query = CalendarQuery(
            organization_id=organization_id,
            anchor_date=parse_date(as_of_date_str),
            view_type=view_type,
        )
        result = await fetch_organization_calendar(query)
        print(f"Generating conflict report for {result.start_date} to {result.end_date}")
        print(f"Total events: {len(result.events)}")

        for source in result.failed_sources:
            print(f"  Warning: {source} events could not be loaded")

        # 2. Count conflicts
        conflicts = count_conflict_pairs(result.events)
        print(f"Conflicting booking pairs: {conflicts}")

        # 3. Export and send
        output_path = write_report(result.events, result.start_date, result.end_date, report_format)
        await send_conflict_report_email(output_path, result.events, result.start_date, result.end_date)

        print("\nDone!")

    except Exception as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        await send_error_email(e)
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate rota conflict report")
    parser.add_argument("--organization-id", required=True, help="Organization (tenant) id")
    parser.add_argument(
        "--date",
        help="Anchor date (YYYY-MM-DD) of the reported period. Defaults to today.",
    )
    parser.add_argument("--view-type", choices=VIEW_TYPES, default="weekly")
    parser.add_argument("--format", dest="report_format", choices=REPORT_FORMATS, default="pdf")
    args = parser.parse_args()

    asyncio.run(main(args.organization_id, args.date, args.view_type, args.report_format))

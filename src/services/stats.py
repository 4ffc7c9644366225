"""
Summary statistics for an organization calendar view.
"""

from collections import Counter
from datetime import date

from core.config import CAPACITY_HOURS_PER_DAY, UNASSIGNED_CARER_ID
from core.validation import count_conflict_pairs
from models.events import CalendarEvent, CalendarStats


def event_hours(event: CalendarEvent) -> float:
    return round((event["end_time"] - event["start_time"]).total_seconds() / 3600, 2)


def compute_calendar_stats(
    events: list[CalendarEvent], start_date: date, end_date: date
) -> CalendarStats:
    """
    Totals, active staff, conflicts and booking capacity for a date range.

    Capacity is booked carer-hours against active staff working
    CAPACITY_HOURS_PER_DAY on each day of the range, capped at 100%.
    """
    bookings = [e for e in events if e["type"] == "booking"]
    active_staff = {staff_id for e in events for staff_id in e["staff_ids"]}

    # Each assigned carer on a booking counts towards booked hours
    booked_hours = sum(event_hours(e) * len(e["staff_ids"]) for e in bookings)

    days = (end_date - start_date).days + 1
    available_hours = len(active_staff) * CAPACITY_HOURS_PER_DAY * days
    capacity = 0
    if available_hours > 0:
        capacity = min(100, round(booked_hours / available_hours * 100))

    unassigned = sum(
        1
        for e in bookings
        if any(p["id"] == UNASSIGNED_CARER_ID for p in e["participants"])
    )

    return {
        "total_events": len(events),
        "events_by_type": dict(Counter(e["type"] for e in events)),
        "active_staff": len(active_staff),
        "conflict_count": count_conflict_pairs(events),
        "unassigned_bookings": unassigned,
        "booked_hours": round(booked_hours, 2),
        "capacity_percentage": capacity,
    }

"""
Data models for calendar events.

Events are plain dictionaries typed with TypedDict; they are rebuilt on every
calendar query and never persisted.
"""

from datetime import datetime
from typing import TypedDict


class Participant(TypedDict):
    """Someone attached to an event (client, carer, branch admin, staff)."""
    id: str
    name: str
    role: str


class Branch(TypedDict):
    """Branch row as selected for calendar queries."""
    id: str
    name: str


class CalendarEvent(TypedDict):
    """Unified organization calendar event."""
    id: str
    type: str  # booking | agreement | training | leave | meeting
    title: str
    start_time: datetime
    end_time: datetime
    status: str
    branch_id: str | None
    branch_name: str
    participants: list[Participant]
    location: str
    priority: str
    client_id: str | None
    staff_ids: list[str]
    conflicts_with: list[str]
    is_late_start: bool
    late_start_minutes: int
    is_missed: bool


class CalendarStats(TypedDict):
    """Summary figures for a calendar query."""
    total_events: int
    events_by_type: dict[str, int]
    active_staff: int
    conflict_count: int
    unassigned_bookings: int
    booked_hours: float
    capacity_percentage: int


def make_event(
    event_id: str,
    event_type: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    *,
    status: str = "scheduled",
    branch: Branch | None = None,
    participants: list[Participant] | None = None,
    location: str = "",
    priority: str = "medium",
    client_id: str | None = None,
    staff_ids: list[str] | None = None,
) -> CalendarEvent:
    """Build a CalendarEvent with the derived fields left empty."""
    return {
        "id": event_id,
        "type": event_type,
        "title": title,
        "start_time": start_time,
        "end_time": end_time,
        "status": status,
        "branch_id": branch["id"] if branch else None,
        "branch_name": branch["name"] if branch else "",
        "participants": participants or [],
        "location": location,
        "priority": priority,
        "client_id": client_id,
        "staff_ids": staff_ids or [],
        "conflicts_with": [],
        "is_late_start": False,
        "late_start_minutes": 0,
        "is_missed": False,
    }

"""
Organization calendar: event source fetching, merging and filtering.

Each source is queried independently against the organization's branches
and mapped into the common CalendarEvent shape. A failing source is
reported and skipped; the remaining sources still render.
"""

import asyncio
import itertools
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable

from core.backend import get_backend_client
from core.config import (
    AGREEMENT_DURATION_MINUTES,
    EVENT_TYPES,
    MEETING_DURATION_MINUTES,
    TRAINING_END_HOUR,
    TRAINING_START_HOUR,
    VIEW_TYPES,
)
from core.validation import detect_conflicts
from models.events import Branch, CalendarEvent, Participant, make_event
from services.bookings import group_bookings, parse_timestamp, person_name
from services.holidays import resolve_holidays

UTC = timezone.utc


class StaleRequestError(Exception):
    """A newer request for the same key started before this one finished."""


@dataclass
class CalendarQuery:
    """Parameters of one calendar request. Tenant scope is always explicit."""

    organization_id: str
    anchor_date: date
    view_type: str = "daily"
    branch_id: str | None = None
    event_type: str | None = None
    search_term: str | None = None


@dataclass
class CalendarResult:
    events: list[CalendarEvent]
    start_date: date
    end_date: date
    branches: list[Branch] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)


class RequestGenerations:
    """
    Generation counter per request key.

    Every new request for a key supersedes the previous ones; a request
    checks its token before publishing results.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def begin(self, key: str) -> int:
        token = next(self._counter)
        self._latest[key] = token
        return token

    def is_current(self, key: str, token: int) -> bool:
        return self._latest.get(key) == token

    def finish(self, key: str, token: int) -> None:
        if self.is_current(key, token):
            del self._latest[key]


# =============================================================================
# DATE UTILITIES
# =============================================================================


def get_date_range(anchor: date, view_type: str) -> tuple[date, date]:
    """
    Inclusive date range covered by a calendar view.

    daily: the anchor day; weekly: Monday-Sunday week containing the anchor;
    monthly: the anchor's calendar month.
    """
    if view_type == "daily":
        return anchor, anchor
    if view_type == "weekly":
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=6)
    if view_type == "monthly":
        last_day = monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last_day)
    raise ValueError(f"Unknown view type '{view_type}', expected one of {', '.join(VIEW_TYPES)}")


def day_bounds(start_date: date, end_date: date) -> tuple[str, str]:
    """ISO strings for [start of start_date, start of the day after end_date)."""
    start_dt = datetime.combine(start_date, time.min, tzinfo=UTC)
    end_dt = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=UTC)
    return start_dt.isoformat(), end_dt.isoformat()


def parse_clock(value: str | None) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS'; missing values default to 09:00."""
    if not value:
        return time(9, 0)
    return time.fromisoformat(value)


# =============================================================================
# BRANCH RESOLUTION
# =============================================================================


def fetch_branches(client: Any, organization_id: str, branch_id: str | None = None) -> list[Branch]:
    """Branches of the organization, optionally narrowed to one of them."""
    query = client.table("branches").select("id, name").eq("organization_id", organization_id)
    if branch_id:
        query = query.eq("id", branch_id)
    response = query.execute()
    return [{"id": row["id"], "name": row["name"]} for row in response.data or []]


def fetch_branch_admins(client: Any, branch_ids: list[str]) -> dict[str, list[Participant]]:
    """branch_id -> admin participants, for attaching to booking events."""
    links = client.table("admin_branches").select("admin_id, branch_id").in_(
        "branch_id", branch_ids
    ).execute().data or []
    if not links:
        return {}

    admin_ids = sorted({link["admin_id"] for link in links})
    profiles = client.table("profiles").select("id, first_name, last_name").in_(
        "id", admin_ids
    ).execute().data or []
    names = {p["id"]: person_name(p, "Branch Admin") for p in profiles}

    admins: dict[str, list[Participant]] = {}
    for link in links:
        admins.setdefault(link["branch_id"], []).append(
            {
                "id": link["admin_id"],
                "name": names.get(link["admin_id"], "Branch Admin"),
                "role": "branch_admin",
            }
        )
    return admins


# =============================================================================
# EVENT SOURCES
# =============================================================================


def fetch_booking_events(
    client: Any, branches: list[Branch], start_date: date, end_date: date
) -> list[CalendarEvent]:
    """Bookings in range, grouped into one event per visit."""
    branch_ids = [b["id"] for b in branches]
    start_str, end_str = day_bounds(start_date, end_date)

    rows = client.table("bookings").select(
        "id, client_id, staff_id, service_id, branch_id, start_time, end_time, status, "
        "is_late_start, late_start_minutes, is_missed, "
        "clients(id, first_name, last_name, address), "
        "staff(id, first_name, last_name), "
        "services(id, title), "
        "branches(id, name)"
    ).in_("branch_id", branch_ids).gte("start_time", start_str).lt(
        "start_time", end_str
    ).order("start_time").execute().data or []

    admins = fetch_branch_admins(client, branch_ids) if rows else {}
    return group_bookings(rows, admins)


def fetch_agreement_events(
    client: Any, branches: list[Branch], start_date: date, end_date: date
) -> list[CalendarEvent]:
    """Scheduled agreement signings, one hour each."""
    branch_map = {b["id"]: b for b in branches}
    start_str, end_str = day_bounds(start_date, end_date)

    rows = client.table("scheduled_agreements").select(
        "id, title, status, scheduled_for, scheduled_with_name, "
        "scheduled_with_client_id, scheduled_with_staff_id, branch_id"
    ).in_("branch_id", list(branch_map)).gte("scheduled_for", start_str).lt(
        "scheduled_for", end_str
    ).execute().data or []

    events = []
    for row in rows:
        if not row.get("scheduled_for"):
            continue
        start_time = parse_timestamp(row["scheduled_for"])
        name = row.get("scheduled_with_name") or "Unknown"

        participants: list[Participant] = []
        staff_ids = []
        if row.get("scheduled_with_client_id"):
            participants.append({"id": row["scheduled_with_client_id"], "name": name, "role": "client"})
        if row.get("scheduled_with_staff_id"):
            participants.append({"id": row["scheduled_with_staff_id"], "name": name, "role": "staff"})
            staff_ids.append(row["scheduled_with_staff_id"])

        events.append(
            make_event(
                row["id"],
                "agreement",
                row.get("title") or "Agreement",
                start_time,
                start_time + timedelta(minutes=AGREEMENT_DURATION_MINUTES),
                status=row.get("status") or "scheduled",
                branch=branch_map.get(row.get("branch_id")),
                participants=participants,
                client_id=row.get("scheduled_with_client_id"),
                staff_ids=staff_ids,
            )
        )
    return events


def fetch_training_events(
    client: Any, branches: list[Branch], start_date: date, end_date: date
) -> list[CalendarEvent]:
    """Staff training sessions on their assigned day."""
    branch_map = {b["id"]: b for b in branches}

    rows = client.table("staff_training_records").select(
        "id, status, assigned_date, branch_id, staff_id, "
        "staff(id, first_name, last_name), training_courses(title)"
    ).in_("branch_id", list(branch_map)).gte(
        "assigned_date", start_date.isoformat()
    ).lte("assigned_date", end_date.isoformat()).execute().data or []

    events = []
    for row in rows:
        if not row.get("assigned_date"):
            continue
        day = date.fromisoformat(row["assigned_date"][:10])
        course = (row.get("training_courses") or {}).get("title") or "Training"
        staff_name = person_name(row.get("staff"), "Unknown Staff")

        events.append(
            make_event(
                row["id"],
                "training",
                f"Training: {course}",
                datetime.combine(day, time(TRAINING_START_HOUR), tzinfo=UTC),
                datetime.combine(day, time(TRAINING_END_HOUR), tzinfo=UTC),
                status=row.get("status") or "scheduled",
                branch=branch_map.get(row.get("branch_id")),
                participants=[{"id": row["staff_id"], "name": staff_name, "role": "staff"}],
                staff_ids=[row["staff_id"]],
            )
        )
    return events


def fetch_leave_events(
    client: Any, branches: list[Branch], start_date: date, end_date: date
) -> list[CalendarEvent]:
    """Annual leave / bank holidays, with recurring ones projected into range."""
    branch_map = {b["id"]: b for b in branches}
    branch_list = ",".join(branch_map)

    # Recurring rows can't be range-filtered server-side; resolve locally
    rows = client.table("annual_leave_calendar").select(
        "id, leave_name, leave_date, is_recurring, is_company_wide, branch_id"
    ).or_(
        f"branch_id.in.({branch_list}),and(is_company_wide.eq.true,branch_id.is.null)"
    ).execute().data or []
    # A company-wide flag on another organization's branch is not ours
    rows = [
        row for row in rows
        if row.get("branch_id") in branch_map
        or (row.get("is_company_wide") and row.get("branch_id") is None)
    ]

    events = []
    for holiday, occurrence in resolve_holidays(rows, start_date, end_date):
        branch = branch_map.get(holiday.get("branch_id"))
        if branch is None and holiday.get("is_company_wide"):
            branch = {"id": None, "name": "All Branches"}
        start_time = datetime.combine(occurrence, time.min, tzinfo=UTC)
        event = make_event(
            holiday["id"],
            "leave",
            holiday.get("leave_name") or "Holiday",
            start_time,
            start_time + timedelta(days=1),
            branch=branch,
            priority="low",
        )
        events.append(event)
    return events


def fetch_meeting_events(
    client: Any, branches: list[Branch], start_date: date, end_date: date
) -> list[CalendarEvent]:
    """Client appointments (GP, hospital, reviews) for clients of the branches."""
    branch_map = {b["id"]: b for b in branches}

    clients = client.table("clients").select("id, first_name, last_name, branch_id").in_(
        "branch_id", list(branch_map)
    ).execute().data or []
    if not clients:
        return []
    clients_by_id = {c["id"]: c for c in clients}

    rows = client.table("client_appointments").select(
        "id, client_id, appointment_type, appointment_date, appointment_time, "
        "provider_name, location, status"
    ).in_("client_id", list(clients_by_id)).gte(
        "appointment_date", start_date.isoformat()
    ).lte("appointment_date", end_date.isoformat()).execute().data or []

    events = []
    for row in rows:
        client_row = clients_by_id.get(row["client_id"], {})
        client_name = person_name(client_row, "Unknown Client")
        day = date.fromisoformat(row["appointment_date"][:10])
        start_time = datetime.combine(day, parse_clock(row.get("appointment_time")), tzinfo=UTC)

        participants: list[Participant] = [
            {"id": row["client_id"], "name": client_name, "role": "client"}
        ]
        if row.get("provider_name"):
            participants.append(
                {"id": row["provider_name"], "name": row["provider_name"], "role": "provider"}
            )

        events.append(
            make_event(
                row["id"],
                "meeting",
                f"{row.get('appointment_type') or 'Appointment'}: {client_name}",
                start_time,
                start_time + timedelta(minutes=MEETING_DURATION_MINUTES),
                status=row.get("status") or "scheduled",
                branch=branch_map.get(client_row.get("branch_id")),
                participants=participants,
                location=row.get("location") or "",
                client_id=row["client_id"],
            )
        )
    return events


EVENT_SOURCES: dict[str, Callable[..., list[CalendarEvent]]] = {
    "booking": fetch_booking_events,
    "agreement": fetch_agreement_events,
    "training": fetch_training_events,
    "leave": fetch_leave_events,
    "meeting": fetch_meeting_events,
}


# =============================================================================
# MERGE + FILTER
# =============================================================================


def matches_search(event: CalendarEvent, search_term: str) -> bool:
    """Case-insensitive match on title, location, branch and participant names."""
    needle = search_term.strip().lower()
    if not needle:
        return True
    haystack = [event["title"], event["location"], event["branch_name"]]
    haystack.extend(p["name"] for p in event["participants"])
    return any(needle in (text or "").lower() for text in haystack)


def filter_events(
    events: list[CalendarEvent], event_type: str | None = None, search_term: str | None = None
) -> list[CalendarEvent]:
    if event_type:
        events = [e for e in events if e["type"] == event_type]
    if search_term:
        events = [e for e in events if matches_search(e, search_term)]
    return events


async def _run_source(
    name: str, fetcher: Callable, client: Any, branches: list[Branch], start_date: date, end_date: date
) -> tuple[str, list[CalendarEvent] | None]:
    try:
        events = await asyncio.to_thread(fetcher, client, branches, start_date, end_date)
        return name, events
    except Exception as e:
        print(f"  Error fetching {name} events: {e}")
        return name, None


async def fetch_organization_calendar(
    query: CalendarQuery,
    client: Any = None,
    generations: RequestGenerations | None = None,
    request_key: str | None = None,
) -> CalendarResult:
    """
    Fetch, merge, filter and conflict-check all events for a calendar view.

    Raises:
        ValueError: unknown view or event type
        StaleRequestError: a newer request with the same request_key started meanwhile
    """
    if query.event_type and query.event_type not in EVENT_TYPES:
        raise ValueError(
            f"Unknown event type '{query.event_type}', expected one of {', '.join(EVENT_TYPES)}"
        )
    start_date, end_date = get_date_range(query.anchor_date, query.view_type)

    token = None
    if generations is not None and request_key:
        token = generations.begin(request_key)

    try:
        client = client or get_backend_client()
        branches = await asyncio.to_thread(fetch_branches, client, query.organization_id, query.branch_id)
        result = CalendarResult(events=[], start_date=start_date, end_date=end_date, branches=branches)

        if branches:
            # Every source is fetched so a training or leave clash still marks a booking
            outcomes = await asyncio.gather(
                *(
                    _run_source(name, fetcher, client, branches, start_date, end_date)
                    for name, fetcher in EVENT_SOURCES.items()
                )
            )
            for name, events in outcomes:
                if events is None:
                    result.failed_sources.append(name)
                else:
                    result.events.extend(events)

        if token is not None and not generations.is_current(request_key, token):
            raise StaleRequestError(f"Request superseded for key '{request_key}'")
    finally:
        if token is not None:
            generations.finish(request_key, token)

    # Conflicts are computed over everything fetched, before the type and search filters
    detect_conflicts(result.events)
    events = filter_events(result.events, query.event_type, query.search_term)
    events.sort(key=lambda e: (e["start_time"], e["type"], e["id"]))
    result.events = events
    return result

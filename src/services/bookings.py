"""
Booking grouping: one calendar event per visit, however many carers attend.

The bookings table holds one row per staff assignment, so a double-handed
visit arrives as two rows with the same client, time window and service.
"""

from datetime import datetime, timezone

from core.config import UNASSIGNED_CARER_ID, UNASSIGNED_CARER_NAME
from models.events import CalendarEvent, Participant, make_event


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO timestamp from the backend; naive values are taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def person_name(person: dict | None, default: str = "") -> str:
    """'First Last' from a joined client/staff/profile object."""
    if not person:
        return default
    name = f"{person.get('first_name') or ''} {person.get('last_name') or ''}".strip()
    return name or default


def booking_group_key(row: dict) -> tuple:
    return (
        row.get("client_id"),
        parse_timestamp(row["start_time"]),
        parse_timestamp(row["end_time"]),
        row.get("service_id"),
    )


def group_bookings(
    rows: list[dict], branch_admins: dict[str, list[Participant]] | None = None
) -> list[CalendarEvent]:
    """
    Collapse staff-assignment rows into one event per visit.

    Args:
        rows: booking rows with nested clients/staff/services/branches objects
        branch_admins: branch_id -> admin participants to attach to each event

    Returns:
        Events in chronological order
    """
    branch_admins = branch_admins or {}
    groups: dict[tuple, list[dict]] = {}
    for row in rows:
        groups.setdefault(booking_group_key(row), []).append(row)

    events = []
    for (client_id, start_time, end_time, _service_id), group in groups.items():
        first = group[0]
        client = first.get("clients")
        service = first.get("services")
        branch = first.get("branches")

        client_name = person_name(client, "Unknown Client")
        title = client_name
        if service and service.get("title"):
            title = f"{client_name} - {service['title']}"

        participants: list[Participant] = []
        if client_id:
            participants.append({"id": client_id, "name": client_name, "role": "client"})

        staff_ids: list[str] = []
        for row in group:
            staff_id = row.get("staff_id")
            if not staff_id or staff_id in staff_ids:
                continue
            staff_ids.append(staff_id)
            participants.append(
                {
                    "id": staff_id,
                    "name": person_name(row.get("staff"), "Unknown Carer"),
                    "role": "carer",
                }
            )

        if not staff_ids:
            participants.append(
                {"id": UNASSIGNED_CARER_ID, "name": UNASSIGNED_CARER_NAME, "role": "carer"}
            )

        branch_id = first.get("branch_id") or (branch or {}).get("id")
        participants.extend(branch_admins.get(branch_id, []))

        event = make_event(
            first["id"],
            "booking",
            title,
            start_time,
            end_time,
            status=first.get("status") or "scheduled",
            branch={"id": branch_id, "name": (branch or {}).get("name", "")} if branch_id else None,
            participants=participants,
            location=(client or {}).get("address") or "",
            priority="medium" if staff_ids else "high",
            client_id=client_id,
            staff_ids=staff_ids,
        )
        event["is_late_start"] = any(row.get("is_late_start") for row in group)
        event["late_start_minutes"] = max(
            (row.get("late_start_minutes") or 0 for row in group), default=0
        )
        event["is_missed"] = any(row.get("is_missed") for row in group)
        events.append(event)

    events.sort(key=lambda e: (e["start_time"], e["id"]))
    return events

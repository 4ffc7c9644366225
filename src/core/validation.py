"""
Event conflict detection and form validation.
"""

from pydantic import ValidationError

from models.authority import AuthorityData


def events_overlap(a: dict, b: dict) -> bool:
    """Half-open [start, end) overlap; touching endpoints do not overlap."""
    return a["start_time"] < b["end_time"] and b["start_time"] < a["end_time"]


def share_staff(a: dict, b: dict) -> bool:
    """Check if two events have at least one staff member in common."""
    return bool(set(a["staff_ids"]) & set(b["staff_ids"]))


def detect_conflicts(events: list[dict]) -> list[dict]:
    """
    Populate conflicts_with on every event.

    Pairwise scan: two events conflict when they share a staff member and
    their time windows overlap. Results are advisory; nothing is dropped.
    """
    for event in events:
        event["conflicts_with"] = []

    for i, first in enumerate(events):
        if not first["staff_ids"]:
            continue
        for second in events[i + 1:]:
            if not second["staff_ids"]:
                continue
            if share_staff(first, second) and events_overlap(first, second):
                if second["id"] not in first["conflicts_with"]:
                    first["conflicts_with"].append(second["id"])
                if first["id"] not in second["conflicts_with"]:
                    second["conflicts_with"].append(first["id"])

    return events


def count_conflict_pairs(events: list[dict]) -> int:
    """Number of distinct conflicting event pairs (after detect_conflicts)."""
    pairs = set()
    for event in events:
        for other_id in event["conflicts_with"]:
            pairs.add(frozenset((event["id"], other_id)))
    return len(pairs)


def validate_authority(data: dict) -> AuthorityData:
    """
    Validate an authority form submission.

    Raises:
        ValueError: one line per invalid field
    """
    try:
        return AuthorityData.model_validate(data)
    except ValidationError as e:
        lines = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            message = error["msg"].removeprefix("Value error, ")
            if error["type"] == "missing":
                message = f"{field.replace('_', ' ').capitalize()} is required"
            lines.append(f"{field}: {message}")
        raise ValueError("\n".join(lines)) from e

"""
Holiday / annual-leave date resolution for calendar windows.
"""

from datetime import date

from services.bookings import parse_timestamp


def parse_leave_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    if "T" in value:
        return parse_timestamp(value).date()
    return date.fromisoformat(value)


def holiday_occurrence(holiday: dict, start_date: date, end_date: date) -> date | None:
    """
    Date on which a holiday falls inside [start_date, end_date], or None.

    Recurring holidays are projected onto start_date's year only, so a window
    that crosses Dec 31 -> Jan 1 does not pick up the January recurrences.
    """
    leave_date = parse_leave_date(holiday["leave_date"])

    if not holiday.get("is_recurring"):
        return leave_date if start_date <= leave_date <= end_date else None

    try:
        projected = leave_date.replace(year=start_date.year)
    except ValueError:
        # Feb 29 has no occurrence in a non-leap year
        return None
    return projected if start_date <= projected <= end_date else None


def resolve_holidays(
    holidays: list[dict], start_date: date, end_date: date
) -> list[tuple[dict, date]]:
    """Holidays that fall in range, paired with their occurrence date, sorted by date."""
    resolved = []
    for holiday in holidays:
        occurrence = holiday_occurrence(holiday, start_date, end_date)
        if occurrence is not None:
            resolved.append((holiday, occurrence))
    resolved.sort(key=lambda pair: pair[1])
    return resolved

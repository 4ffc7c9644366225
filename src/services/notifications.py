"""
Notification category routing, filtering and backend operations.

Notifications are stored flat; the category a notification belongs to is
derived from its type through CATEGORY_TYPE_MAPPING and never stored.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

from tenacity import retry, stop_after_attempt, wait_exponential

from core.backend import get_backend_client
from core.config import (
    DYNAMIC_ITEMS_PER_CATEGORY,
    HIGH_PRIORITIES,
    NOTIFICATION_FETCH_LIMIT,
    NOTIFICATION_RETRY_ATTEMPTS,
    NOTIFICATION_RETRY_MAX_SECONDS,
    SYSTEM_ITEMS_LIMIT,
)
from core.validation import count_conflict_pairs, detect_conflicts
from models.notifications import CategoryStats, Notification, ViewAction
from services.bookings import parse_timestamp

CATEGORY_TYPE_MAPPING: dict[str, list[str]] = {
    "staff": ["booking", "task", "staff", "leave_request", "training"],
    "client": ["client", "client_request", "appointment"],
    "system": ["system", "system_alert", "error", "demo_request"],
    "medication": ["medication", "medication_reminder", "medication_alert"],
    "rota": ["rota", "rota_change", "schedule_conflict"],
    "document": ["document", "document_update", "document_expiry"],
    "reports": ["care_plan", "report_ready", "report_error"],
    "message": ["message"],
}

CATEGORY_CONFIG: dict[str, dict[str, str]] = {
    "staff": {"title": "Staff Notifications", "description": "Overdue bookings and staff alerts"},
    "system": {"title": "System Alerts", "description": "Critical system notifications"},
    "client": {"title": "Client Notifications", "description": "Client requests and appointments"},
    "medication": {"title": "Medication Alerts", "description": "Upcoming medication schedules"},
    "rota": {"title": "Rota Errors", "description": "Schedule conflicts and errors"},
    "document": {"title": "Document Updates", "description": "Recently modified documents"},
    "reports": {"title": "Reports", "description": "Care plans and report updates"},
    "message": {"title": "Messages", "description": "Unread messages and communications"},
}

FILTERS = ("all", "unread", "high", "today")

# Branch dashboard tab opened by "View Details" for each category
CATEGORY_ROUTES = {
    "staff": "bookings",
    "client": "clients",
    "rota": "bookings",
    "document": "documents",
    "reports": "care-plan",
    "message": "communication",
    "system": "notifications",
}


class UnknownCategoryError(ValueError):
    """Requested notification category does not exist."""


# =============================================================================
# PURE ROUTING / FILTERING
# =============================================================================


def category_for_type(notification_type: str) -> str | None:
    for category, types in CATEGORY_TYPE_MAPPING.items():
        if notification_type in types:
            return category
    return None


def filter_by_category(notifications: list[Notification], category: str) -> list[Notification]:
    """Notifications whose type maps to the category, order preserved."""
    if category not in CATEGORY_TYPE_MAPPING:
        raise UnknownCategoryError(f"Notification category '{category}' does not exist")
    types = CATEGORY_TYPE_MAPPING[category]
    return [n for n in notifications if n.get("type") in types]


def is_unread(notification: Notification) -> bool:
    return not notification.get("read_at")


def is_high_priority(notification: Notification) -> bool:
    return (notification.get("priority") or "medium") in HIGH_PRIORITIES


def is_today(notification: Notification, today: date) -> bool:
    created_at = notification.get("created_at")
    if not created_at:
        return False
    return parse_timestamp(created_at).date() == today


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def apply_filter(
    notifications: list[Notification], filter_name: str, today: date | None = None
) -> list[Notification]:
    """
    Secondary filter: all, unread, high (priority high/urgent) or today.

    'today' compares the UTC date of created_at with `today`.
    """
    if filter_name not in FILTERS:
        raise ValueError(f"Unknown filter '{filter_name}', expected one of {', '.join(FILTERS)}")
    if filter_name == "all":
        return list(notifications)
    if filter_name == "unread":
        return [n for n in notifications if is_unread(n)]
    if filter_name == "high":
        return [n for n in notifications if is_high_priority(n)]
    today = today or utc_today()
    return [n for n in notifications if is_today(n, today)]


def category_stats(notifications: list[Notification], today: date | None = None) -> dict[str, CategoryStats]:
    """Total / unread / high-priority / today counters for every category."""
    today = today or utc_today()
    stats = {}
    for category in CATEGORY_TYPE_MAPPING:
        items = filter_by_category(notifications, category)
        stats[category] = {
            "total": len(items),
            "unread": sum(1 for n in items if is_unread(n)),
            "high_priority": sum(1 for n in items if is_high_priority(n)),
            "today": sum(1 for n in items if is_today(n, today)),
        }
    return stats


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def build_dynamic_notifications(
    category: str, dynamic_data: dict[str, int] | None, notifications: list[Notification]
) -> list[Notification]:
    """
    Category list headed by a synthetic summary built from live counts.

    The summary appears only when its count is positive; it is followed by at
    most DYNAMIC_ITEMS_PER_CATEGORY stored notifications (system: a longer
    list and no summary).
    """
    stored = filter_by_category(notifications, category)
    if category == "system":
        return stored[:SYSTEM_ITEMS_LIMIT]

    dynamic_data = dynamic_data or {}
    now = datetime.now(timezone.utc).isoformat()
    summaries = {
        "staff": (
            dynamic_data.get("staff", 0),
            lambda c: f"{_plural(c, 'overdue booking')} requiring attention",
            "Some bookings are past their scheduled time and need immediate review",
            "high",
        ),
        "client": (
            dynamic_data.get("client", 0),
            lambda c: _plural(c, "pending appointment"),
            "Client appointments waiting for confirmation",
            "high",
        ),
        "medication": (
            dynamic_data.get("medication", 0),
            lambda c: _plural(c, "upcoming medication reminder"),
            "Medications scheduled for administration soon",
            "high",
        ),
        "rota": (
            dynamic_data.get("rota", 0),
            lambda c: f"{_plural(c, 'schedule conflict')} detected",
            "Staff scheduling conflicts need resolution",
            "high",
        ),
        "document": (
            dynamic_data.get("reports", 0),
            lambda c: _plural(c, "recent document update"),
            "New documents have been uploaded or modified",
            "medium",
        ),
    }

    items: list[Notification] = []
    if category in summaries:
        count, title, message, priority = summaries[category]
        if count > 0:
            items.append(
                {
                    "id": f"{category}-summary",
                    "type": CATEGORY_TYPE_MAPPING[category][0],
                    "priority": priority,
                    "title": title(count),
                    "message": message,
                    "read_at": None,
                    "created_at": now,
                    "data": {"dynamic": True, "count": count},
                }
            )
    return items + stored[:DYNAMIC_ITEMS_PER_CATEGORY]


def branch_route(tenant_slug: str | None, branch_id: str | None, branch_name: str | None, tab: str) -> str:
    """Tenant-aware branch dashboard route, or the top-level page without a branch."""
    prefix = f"/{tenant_slug}" if tenant_slug else ""
    if branch_id and branch_name:
        return f"{prefix}/branch-dashboard/{branch_id}/{quote(branch_name, safe='')}/{tab}"
    return f"{prefix}/{tab}"


# =============================================================================
# BACKEND OPERATIONS
# =============================================================================


def handle_view_details(
    notification: Notification,
    category: str,
    branch_id: str | None = None,
    branch_name: str | None = None,
    tenant_slug: str | None = None,
    client: Any = None,
) -> ViewAction:
    """
    Resolve 'View Details' for a notification.

    Medication notifications load the medication record; every other
    category navigates to its branch dashboard tab. Failures come back as a
    toast action, never retried.
    """
    if category not in CATEGORY_TYPE_MAPPING:
        raise UnknownCategoryError(f"Notification category '{category}' does not exist")

    if category == "medication":
        medication_id = (notification.get("data") or {}).get("medication_id")
        if not medication_id:
            return ViewAction(kind="toast", message="No medication details available")
        try:
            client = client or get_backend_client()
            response = client.table("client_medications").select("*").eq(
                "id", medication_id
            ).single().execute()
        except Exception as e:
            print(f"  Error loading medication {medication_id}: {e}")
            return ViewAction(kind="toast", message=f"Failed to load medication details: {e}")
        return ViewAction(kind="detail", detail=response.data or {})

    return ViewAction(
        kind="navigate",
        route=branch_route(tenant_slug, branch_id, branch_name, CATEGORY_ROUTES[category]),
    )


@retry(
    stop=stop_after_attempt(NOTIFICATION_RETRY_ATTEMPTS + 1),
    wait=wait_exponential(multiplier=1, min=1, max=NOTIFICATION_RETRY_MAX_SECONDS),
    reraise=True,
)
def fetch_notifications(branch_id: str | None = None, client: Any = None) -> list[Notification]:
    """Newest notifications first, optionally for one branch. Retried with backoff."""
    client = client or get_backend_client()
    query = client.table("notifications").select("*").order("created_at", desc=True).limit(
        NOTIFICATION_FETCH_LIMIT
    )
    if branch_id:
        query = query.eq("branch_id", branch_id)
    return query.execute().data or []


def get_notification(notification_id: str, client: Any = None) -> Notification | None:
    client = client or get_backend_client()
    rows = client.table("notifications").select("*").eq("id", notification_id).limit(1).execute().data
    return rows[0] if rows else None


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def mark_as_read(notification_id: str, client: Any = None) -> None:
    client = client or get_backend_client()
    client.table("notifications").update({"read_at": now_iso()}).eq("id", notification_id).execute()


def mark_all_as_read(user_id: str, branch_id: str | None = None, client: Any = None) -> None:
    """Mark every unread notification of the user (optionally one branch) as read."""
    client = client or get_backend_client()
    query = client.table("notifications").update({"read_at": now_iso()}).eq(
        "user_id", user_id
    ).is_("read_at", "null")
    if branch_id:
        query = query.eq("branch_id", branch_id)
    query.execute()


def archive_notification(notification_id: str, client: Any = None) -> None:
    client = client or get_backend_client()
    client.table("notifications").update({"archived_at": now_iso()}).eq(
        "id", notification_id
    ).execute()


def create_notification(
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    *,
    branch_id: str | None = None,
    organization_id: str | None = None,
    category: str = "info",
    priority: str = "medium",
    data: dict | None = None,
    client: Any = None,
) -> bool:
    """Insert one notification. Returns False (and reports) on failure."""
    try:
        client = client or get_backend_client()
        client.table("notifications").insert(
            {
                "user_id": user_id,
                "branch_id": branch_id,
                "organization_id": organization_id,
                "type": notification_type,
                "category": category,
                "priority": priority,
                "title": title,
                "message": message,
                "data": data,
            }
        ).execute()
    except Exception as e:
        print(f"  Error creating notification '{title}': {e}")
        return False
    return True


def create_bulk_notifications(user_ids: list[str], notification_type: str, title: str, message: str, **kwargs) -> int:
    """Notify several users; returns how many inserts succeeded."""
    created = sum(
        1 for user_id in user_ids if create_notification(user_id, notification_type, title, message, **kwargs)
    )
    print(f"Created {created}/{len(user_ids)} notifications: {title}")
    return created


def get_branch_admin_user_ids(branch_id: str, client: Any = None) -> list[str]:
    client = client or get_backend_client()
    rows = client.table("admin_branches").select("admin_id").eq("branch_id", branch_id).execute().data or []
    return [row["admin_id"] for row in rows]


def _count(query) -> int:
    return query.execute().count or 0


def fetch_dynamic_notification_data(
    branch_id: str, client: Any = None, now: datetime | None = None
) -> dict[str, int]:
    """
    Live counts behind the synthetic category summaries.

    Each count is independent; a failing one is reported and stays 0.
    """
    client = client or get_backend_client()
    now = now or datetime.now(timezone.utc)
    results = {"staff": 0, "client": 0, "medication": 0, "rota": 0, "reports": 0}

    try:
        results["staff"] = _count(
            client.table("bookings").select("id", count="exact")
            .lt("end_time", now.isoformat()).neq("status", "completed").eq("branch_id", branch_id)
        )
    except Exception as e:
        print(f"  Error counting overdue bookings: {e}")

    try:
        results["client"] = _count(
            client.table("client_appointments").select("id", count="exact").eq("status", "pending")
        )
    except Exception as e:
        print(f"  Error counting pending appointments: {e}")

    try:
        tomorrow = now + timedelta(days=1)
        results["medication"] = _count(
            client.table("client_medications").select("id", count="exact")
            .eq("status", "active")
            .gte("start_date", now.date().isoformat())
            .lte("start_date", tomorrow.date().isoformat())
        )
    except Exception as e:
        print(f"  Error counting medication alerts: {e}")

    try:
        rows = client.table("bookings").select("id, staff_id, start_time, end_time").eq(
            "branch_id", branch_id
        ).gte("start_time", now.isoformat()).execute().data or []
        upcoming = [
            {
                "id": row["id"],
                "staff_ids": [row["staff_id"]] if row.get("staff_id") else [],
                "start_time": parse_timestamp(row["start_time"]),
                "end_time": parse_timestamp(row["end_time"]),
                "conflicts_with": [],
            }
            for row in rows
        ]
        results["rota"] = count_conflict_pairs(detect_conflicts(upcoming))
    except Exception as e:
        print(f"  Error counting rota conflicts: {e}")

    try:
        week_ago = now - timedelta(days=7)
        results["reports"] = _count(
            client.table("documents").select("id", count="exact")
            .eq("branch_id", branch_id).eq("category", "report").gte("created_at", week_ago.isoformat())
        )
    except Exception as e:
        print(f"  Error counting recent reports: {e}")

    return results

"""
Data models for notifications and view-details actions.
"""

from dataclasses import dataclass, field
from typing import Any, TypedDict


class Notification(TypedDict, total=False):
    """Notification row as stored by the backend."""
    id: str
    user_id: str
    branch_id: str | None
    type: str
    category: str  # backend severity: info | warning | error | success
    priority: str  # low | medium | high | urgent
    title: str
    message: str
    data: dict[str, Any] | None
    read_at: str | None
    archived_at: str | None
    created_at: str
    updated_at: str


class CategoryStats(TypedDict):
    """Counters shown above a category list."""
    total: int
    unread: int
    high_priority: int
    today: int


@dataclass
class ViewAction:
    """Outcome of 'View Details' on a notification."""

    kind: str  # navigate | detail | toast
    route: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    message: str | None = None

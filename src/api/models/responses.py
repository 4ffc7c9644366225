"""Pydantic response models for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    backend_configured: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ParticipantResponse(BaseModel):
    id: str
    name: str
    role: str


class CalendarEventResponse(BaseModel):
    id: str
    type: str
    title: str
    start_time: datetime
    end_time: datetime
    status: str
    branch_id: str | None = None
    branch_name: str = ""
    participants: list[ParticipantResponse] = []
    location: str = ""
    priority: str = "medium"
    client_id: str | None = None
    staff_ids: list[str] = []
    conflicts_with: list[str] = []
    is_late_start: bool = False
    late_start_minutes: int = 0
    is_missed: bool = False


class CalendarStatsResponse(BaseModel):
    total_events: int
    events_by_type: dict[str, int]
    active_staff: int
    conflict_count: int
    unassigned_bookings: int
    booked_hours: float
    capacity_percentage: int


class CalendarResponse(BaseModel):
    """Organization calendar for one view."""

    start_date: str
    end_date: str
    events: list[CalendarEventResponse]
    stats: CalendarStatsResponse
    failed_sources: list[str] = []


class NotificationResponse(BaseModel):
    id: str
    type: str
    category: str | None = None  # derived bucket
    priority: str = "medium"
    title: str
    message: str = ""
    read_at: str | None = None
    created_at: str | None = None
    data: dict[str, Any] | None = None


class NotificationCategoryResponse(BaseModel):
    category: str
    title: str
    description: str
    filter: str
    notifications: list[NotificationResponse]


class CategoryStatsResponse(BaseModel):
    total: int
    unread: int
    high_priority: int
    today: int


class NotificationActionResponse(BaseModel):
    """Result of a read / read-all / archive request."""

    success: bool
    notification_id: str | None = None


class AuthorityValidationResponse(BaseModel):
    valid: bool
    authority: dict[str, Any]


class ViewActionResponse(BaseModel):
    kind: str
    route: str | None = None
    detail: dict[str, Any] = {}
    message: str | None = None


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STALE_REQUEST = "STALE_REQUEST"
    BACKEND_ERROR = "BACKEND_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

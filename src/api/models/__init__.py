"""API Pydantic models."""

from .responses import (
    AuthorityValidationResponse,
    CalendarEventResponse,
    CalendarResponse,
    CalendarStatsResponse,
    CategoryStatsResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    NotificationActionResponse,
    NotificationCategoryResponse,
    NotificationResponse,
    ViewActionResponse,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "CalendarEventResponse",
    "CalendarResponse",
    "CalendarStatsResponse",
    "CategoryStatsResponse",
    "NotificationActionResponse",
    "NotificationCategoryResponse",
    "NotificationResponse",
    "ViewActionResponse",
    "AuthorityValidationResponse",
]

"""API route modules."""

from .authorities import router as authorities_router
from .calendar import router as calendar_router
from .health import router as health_router
from .notifications import router as notifications_router

__all__ = ["health_router", "calendar_router", "notifications_router", "authorities_router"]

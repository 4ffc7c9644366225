"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Header, HTTPException, Query, status

from core import config
from services.calendar import RequestGenerations

# Shared across requests so a newer calendar request supersedes older ones
calendar_generations = RequestGenerations()


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not config.CARE_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": "INTERNAL_ERROR",
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, config.CARE_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": "UNAUTHORIZED",
                "details": [],
            },
        )

    return x_api_key


async def get_calendar_generations() -> RequestGenerations:
    return calendar_generations


async def branch_scope(
    branch_id: str | None = Query(None, description="Restrict to one branch"),
    branch_name: str | None = Query(None, description="Branch name, used for navigation routes"),
    tenant_slug: str | None = Query(None, description="Tenant slug prefix for routes"),
) -> dict:
    """Explicit tenant/branch context for notification endpoints."""
    return {"branch_id": branch_id, "branch_name": branch_name, "tenant_slug": tenant_slug}

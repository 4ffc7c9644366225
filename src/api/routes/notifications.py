"""Notification category endpoints."""

import asyncio
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.dependencies import branch_scope, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import (
    CategoryStatsResponse,
    ErrorCodes,
    NotificationActionResponse,
    NotificationCategoryResponse,
    NotificationResponse,
    ViewActionResponse,
)
from models.notifications import Notification
from services.notifications import (
    CATEGORY_CONFIG,
    UnknownCategoryError,
    apply_filter,
    archive_notification,
    build_dynamic_notifications,
    category_for_type,
    category_stats,
    fetch_dynamic_notification_data,
    fetch_notifications,
    get_notification,
    handle_view_details,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter(prefix="/v1/notifications")


def to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=str(notification["id"]),
        type=notification.get("type", ""),
        category=category_for_type(notification.get("type", "")),
        priority=notification.get("priority") or "medium",
        title=notification.get("title", ""),
        message=notification.get("message") or "",
        read_at=notification.get("read_at"),
        created_at=notification.get("created_at"),
        data=notification.get("data"),
    )


def not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": message, "code": ErrorCodes.NOT_FOUND, "details": []},
    )


def backend_error(request_log, e: Exception) -> HTTPException:
    """Record an unexpected backend failure and build the 502 response."""
    request_log.fail_unexpected(e, ErrorCodes.BACKEND_ERROR, status.HTTP_502_BAD_GATEWAY)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": "Backend request failed", "code": ErrorCodes.BACKEND_ERROR, "details": []},
    )


@router.get("/categories/{category}", response_model=NotificationCategoryResponse)
async def get_category(
    request: Request,
    category: str,
    filter_name: Annotated[str, Query(alias="filter", description="all, unread, high or today")] = "all",
    scope: dict = Depends(branch_scope),
    _api_key: str = Depends(verify_api_key),
):
    """
    Notifications of one category, headed by a live summary when a branch is
    given, narrowed by the secondary filter.
    """
    request_log = start_request_log(request, branch_id=scope["branch_id"])
    try:
        if category not in CATEGORY_CONFIG:
            raise not_found(f"Notification category '{category}' does not exist")

        notifications = await asyncio.to_thread(fetch_notifications, scope["branch_id"])
        dynamic_data = None
        if scope["branch_id"]:
            dynamic_data = await asyncio.to_thread(fetch_dynamic_notification_data, scope["branch_id"])

        items = build_dynamic_notifications(category, dynamic_data, notifications)
        try:
            items = apply_filter(items, filter_name)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "Invalid filter", "code": ErrorCodes.INVALID_REQUEST, "details": [str(e)]},
            )

        request_log.event_count = len(items)
        request_log.succeed()
        return NotificationCategoryResponse(
            category=category,
            title=CATEGORY_CONFIG[category]["title"],
            description=CATEGORY_CONFIG[category]["description"],
            filter=filter_name,
            notifications=[to_response(n) for n in items],
        )

    except HTTPException as e:
        request_log.fail(e)
        raise

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)


@router.get("/stats", response_model=dict[str, CategoryStatsResponse])
async def get_stats(
    request: Request,
    scope: dict = Depends(branch_scope),
    _api_key: str = Depends(verify_api_key),
):
    """Total, unread, high-priority and today counters for every category."""
    request_log = start_request_log(request, branch_id=scope["branch_id"])
    try:
        notifications = await asyncio.to_thread(fetch_notifications, scope["branch_id"])
        request_log.succeed()
        return category_stats(notifications)

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)


@router.post("/read-all", response_model=NotificationActionResponse)
async def read_all(
    request: Request,
    user_id: Annotated[str, Query(description="User whose notifications are marked read")],
    scope: dict = Depends(branch_scope),
    _api_key: str = Depends(verify_api_key),
):
    request_log = start_request_log(request, branch_id=scope["branch_id"])
    try:
        await asyncio.to_thread(mark_all_as_read, user_id, scope["branch_id"])
        request_log.succeed()
        return NotificationActionResponse(success=True)

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)


@router.post("/{notification_id}/read", response_model=NotificationActionResponse)
async def read_notification(
    request: Request,
    notification_id: str,
    _api_key: str = Depends(verify_api_key),
):
    request_log = start_request_log(request)
    try:
        await asyncio.to_thread(mark_as_read, notification_id)
        request_log.succeed()
        return NotificationActionResponse(success=True, notification_id=notification_id)

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)


@router.post("/{notification_id}/archive", response_model=NotificationActionResponse)
async def archive(
    request: Request,
    notification_id: str,
    _api_key: str = Depends(verify_api_key),
):
    request_log = start_request_log(request)
    try:
        await asyncio.to_thread(archive_notification, notification_id)
        request_log.succeed()
        return NotificationActionResponse(success=True, notification_id=notification_id)

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)


@router.post("/{notification_id}/view", response_model=ViewActionResponse)
async def view_details(
    request: Request,
    notification_id: str,
    category: Annotated[str | None, Query(description="Defaults to the category of the notification type")] = None,
    scope: dict = Depends(branch_scope),
    _api_key: str = Depends(verify_api_key),
):
    """
    Resolve 'View Details': a dashboard route to navigate to, the medication
    record, or a toast message when the detail cannot be loaded.
    """
    request_log = start_request_log(request, branch_id=scope["branch_id"])
    try:
        notification = await asyncio.to_thread(get_notification, notification_id)
        if notification is None:
            raise not_found(f"Notification '{notification_id}' not found")

        category = category or category_for_type(notification.get("type", ""))
        if category is None:
            raise not_found(f"Notification type '{notification.get('type')}' has no category")

        try:
            action = await asyncio.to_thread(
                handle_view_details,
                notification,
                category,
                scope["branch_id"],
                scope["branch_name"],
                scope["tenant_slug"],
            )
        except UnknownCategoryError as e:
            raise not_found(str(e))

        request_log.succeed()
        return ViewActionResponse(**asdict(action))

    except HTTPException as e:
        request_log.fail(e)
        raise

    except Exception as e:
        raise backend_error(request_log, e)

    finally:
        safe_log_request(request_log)

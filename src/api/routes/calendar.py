"""Organization calendar endpoints."""

from datetime import date, datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import Response

from api.dependencies import get_calendar_generations, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import CalendarEventResponse, CalendarResponse, ErrorCodes
from services.calendar import (
    CalendarQuery,
    CalendarResult,
    RequestGenerations,
    StaleRequestError,
    fetch_organization_calendar,
)
from services.reports import events_to_csv, events_to_excel, events_to_pdf
from services.stats import compute_calendar_stats

router = APIRouter(prefix="/v1/calendar")

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def parse_anchor_date(date_str: str | None) -> date:
    """Parse the view anchor date; defaults to today."""
    if not date_str:
        return datetime.now(timezone.utc).date()
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid date format",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": ["Expected format: YYYY-MM-DD"],
            },
        )


async def load_calendar(
    query: CalendarQuery, generations: RequestGenerations, request_key: str | None
) -> CalendarResult:
    """Run the calendar fetch and translate service errors to HTTP errors."""
    try:
        return await fetch_organization_calendar(
            query, generations=generations, request_key=request_key
        )
    except StaleRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Request superseded by a newer one",
                "code": ErrorCodes.STALE_REQUEST,
                "details": [str(e)],
            },
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid calendar query",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [str(e)],
            },
        )


@router.get("", response_model=CalendarResponse)
async def get_calendar(
    request: Request,
    organization_id: Annotated[str, Query(description="Organization (tenant) id")],
    date_str: Annotated[str | None, Query(alias="date", description="Anchor date (YYYY-MM-DD)")] = None,
    view_type: Annotated[str, Query(description="daily, weekly or monthly")] = "daily",
    branch_id: Annotated[str | None, Query()] = None,
    event_type: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
    x_request_key: Annotated[str | None, Header(alias="X-Request-Key")] = None,
    generations: RequestGenerations = Depends(get_calendar_generations),
    _api_key: str = Depends(verify_api_key),
):
    """
    Merged calendar for an organization: bookings, agreements, training,
    leave and client appointments, with staff conflicts marked.

    Send the same X-Request-Key on successive requests from one view; an
    older request still in flight then answers 409 STALE_REQUEST.
    """
    request_log = start_request_log(request, organization_id=organization_id, branch_id=branch_id)
    try:
        query = CalendarQuery(
            organization_id=organization_id,
            anchor_date=parse_anchor_date(date_str),
            view_type=view_type,
            branch_id=branch_id,
            event_type=event_type,
            search_term=search,
        )
        result = await load_calendar(query, generations, x_request_key)
        stats = compute_calendar_stats(result.events, result.start_date, result.end_date)

        for source in result.failed_sources:
            request_log.details.append(("warning", f"{source} events could not be loaded"))
        request_log.event_count = stats["total_events"]
        request_log.conflict_count = stats["conflict_count"]
        request_log.succeed()

        return CalendarResponse(
            start_date=result.start_date.isoformat(),
            end_date=result.end_date.isoformat(),
            events=[CalendarEventResponse(**event) for event in result.events],
            stats=stats,
            failed_sources=result.failed_sources,
        )

    except HTTPException as e:
        request_log.fail(e)
        raise

    except Exception as e:
        # Unexpected errors (backend unreachable, misconfiguration)
        request_log.fail_unexpected(e, ErrorCodes.BACKEND_ERROR, status.HTTP_502_BAD_GATEWAY)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "Backend request failed",
                "code": ErrorCodes.BACKEND_ERROR,
                "details": [],
            },
        )

    finally:
        safe_log_request(request_log)


@router.get("/export")
async def export_calendar(
    request: Request,
    organization_id: Annotated[str, Query(description="Organization (tenant) id")],
    export_format: Annotated[str, Query(alias="format", description="csv, pdf or xlsx")] = "csv",
    date_str: Annotated[str | None, Query(alias="date")] = None,
    view_type: Annotated[str, Query()] = "daily",
    branch_id: Annotated[str | None, Query()] = None,
    event_type: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
    generations: RequestGenerations = Depends(get_calendar_generations),
    _api_key: str = Depends(verify_api_key),
):
    """Download the calendar view as CSV, PDF or Excel."""
    request_log = start_request_log(request, organization_id=organization_id, branch_id=branch_id)
    try:
        if export_format not in EXPORT_MEDIA_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": "Unsupported export format",
                    "code": ErrorCodes.INVALID_REQUEST,
                    "details": [f"Expected one of: {', '.join(EXPORT_MEDIA_TYPES)}"],
                },
            )

        query = CalendarQuery(
            organization_id=organization_id,
            anchor_date=parse_anchor_date(date_str),
            view_type=view_type,
            branch_id=branch_id,
            event_type=event_type,
            search_term=search,
        )
        result = await load_calendar(query, generations, None)
        events = result.events

        if export_format == "csv":
            content = events_to_csv(events).encode("utf-8")
        elif export_format == "pdf":
            content = events_to_pdf(events, "Organization Calendar", result.start_date, result.end_date)
        else:
            content = events_to_excel(events)

        filename = f"calendar-{result.start_date.isoformat()}-{result.end_date.isoformat()}.{export_format}"
        request_log.event_count = len(events)
        request_log.succeed()

        return Response(
            content=content,
            media_type=EXPORT_MEDIA_TYPES[export_format],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except HTTPException as e:
        request_log.fail(e)
        raise

    except Exception as e:
        # Unexpected errors (backend unreachable, misconfiguration)
        request_log.fail_unexpected(e, ErrorCodes.BACKEND_ERROR, status.HTTP_502_BAD_GATEWAY)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "Backend request failed",
                "code": ErrorCodes.BACKEND_ERROR,
                "details": [],
            },
        )

    finally:
        safe_log_request(request_log)

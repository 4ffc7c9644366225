"""SQLite request logging for API."""

import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import HTTPException, Request

from core import config


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    started: float = field(default_factory=time.time)
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    organization_id: str | None = None
    branch_id: str | None = None
    query_params: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    event_count: int | None = None
    conflict_count: int | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)

    def succeed(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.processing_time_ms = int((time.time() - self.started) * 1000)

    def fail(self, e: HTTPException) -> None:
        """Record an HTTP error raised by a route."""
        self.status_code = e.status_code
        if isinstance(e.detail, dict):
            self.error_code = e.detail.get("code")
            self.error_message = e.detail.get("error")
            for detail in e.detail.get("details", []):
                self.details.append(("validation_error", detail))
        else:
            self.error_message = str(e.detail)
        self.processing_time_ms = int((time.time() - self.started) * 1000)

    def fail_unexpected(self, e: Exception, error_code: str, status_code: int = 500) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = str(e)
        self.processing_time_ms = int((time.time() - self.started) * 1000)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def start_request_log(request: Request, **kwargs) -> RequestLog:
    return RequestLog(
        endpoint=request.url.path,
        method=request.method,
        client_ip=get_client_ip(request),
        query_params=str(request.query_params) or None,
        **kwargs,
    )


def log_request(log: RequestLog) -> None:
    """Write request log to SQLite database."""
    conn = sqlite3.connect(config.DB_PATH)
    try:
        cursor = conn.cursor()

        # Insert main request record
        cursor.execute(
            """
            INSERT INTO api_requests (
                request_id, timestamp, endpoint, method, client_ip,
                organization_id, branch_id, query_params,
                status_code, error_code, error_message, processing_time_ms,
                event_count, conflict_count
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.request_id,
                log.timestamp,
                log.endpoint,
                log.method,
                log.client_ip,
                log.organization_id,
                log.branch_id,
                log.query_params,
                log.status_code,
                log.error_code,
                log.error_message,
                log.processing_time_ms,
                log.event_count,
                log.conflict_count,
            ),
        )

        # Insert detail records
        for detail_type, message in log.details:
            cursor.execute(
                """
                INSERT INTO api_request_details (request_id, detail_type, message)
                VALUES (?, ?, ?)
            """,
                (log.request_id, detail_type, message),
            )

        conn.commit()
    finally:
        conn.close()


def safe_log_request(log: RequestLog) -> None:
    """Write the log without ever failing the request."""
    try:
        log_request(log)
    except Exception as e:
        print(f"  Request log not written ({log.request_id}): {e}")
